"""envsource - parse env files with quoting, heredocs, interpolation and
command substitution.

Example usage:
    from envsource import Env, parse

    result = parse('GREETING="hello"\\nMESSAGE="${GREETING} world"\\n', {})
    result.vars["MESSAGE"]  # "hello world"

    env = Env()
    env.source_strict(".env")
    port = env.get("PORT", "integer", 5432)
"""

from loguru import logger

from .env import Env
from .errors import (
    EnvsourceError,
    MissingVariableError,
    SourceError,
    TransformError,
)
from .executor import RestrictedCommandExecutor, SystemCommandExecutor
from .parser import ParseException, Parser, is_valid_name, parse
from .transformer import to
from .types import (
    CommandExecutor,
    ExecResult,
    ExecutionOptions,
    ParseResult,
    SourceResult,
)

# Library logging stays silent until an application calls logger.enable("envsource")
logger.disable("envsource")

__version__ = "0.1.0"

__all__ = [
    "Env",
    "parse",
    "Parser",
    "is_valid_name",
    "to",
    "SystemCommandExecutor",
    "RestrictedCommandExecutor",
    "CommandExecutor",
    "ExecResult",
    "ExecutionOptions",
    "ParseResult",
    "SourceResult",
    "EnvsourceError",
    "ParseException",
    "SourceError",
    "TransformError",
    "MissingVariableError",
]
