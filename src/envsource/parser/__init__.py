"""Parser module for envsource."""

from .lexer import Scanner
from .parser import (
    Parser,
    ParseException,
    ValueOptions,
    is_valid_name,
    parse,
)

__all__ = [
    # Lexer
    "Scanner",
    # Parser
    "Parser",
    "ParseException",
    "ValueOptions",
    "is_valid_name",
    "parse",
]
