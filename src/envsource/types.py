"""Shared types for envsource."""

from dataclasses import dataclass, field
from typing import Optional, Protocol


@dataclass
class ExecResult:
    """Result of running a command for a $(...) substitution."""

    stdout: str
    stderr: str
    exit_code: int


@dataclass
class ExecutionOptions:
    """Options forwarded verbatim to the command executor."""

    cwd: Optional[str] = None
    """Working directory for the command. None means the current one."""

    env: Optional[dict[str, str]] = None
    """Environment for the command. None means inherit the process environment."""

    timeout: Optional[float] = None
    """Seconds to wait before the command is killed. None waits forever."""


class CommandExecutor(Protocol):
    """Anything that can run a command on behalf of the parser."""

    def __call__(
        self, command: str, args: list[str], options: ExecutionOptions
    ) -> ExecResult: ...


@dataclass
class ParseResult:
    """Outcome of parsing one document."""

    vars: dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SourceResult:
    """Outcome of sourcing one or more files."""

    vars: dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
