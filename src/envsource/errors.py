"""Error types for envsource."""


class EnvsourceError(Exception):
    """Base class for every error raised by envsource."""


class SourceError(EnvsourceError):
    """Raised by Env.source_strict when a file cannot be read or parsed."""

    def __init__(self, message: str, file: str | None = None):
        super().__init__(message)
        self.file = file


class TransformError(EnvsourceError, ValueError):
    """Raised when a raw string cannot be converted to the requested type."""


class MissingVariableError(EnvsourceError, KeyError):
    """Raised when a required variable has not been sourced."""

    def __init__(self, variable: str):
        super().__init__(variable)
        self.variable = variable

    def __str__(self) -> str:
        return f"Environment variable {self.variable} not set"
