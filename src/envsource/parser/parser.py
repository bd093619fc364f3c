"""Parser for env documents.

The parse bounces between two phases over a single left-to-right scan:
seeking a key (everything before an ``=``) and seeking that key's value.
Values are resolved as they are read: escapes are expanded, ``${NAME}`` is
replaced from the variables resolved so far and ``$(cmd args)`` is replaced
by the output of the command executor. Each resolved value is committed
before the next key is sought, so later lines may interpolate earlier ones.

Supported value forms:
- unquoted: trimmed, ends at a newline, end of input or ``#``
- ``"double"``: interpolating, may span lines
- ``'single'``: literal
- ``\"\"\"`` heredoc: interpolating, multi-line
- ``'''`` heredoc: literal, multi-line
"""

import re
from dataclasses import dataclass, replace
from typing import Optional

from loguru import logger

from ..errors import EnvsourceError
from ..types import CommandExecutor, ExecutionOptions, ParseResult
from .lexer import COMMENT, NEWLINE, Scanner

NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
EXPORT_PREFIX = "export "

SINGLE_QUOTE = "'"
DOUBLE_QUOTE = '"'
SINGLE_HEREDOC = "'''"
DOUBLE_HEREDOC = '"""'

INTERPOLATION_START = "${"
INTERPOLATION_END = "}"
COMMAND_START = "$("
COMMAND_END = ")"

ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "f": "\f",
    "b": "\b",
    '"': '"',
    "'": "'",
    "\\": "\\",
}

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class ParseException(EnvsourceError):
    """Raised when a document cannot be parsed.

    Attributes:
        key: The variable being parsed when the failure happened, if any.
        fragment: The raw text that triggered the failure, if any.
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        fragment: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.key = key
        self.fragment = fragment


@dataclass(frozen=True)
class ValueOptions:
    """Context for the value currently being read."""

    key: str
    interpolate: bool = True
    stop_on: Optional[str] = None


def is_valid_name(name: str) -> bool:
    """Check if name is a valid variable name."""
    return NAME_PATTERN.fullmatch(name) is not None


class Parser:
    """Single-pass parser for one env document."""

    def __init__(
        self,
        contents: str,
        variables: Optional[dict[str, str]] = None,
        *,
        executor: Optional[CommandExecutor] = None,
        command_options: Optional[ExecutionOptions] = None,
    ):
        """Initialize the parser.

        Args:
            contents: The document text.
            variables: Seed variables available for interpolation. Copied.
            executor: Runs commands for $(...) substitutions. Defaults to a
                SystemCommandExecutor, created on first use.
            command_options: Forwarded verbatim to the executor.
        """
        self.scanner = Scanner(contents)
        self.vars: dict[str, str] = dict(variables or {})
        self.executor = executor
        self.command_options = (
            command_options if command_options is not None else ExecutionOptions()
        )

    def parse(self) -> dict[str, str]:
        """Parse the whole document.

        Returns:
            The seed variables updated with every parsed key.

        Raises:
            ParseException: On the first syntax or resolution error.
        """
        while True:
            key = self._find_key()
            if key is None:
                return self.vars
            self._find_value(key)

    # Keys

    def _find_key(self) -> Optional[str]:
        """Read up to the next ``=`` and return the validated key.

        Returns None at a clean end of input.
        """
        s = self.scanner
        acc: list[str] = []
        while not s.at_end():
            ch = s.advance()
            if ch == COMMENT:
                s.skip_to_line_end()
                acc = []
            elif ch == "=":
                return self._validate_key("".join(acc))
            elif ch == NEWLINE:
                text = "".join(acc)
                if text.strip():
                    raise ParseException(
                        f"Invalid syntax for line. No equals sign for key: {text!r}",
                        fragment=text,
                    )
                acc = []
            else:
                acc.append(ch)

        leftover = "".join(acc)
        if leftover.strip():
            raise ParseException(
                f"Invalid syntax: variable missing value: {leftover!r}",
                fragment=leftover,
            )
        return None

    def _validate_key(self, raw: str) -> str:
        key = raw.lstrip()
        if key.startswith(EXPORT_PREFIX):
            key = key[len(EXPORT_PREFIX):]
        key = key.strip()
        if not is_valid_name(key):
            raise ParseException(
                f"Invalid variable name syntax: {raw!r}", fragment=raw
            )
        return key

    # Values

    def _find_value(self, key: str) -> None:
        """Read the value for key and commit it."""
        s = self.scanner
        opts = ValueOptions(key=key)
        acc: list[str] = []

        while True:
            if opts.stop_on is None:
                if s.startswith(SINGLE_HEREDOC) or s.startswith(DOUBLE_HEREDOC):
                    opts = self._open_heredoc(opts, "".join(acc))
                    acc = []
                    continue
                ch = s.peek()
                if ch in (SINGLE_QUOTE, DOUBLE_QUOTE):
                    opts = self._open_quote(opts, "".join(acc))
                    acc = []
                    continue
                if ch == COMMENT:
                    s.skip_to_line_end()
                    self._commit(key, "".join(acc).strip())
                    return
                if ch == NEWLINE or s.at_end():
                    if ch == NEWLINE:
                        s.advance()
                    self._commit(key, "".join(acc).strip())
                    return
            elif len(opts.stop_on) == 3 and s.startswith(opts.stop_on):
                s.skip(3)
                self._close(opts, "".join(acc))
                return

            if opts.interpolate and s.startswith(INTERPOLATION_START):
                s.skip(len(INTERPOLATION_START))
                acc.append(self._interpolate(opts))
                continue

            if opts.interpolate and s.startswith(COMMAND_START):
                s.skip(len(COMMAND_START))
                acc.append(self._substitute_command(opts))
                continue

            if opts.stop_on is not None and s.startswith(opts.stop_on):
                s.skip(len(opts.stop_on))
                self._close(opts, "".join(acc))
                return

            # A trailing backslash at end of input is kept as-is
            if opts.interpolate and s.peek() == "\\" and s.peek(1) != "":
                s.advance()
                acc.append(self._escape(opts))
                continue

            if s.at_end():
                raise ParseException(
                    f"Could not parse value for {key!r}. "
                    f"Stop sequence not found: {opts.stop_on!r}",
                    key=key,
                )

            acc.append(s.advance())

    def _open_heredoc(self, opts: ValueOptions, before: str) -> ValueOptions:
        s = self.scanner
        delimiter = SINGLE_HEREDOC if s.startswith(SINGLE_HEREDOC) else DOUBLE_HEREDOC
        if before.strip():
            raise ParseException(
                f"Key: {opts.key}: Improper syntax before opening heredoc: {before!r}",
                key=opts.key,
                fragment=before,
            )
        s.skip(len(delimiter))
        trailing = s.rest_of_line()
        if trailing.strip():
            raise ParseException(
                f"Key: {opts.key}: heredoc allows only zero or more whitespace "
                f"characters followed by a new line after {delimiter}",
                key=opts.key,
                fragment=trailing,
            )
        return replace(
            opts, stop_on=delimiter, interpolate=delimiter == DOUBLE_HEREDOC
        )

    def _open_quote(self, opts: ValueOptions, before: str) -> ValueOptions:
        if before.strip():
            raise ParseException(
                f"Key: {opts.key}: Improper syntax before opening quote: {before!r}",
                key=opts.key,
                fragment=before,
            )
        quote = self.scanner.advance()
        return replace(opts, stop_on=quote, interpolate=quote == DOUBLE_QUOTE)

    def _close(self, opts: ValueOptions, value: str) -> None:
        """Check the rest of the closing line, then commit value verbatim."""
        rest = self.scanner.rest_of_line()
        if rest.strip():
            raise ParseException(
                f"Invalid syntax for key {opts.key} following {opts.stop_on!r}: {rest!r}",
                key=opts.key,
                fragment=rest,
            )
        self._commit(opts.key, value)

    def _commit(self, key: str, value: str) -> None:
        self.vars[key] = value

    # Substitutions

    def _interpolate(self, opts: ValueOptions) -> str:
        raw = self.scanner.read_until(INTERPOLATION_END)
        if raw is None:
            raise ParseException(
                f"Could not interpolate variable for key {opts.key}. "
                f"Stop sequence not found: {INTERPOLATION_END!r}",
                key=opts.key,
            )
        name = raw.strip()
        try:
            return self.vars[name]
        except KeyError:
            raise ParseException(
                f"Could not interpolate variable ${{{name}}}: variable undefined.",
                key=opts.key,
                fragment=name,
            ) from None

    def _substitute_command(self, opts: ValueOptions) -> str:
        raw = self.scanner.read_until(COMMAND_END)
        if raw is None:
            raise ParseException(
                f"Could not run command for key {opts.key}. "
                f"Stop sequence not found: {COMMAND_END!r}",
                key=opts.key,
            )
        parts = raw.split()
        if not parts:
            raise ParseException(
                f"Invalid command substitution for key {opts.key}: "
                "missing arguments; cannot be empty",
                key=opts.key,
                fragment=f"$({raw})",
            )
        command, args = parts[0], parts[1:]

        if self.executor is None:
            from ..executor import SystemCommandExecutor

            self.executor = SystemCommandExecutor()

        logger.debug("Running {!r} with args {!r} for {}", command, args, opts.key)
        try:
            result = self.executor(command, args, self.command_options)
        except Exception as e:
            raise ParseException(
                f"Command substitution for key {opts.key} failed: "
                f"{command!r} with args {args!r} could not be run: {e}",
                key=opts.key,
                fragment=f"$({raw})",
            ) from e
        if result.exit_code != 0:
            message = (
                f"Command substitution for key {opts.key} failed: "
                f"{command!r} with args {args!r} exited with status {result.exit_code}"
            )
            if result.stderr.strip():
                message += f": {result.stderr.strip()}"
            raise ParseException(message, key=opts.key, fragment=f"$({raw})")
        return result.stdout.strip()

    def _escape(self, opts: ValueOptions) -> str:
        """Expand the escape after a consumed backslash."""
        ch = self.scanner.advance()
        if ch in ESCAPES:
            return ESCAPES[ch]
        if ch == "u":
            return self._unicode(opts)
        # Unknown escapes drop the backslash
        return ch

    def _unicode(self, opts: ValueOptions) -> str:
        s = self.scanner
        digits = s.lookahead(4)
        if len(digits) < 4:
            raise ParseException(
                f"Invalid unicode format for key {opts.key}: incomplete",
                key=opts.key,
                fragment=f"\\u{digits}",
            )
        if not all(d in HEX_DIGITS for d in digits):
            raise ParseException(
                f"Invalid unicode format for key {opts.key}: \\u{digits}",
                key=opts.key,
                fragment=f"\\u{digits}",
            )
        codepoint = int(digits, 16)
        if 0xD800 <= codepoint <= 0xDFFF:
            raise ParseException(
                f"Invalid unicode format for key {opts.key}: \\u{digits} is a surrogate",
                key=opts.key,
                fragment=f"\\u{digits}",
            )
        s.skip(4)
        return chr(codepoint)


def parse(
    contents: str,
    variables: Optional[dict[str, str]] = None,
    *,
    executor: Optional[CommandExecutor] = None,
    command_options: Optional[ExecutionOptions] = None,
) -> ParseResult:
    """Parse an env document.

    Args:
        contents: The document text.
        variables: Seed variables available for interpolation.
        executor: Runs commands for $(...) substitutions.
        command_options: Forwarded verbatim to the executor.

    Returns:
        ParseResult with the seed variables plus every parsed key, or with
        ``error`` set and no variables if the document is invalid.
    """
    parser = Parser(
        contents,
        variables,
        executor=executor,
        command_options=command_options,
    )
    try:
        return ParseResult(vars=parser.parse())
    except ParseException as e:
        logger.debug("Parse failed: {}", e)
        return ParseResult(error=str(e))
