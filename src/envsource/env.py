"""Env class - load env files and read typed values.

Example usage:
    from envsource import Env

    env = Env()
    env.source_strict([".env", ".env.local"])
    port = env.get("PORT", "integer", 5432)
    debug = env.get("DEBUG", "boolean")

    # Only the parsed contents, ignoring the process environment
    env = Env(vars={})
    result = env.source(["a.env", "b.env"])
    if not result.ok:
        print(result.error)
"""

import os
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from loguru import logger

from .errors import MissingVariableError, SourceError, TransformError
from .parser import parse
from .transformer import ConversionType, to
from .types import CommandExecutor, ExecutionOptions, ParseResult, SourceResult

FileArg = Union[str, os.PathLike]
ParserFunc = Callable[..., ParseResult]

MISSING: Any = object()


class Env:
    """Accumulates variables sourced from env files.

    Files are parsed one after another; each one sees the variables
    resolved so far, so it can interpolate and override earlier values.
    """

    def __init__(
        self,
        *,
        vars: Optional[dict[str, str]] = None,
        executor: Optional[CommandExecutor] = None,
        command_options: Optional[ExecutionOptions] = None,
        parser: Optional[ParserFunc] = None,
    ):
        """Initialize the environment.

        Args:
            vars: Starting pool of variables. Defaults to a copy of
                os.environ.
            executor: Runs commands for $(...) substitutions.
            command_options: Forwarded verbatim to the executor.
            parser: Callable with the signature of envsource.parse.
        """
        self._initial_vars = dict(os.environ if vars is None else vars)
        self._vars: dict[str, str] = {}
        self._executor = executor
        self._command_options = command_options
        self._parser = parser or parse

    @property
    def vars(self) -> dict[str, str]:
        """Variables stored by the last successful source() call."""
        return self._vars

    def source(
        self,
        files: Union[FileArg, Iterable[FileArg]],
        *,
        overwrite: bool = False,
        require_files: Union[bool, Iterable[FileArg]] = False,
        side_effect: Optional[Callable[[dict[str, str]], Any]] = None,
    ) -> SourceResult:
        """Parse the given files in order and store the merged variables.

        Args:
            files: One file or a list of files.
            overwrite: Whether parsed values replace values already present
                in the starting pool.
            require_files: True if every file must exist, False if none
                must, or a list of the files that must exist. Every file in
                the list must also be one of ``files``.
            side_effect: Called with the merged variables after success,
                e.g. ``os.environ.update``.

        Returns:
            SourceResult with the merged variables, or with ``error`` set.
            On error the stored variables are left unchanged.
        """
        file_list = _as_file_list(files)
        try:
            required = self._required_files(file_list, require_files)
            parsed = self._handle_files(file_list, required)
        except SourceError as e:
            logger.debug("Sourcing failed: {}", e)
            return SourceResult(error=str(e))

        if overwrite:
            merged = {**self._initial_vars, **parsed}
        else:
            merged = {**parsed, **self._initial_vars}

        self._vars = merged
        if side_effect is not None:
            side_effect(merged)
        return SourceResult(vars=merged)

    def source_strict(
        self,
        files: Union[FileArg, Iterable[FileArg]],
        *,
        overwrite: bool = False,
        require_files: Union[bool, Iterable[FileArg]] = False,
        side_effect: Optional[Callable[[dict[str, str]], Any]] = None,
    ) -> dict[str, str]:
        """Like source(), but returns the variables or raises SourceError."""
        result = self.source(
            files,
            overwrite=overwrite,
            require_files=require_files,
            side_effect=side_effect,
        )
        if result.error is not None:
            raise SourceError(result.error)
        return result.vars

    def get(
        self,
        variable: str,
        type_: ConversionType = "string",
        default: Any = MISSING,
    ) -> Any:
        """Read a sourced variable converted to the given type.

        If the variable is not set, ``default`` is returned without
        conversion; without a default, MissingVariableError is raised.

        Raises:
            MissingVariableError: If the variable is unset and there is no
                default.
            TransformError: If the value cannot be converted.
        """
        if variable not in self._vars:
            if default is MISSING:
                raise MissingVariableError(variable)
            return default
        try:
            return to(self._vars[variable], type_)
        except TransformError as e:
            raise TransformError(
                f"Error converting variable {variable} to {_type_name(type_)}: {e}"
            ) from e

    def _required_files(
        self,
        files: list[str],
        require_files: Union[bool, Iterable[FileArg]],
    ) -> set[str]:
        if require_files is True:
            return set(files)
        if require_files is False:
            return set()
        required = set(_as_file_list(require_files))
        unknown = required - set(files)
        if unknown:
            raise SourceError(
                f"require_files includes files that are not being sourced: "
                f"{sorted(unknown)}"
            )
        return required

    def _handle_files(self, files: list[str], required: set[str]) -> dict[str, str]:
        variables = dict(self._initial_vars)
        for file in files:
            path = Path(file)
            if not path.is_file():
                if file in required:
                    raise SourceError(
                        f"There was error with file {file!r}: file not found", file
                    )
                logger.debug("Skipping missing file {}", file)
                continue

            try:
                contents = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise SourceError(f"There was error with file {file!r}: {e}", file) from e

            logger.debug("Parsing {}", file)
            result = self._parser(
                contents,
                variables,
                executor=self._executor,
                command_options=self._command_options,
            )
            if result.error is not None:
                raise SourceError(
                    f"There was error with file {file!r}: {result.error}", file
                )
            variables.update(result.vars)
        return variables


def _as_file_list(files: Union[FileArg, Iterable[FileArg]]) -> list[str]:
    if isinstance(files, (str, os.PathLike)):
        return [os.fspath(files)]
    return [os.fspath(f) for f in files]


def _type_name(type_: ConversionType) -> str:
    if callable(type_):
        return getattr(type_, "__name__", repr(type_))
    return type_
