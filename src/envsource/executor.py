"""Command executors for $(...) substitutions.

Example usage:
    from envsource import parse
    from envsource.executor import RestrictedCommandExecutor

    # Only allow `git` to run during substitution
    result = parse(contents, executor=RestrictedCommandExecutor({"git"}))

    # Disable command substitution entirely
    result = parse(contents, executor=RestrictedCommandExecutor(()))
"""

import asyncio
import os
from typing import Iterable, Optional

import nest_asyncio  # type: ignore[import-untyped]
from loguru import logger

from .types import CommandExecutor, ExecResult, ExecutionOptions

EXIT_NOT_PERMITTED = 126
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


class SystemCommandExecutor:
    """Run commands as OS subprocesses, without a shell."""

    async def execute(
        self,
        command: str,
        args: list[str],
        options: Optional[ExecutionOptions] = None,
    ) -> ExecResult:
        """Run a command and capture its output.

        Args:
            command: Program name, looked up on PATH.
            args: Arguments passed to the program.
            options: Working directory, environment and timeout.

        Returns:
            ExecResult with decoded stdout/stderr and the exit code. A missing
            program gives exit code 127, a timeout gives 124 and any other
            failure to start the process (bad cwd, invalid name) gives 126.
        """
        options = options or ExecutionOptions()
        env = None
        if options.env is not None:
            env = {**os.environ, **options.env}

        try:
            proc = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=options.cwd,
                env=env,
            )
        except FileNotFoundError as e:
            # A missing cwd also raises FileNotFoundError, naming the directory
            if e.filename in (None, command):
                return ExecResult(
                    stdout="",
                    stderr=f"{command}: command not found\n",
                    exit_code=EXIT_NOT_FOUND,
                )
            return _cannot_execute(command, e)
        except (OSError, ValueError) as e:
            return _cannot_execute(command, e)

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=options.timeout
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.debug("{} timed out after {}s", command, options.timeout)
            return ExecResult(
                stdout="",
                stderr=f"{command}: timed out after {options.timeout}s\n",
                exit_code=EXIT_TIMEOUT,
            )

        return ExecResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=proc.returncode if proc.returncode is not None else 0,
        )

    def __call__(
        self,
        command: str,
        args: list[str],
        options: Optional[ExecutionOptions] = None,
    ) -> ExecResult:
        """Run a command synchronously.

        This works in any context, including Jupyter notebooks and async
        frameworks.
        """
        try:
            asyncio.get_running_loop()
            # Already inside an event loop; allow asyncio.run to nest
            nest_asyncio.apply()
        except RuntimeError:
            pass
        return asyncio.run(self.execute(command, args, options))


def _cannot_execute(command: str, error: Exception) -> ExecResult:
    logger.debug("Could not start {!r}: {}", command, error)
    return ExecResult(
        stdout="",
        stderr=f"{command}: cannot execute: {error}\n",
        exit_code=EXIT_NOT_PERMITTED,
    )


class RestrictedCommandExecutor:
    """Only run commands found in an allow-list.

    Anything else fails with exit code 126 without being run. An empty
    allow-list disables command substitution.
    """

    def __init__(
        self,
        allowed: Iterable[str],
        executor: Optional[CommandExecutor] = None,
    ):
        self.allowed = frozenset(allowed)
        self.executor = executor or SystemCommandExecutor()

    def __call__(
        self,
        command: str,
        args: list[str],
        options: ExecutionOptions,
    ) -> ExecResult:
        if command not in self.allowed:
            logger.debug("Refusing to run {!r}: not in the allow-list", command)
            return ExecResult(
                stdout="",
                stderr=f"{command}: command not permitted\n",
                exit_code=EXIT_NOT_PERMITTED,
            )
        return self.executor(command, args, options)
