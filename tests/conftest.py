"""Shared fixtures for envsource tests."""

from pathlib import Path
from typing import Callable

import pytest

from envsource.types import ExecResult, ExecutionOptions

FIXTURES = Path(__file__).parent / "fixtures"


class RecordingExecutor:
    """Fake executor that echoes its arguments and records every call."""

    def __init__(self, exit_code: int = 0, stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        self.calls: list[tuple[str, list[str], ExecutionOptions]] = []

    def __call__(self, command: str, args: list[str], options: ExecutionOptions) -> ExecResult:
        self.calls.append((command, args, options))
        return ExecResult(
            stdout=" ".join(args) + "\n",
            stderr=self.stderr,
            exit_code=self.exit_code,
        )


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def read_fixture() -> Callable[[str], str]:
    """Load a document from tests/fixtures/."""

    def _read(name: str) -> str:
        return (FIXTURES / name).read_text(encoding="utf-8")

    return _read


@pytest.fixture
def echo_executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def failing_executor() -> RecordingExecutor:
    return RecordingExecutor(exit_code=3, stderr="boom\n")
