"""Tests for command executors."""

import shutil
import sys
from pathlib import Path

import pytest

from envsource import ExecutionOptions, RestrictedCommandExecutor, SystemCommandExecutor, parse


class TestSystemCommandExecutor:
    """Commands run as real subprocesses."""

    @pytest.mark.asyncio
    async def test_captures_stdout(self):
        result = await SystemCommandExecutor().execute(
            sys.executable, ["-c", "print('hello')"]
        )
        assert result.stdout.strip() == "hello"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_exit_code(self):
        result = await SystemCommandExecutor().execute(
            sys.executable, ["-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"]
        )
        assert result.exit_code == 3
        assert result.stderr == "bad"

    @pytest.mark.asyncio
    async def test_command_not_found(self):
        result = await SystemCommandExecutor().execute(
            "envsource-no-such-command", [], ExecutionOptions()
        )
        assert result.exit_code == 127
        assert "command not found" in result.stderr

    @pytest.mark.asyncio
    async def test_timeout(self):
        result = await SystemCommandExecutor().execute(
            sys.executable,
            ["-c", "import time; time.sleep(10)"],
            ExecutionOptions(timeout=0.2),
        )
        assert result.exit_code == 124

    @pytest.mark.asyncio
    async def test_env_is_merged_with_process_env(self):
        result = await SystemCommandExecutor().execute(
            sys.executable,
            ["-c", "import os; print(os.environ['ENVSOURCE_TEST'], 'PATH' in os.environ)"],
            ExecutionOptions(env={"ENVSOURCE_TEST": "yes"}),
        )
        assert result.stdout.split() == ["yes", "True"]

    @pytest.mark.asyncio
    async def test_cwd(self, tmp_path):
        result = await SystemCommandExecutor().execute(
            sys.executable,
            ["-c", "import os; print(os.getcwd())"],
            ExecutionOptions(cwd=str(tmp_path)),
        )
        assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()

    @pytest.mark.asyncio
    async def test_cwd_is_a_file(self, tmp_path):
        not_a_dir = tmp_path / "file.txt"
        not_a_dir.write_text("x")
        result = await SystemCommandExecutor().execute(
            sys.executable, ["-c", "print(1)"], ExecutionOptions(cwd=str(not_a_dir))
        )
        assert result.exit_code == 126
        assert "cannot execute" in result.stderr

    @pytest.mark.asyncio
    async def test_missing_cwd_is_not_command_not_found(self, tmp_path):
        missing = tmp_path / "missing-dir"
        result = await SystemCommandExecutor().execute(
            sys.executable, ["-c", "print(1)"], ExecutionOptions(cwd=str(missing))
        )
        assert result.exit_code == 126
        assert "command not found" not in result.stderr
        assert "missing-dir" in result.stderr

    @pytest.mark.asyncio
    async def test_null_byte_in_command(self):
        result = await SystemCommandExecutor().execute("ec\x00ho", ["hi"])
        assert result.exit_code == 126

    def test_start_failures_are_parse_errors(self, tmp_path):
        not_a_dir = tmp_path / "file.txt"
        not_a_dir.write_text("x")
        result = parse(
            "A=$(echo hi)", command_options=ExecutionOptions(cwd=str(not_a_dir))
        )
        assert not result.ok
        assert "126" in result.error
        assert not parse("A=$(ec\x00ho hi)").ok

    def test_sync_call(self):
        result = SystemCommandExecutor()(sys.executable, ["-c", "print(42)"], ExecutionOptions())
        assert result.stdout.strip() == "42"

    @pytest.mark.skipif(shutil.which("echo") is None, reason="echo not available")
    def test_default_executor_in_parser(self):
        result = parse("FOO=$(echo hi there)")
        assert result.vars == {"FOO": "hi there"}


class TestRestrictedCommandExecutor:
    """Allow-listing commands."""

    def test_allowed_command_runs(self, echo_executor):
        executor = RestrictedCommandExecutor({"echo"}, echo_executor)
        result = parse("FOO=$(echo hi)", executor=executor)
        assert result.vars == {"FOO": "hi"}
        assert len(echo_executor.calls) == 1

    def test_other_commands_are_refused(self, echo_executor):
        executor = RestrictedCommandExecutor({"echo"}, echo_executor)
        result = parse("FOO=$(rm -rf /)", executor=executor)
        assert not result.ok
        assert "126" in result.error
        assert "not permitted" in result.error
        assert echo_executor.calls == []

    def test_empty_allow_list_disables_substitution(self, echo_executor):
        executor = RestrictedCommandExecutor((), echo_executor)
        assert not parse("FOO=$(echo hi)", executor=executor).ok
        assert echo_executor.calls == []

    def test_defaults_to_system_executor(self):
        assert isinstance(RestrictedCommandExecutor(["git"]).executor, SystemCommandExecutor)
