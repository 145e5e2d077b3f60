"""
Tests for the command executor.
Covers exit status normalization, output modes, overrides, and failure handling.
"""

import asyncio
import io
import logging
import re
import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from shellrun.exceptions import InvalidCommandError, LaunchError
from shellrun.exec import (
    CommandExecutor,
    ExecutionOptions,
    ExecutionResult,
    ExecutionStatus,
    OutputMode,
    OutputSink,
    drain_streams,
    execute,
)


def py(code: str) -> str:
    """Build a command line running a Python snippet (no double quotes allowed in code)."""
    return f'"{sys.executable}" -c "{code}"'


@pytest.fixture
def console():
    return io.BytesIO()


@pytest.fixture
def executor(console):
    return CommandExecutor(console=console)


class TestExecutionStatus:
    """Test result value types."""

    def test_status_from_exit_code(self):
        assert ExecutionStatus.from_exit_code(0) == ExecutionStatus(exit_code=0, succeeded=True)
        assert ExecutionStatus.from_exit_code(7) == ExecutionStatus(exit_code=7, succeeded=False)

    def test_result_to_dict(self):
        result = ExecutionResult(status=ExecutionStatus.from_exit_code(1), output="x")
        assert result.to_dict() == {
            "status": {"exit_code": 1, "succeeded": False},
            "output": "x",
        }
        assert result.exit_code == 1
        assert result.succeeded is False

    def test_options_defaults(self):
        options = ExecutionOptions()
        assert options.output_mode == OutputMode.STDOUT
        assert options.verbose is False
        assert options.continue_on_error is False
        assert options.cwd is None
        assert options.env is None

    def test_options_accept_mode_name(self):
        assert ExecutionOptions(output_mode="tee").output_mode is OutputMode.TEE

    def test_options_reject_null_mode(self):
        with pytest.raises(ValueError):
            ExecutionOptions(output_mode=None)

    @pytest.mark.parametrize("chunk_size", [0, -1])
    def test_executor_rejects_non_positive_chunk_size(self, chunk_size):
        with pytest.raises(ValueError) as exc_info:
            CommandExecutor(chunk_size=chunk_size)
        assert "chunk_size" in str(exc_info.value)


class TestExitStatus:
    """Test exit codes are passed through verbatim."""

    @pytest.mark.asyncio
    async def test_success(self, executor):
        result = await executor.execute(py("pass"), ExecutionOptions(output_mode=OutputMode.NONE))

        assert result.status.exit_code == 0
        assert result.status.succeeded is True
        assert result.output == ""

    @pytest.mark.asyncio
    async def test_failure_exit_code(self, executor):
        result = await executor.execute(
            py("import sys; sys.exit(7)"),
            ExecutionOptions(output_mode=OutputMode.NONE),
        )

        assert result.status.exit_code == 7
        assert result.status.succeeded is False

    @pytest.mark.asyncio
    async def test_non_zero_exit_is_not_an_exception(self, executor):
        result = await executor.execute(
            py("import sys; sys.stderr.write('bad'); sys.exit(3)"),
            ExecutionOptions(output_mode=OutputMode.CAPTURE),
        )

        assert result.exit_code == 3
        assert result.output == "bad"


class TestOutputModes:
    """Test none/stdout/capture/tee routing for real processes."""

    BOTH_STREAMS = py("import sys; sys.stdout.write('out'); sys.stdout.flush(); sys.stderr.write('err')")

    @pytest.mark.asyncio
    async def test_capture_collects_both_streams(self, executor, console):
        result = await executor.execute(self.BOTH_STREAMS, ExecutionOptions(output_mode=OutputMode.CAPTURE))

        assert result.succeeded
        assert sorted([result.output[:3], result.output[3:]]) == ["err", "out"]
        assert console.getvalue() == b""

    @pytest.mark.asyncio
    async def test_stdout_streams_to_console(self, executor, console):
        result = await executor.execute(self.BOTH_STREAMS, ExecutionOptions(output_mode=OutputMode.STDOUT))

        assert result.output == ""
        streamed = console.getvalue()
        assert b"out" in streamed
        assert b"err" in streamed
        assert len(streamed) == 6

    @pytest.mark.asyncio
    async def test_tee_does_both(self, executor, console):
        result = await executor.execute(
            py("print('hello world')"),
            ExecutionOptions(output_mode=OutputMode.TEE),
        )

        assert result.output.strip() == "hello world"
        assert console.getvalue().decode().strip() == "hello world"
        assert console.getvalue().decode() == result.output

    @pytest.mark.asyncio
    async def test_none_discards_output(self, executor, console):
        result = await executor.execute(
            py("print('ignored')"),
            ExecutionOptions(output_mode=OutputMode.NONE),
        )

        assert result.succeeded
        assert result.output == ""
        assert console.getvalue() == b""

    @pytest.mark.asyncio
    async def test_none_mode_large_output_does_not_block(self, executor):
        """Output larger than a pipe buffer must not hang in none mode."""
        result = await asyncio.wait_for(
            executor.execute(
                py("import sys; sys.stdout.write('x' * 1000000)"),
                ExecutionOptions(output_mode=OutputMode.NONE),
            ),
            timeout=30,
        )

        assert result.succeeded

    @pytest.mark.asyncio
    async def test_large_output_captured_exactly(self, executor):
        result = await executor.execute(
            py("import sys; sys.stdout.write('y' * 200000)"),
            ExecutionOptions(output_mode=OutputMode.CAPTURE),
        )

        assert result.output == "y" * 200000

    @pytest.mark.asyncio
    async def test_multibyte_output_with_single_byte_reads(self, console):
        executor = CommandExecutor(console=console, chunk_size=1)

        result = await executor.execute(
            py("import sys; sys.stdout.buffer.write('h\\u00e9llo \\u20ac'.encode('utf-8'))"),
            ExecutionOptions(output_mode=OutputMode.TEE),
        )

        assert result.output == "héllo €"
        assert console.getvalue() == "héllo €".encode("utf-8")

    @pytest.mark.asyncio
    async def test_default_console_is_process_stdout(self, capsysbinary):
        result = await CommandExecutor().execute(py("print('to stdout')"))

        assert result.output == ""
        assert capsysbinary.readouterr().out.strip() == b"to stdout"

    @pytest.mark.asyncio
    async def test_module_level_execute(self):
        result = await execute(py("print(42)"), ExecutionOptions(output_mode=OutputMode.CAPTURE))
        assert result.output.strip() == "42"


class TestOverrides:
    """Test working directory and environment overrides."""

    @pytest.mark.asyncio
    async def test_cwd_override(self, executor, tmp_path):
        result = await executor.execute(
            py("import os; print(os.getcwd())"),
            ExecutionOptions(output_mode=OutputMode.CAPTURE, cwd=tmp_path),
        )

        assert Path(result.output.strip()).resolve() == tmp_path.resolve()

    @pytest.mark.asyncio
    async def test_env_replaces_environment(self, executor, monkeypatch):
        monkeypatch.setenv("SHELLRUN_INHERITED", "yes")

        result = await executor.execute(
            py("import os; print(os.environ.get('SHELLRUN_MARKER'), 'SHELLRUN_INHERITED' in os.environ)"),
            ExecutionOptions(output_mode=OutputMode.CAPTURE, env={"SHELLRUN_MARKER": "set"}),
        )

        assert result.output.split() == ["set", "False"]

    @pytest.mark.asyncio
    async def test_environment_inherited_by_default(self, executor, monkeypatch):
        monkeypatch.setenv("SHELLRUN_INHERITED", "yes")

        result = await executor.execute(
            py("import os; print(os.environ.get('SHELLRUN_INHERITED'))"),
            ExecutionOptions(output_mode=OutputMode.CAPTURE),
        )

        assert result.output.strip() == "yes"


class TestFailures:
    """Test invalid commands, launch failures, and read errors."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("command", ["", "   ", "\t"])
    async def test_empty_command_rejected_without_spawn(self, executor, command):
        with patch("asyncio.create_subprocess_exec") as spawn:
            with pytest.raises(InvalidCommandError) as exc_info:
                await executor.execute(command)

        spawn.assert_not_called()
        assert exc_info.value.command == command
        assert isinstance(exc_info.value, ValueError)

    @pytest.mark.asyncio
    async def test_missing_program_raises_launch_error(self, executor):
        with pytest.raises(LaunchError) as exc_info:
            await executor.execute("/nonexistent/shellrun-program --flag")

        assert exc_info.value.argv == ["/nonexistent/shellrun-program", "--flag"]
        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.asyncio
    async def test_embedded_null_byte_raises_launch_error(self, executor):
        with pytest.raises(LaunchError) as exc_info:
            await executor.execute(py("pass") + " bad\x00arg")

        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_missing_cwd_raises_launch_error(self, executor, tmp_path):
        with pytest.raises(LaunchError):
            await executor.execute(
                py("pass"),
                ExecutionOptions(output_mode=OutputMode.NONE, cwd=tmp_path / "missing"),
            )

    @pytest.mark.asyncio
    async def test_read_error_still_reports_exit_status(self, executor):
        """A drain cut short by a read error still awaits the real exit code."""
        with patch(
            "shellrun.exec.command_executor.drain_streams",
            new=AsyncMock(return_value=False),
        ):
            result = await executor.execute(
                py("import sys; sys.exit(5)"),
                ExecutionOptions(output_mode=OutputMode.CAPTURE),
            )

        assert result.exit_code == 5
        assert result.output == ""


class FailingStream:
    """Stream whose reads always fail."""

    async def read(self, n):
        raise OSError("stream closed")


def make_reader(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


class TestDrainStreams:
    """Test the stream multiplexer directly."""

    @pytest.mark.asyncio
    async def test_drains_until_both_streams_end(self):
        sink = OutputSink(OutputMode.CAPTURE)

        drained = await drain_streams(
            {"stdout": make_reader(b"a" * 10), "stderr": make_reader(b"b" * 3)},
            sink,
            chunk_size=4,
        )

        assert drained is True
        output = sink.finish()
        assert output.count("a") == 10
        assert output.count("b") == 3

    @pytest.mark.asyncio
    async def test_missing_stream_is_skipped(self):
        sink = OutputSink(OutputMode.CAPTURE)

        drained = await drain_streams({"stdout": make_reader(b"only"), "stderr": None}, sink)

        assert drained is True
        assert sink.finish() == "only"

    @pytest.mark.asyncio
    async def test_read_error_stops_draining(self):
        sink = OutputSink(OutputMode.CAPTURE)

        drained = await drain_streams(
            {"stdout": make_reader(b"partial"), "stderr": FailingStream()},
            sink,
        )

        assert drained is False


class TestVerboseLogging:
    """Test diagnostic logging around executions."""

    CONTEXT_PATTERN = re.compile(r"Exec context: ([0-9a-f-]{36})")

    @pytest.mark.asyncio
    async def test_verbose_logs_context_block(self, executor, caplog):
        caplog.set_level(logging.INFO, logger="shellrun.exec.command_executor")
        command = py("print('hi')")

        result = await executor.execute(
            command,
            ExecutionOptions(output_mode=OutputMode.CAPTURE, verbose=True),
        )

        messages = [record.getMessage() for record in caplog.records]
        context_ids = [m.group(1) for m in map(self.CONTEXT_PATTERN.search, messages) if m]
        assert len(context_ids) == 2
        assert context_ids[0] == context_ids[1]

        text = "\n".join(messages)
        assert "Exec options:" in text
        assert f"Exec command: {command}" in text
        assert "Exec command splits:" in text
        assert "Exec result:" in text
        assert result.output.strip() == "hi"

    @pytest.mark.asyncio
    async def test_each_call_gets_new_context_id(self, executor, caplog):
        caplog.set_level(logging.INFO, logger="shellrun.exec.command_executor")
        options = ExecutionOptions(output_mode=OutputMode.NONE, verbose=True)

        await executor.execute(py("pass"), options)
        await executor.execute(py("pass"), options)

        context_ids = {
            m.group(1)
            for m in map(self.CONTEXT_PATTERN.search, (r.getMessage() for r in caplog.records))
            if m
        }
        assert len(context_ids) == 2

    @pytest.mark.asyncio
    async def test_verbose_block_logged_at_info(self, executor, caplog):
        """Diagnostics use INFO, so they appear once logging is configured at that level."""
        caplog.set_level(logging.INFO, logger="shellrun.exec.command_executor")

        await executor.execute(py("pass"), ExecutionOptions(output_mode=OutputMode.NONE, verbose=True))

        context_records = [r for r in caplog.records if "Exec" in r.getMessage()]
        assert context_records
        assert {r.levelno for r in context_records} == {logging.INFO}

    @pytest.mark.asyncio
    async def test_quiet_by_default(self, executor, caplog):
        caplog.set_level(logging.DEBUG, logger="shellrun")

        await executor.execute(py("pass"), ExecutionOptions(output_mode=OutputMode.NONE))

        assert not any("Exec context" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_injected_logger_receives_diagnostics(self, console, caplog):
        injected = logging.getLogger("tests.injected")
        caplog.set_level(logging.INFO, logger="tests.injected")
        executor = CommandExecutor(logger=injected, console=console)

        await executor.execute(py("pass"), ExecutionOptions(output_mode=OutputMode.NONE, verbose=True))

        assert any(r.name == "tests.injected" and "Exec context" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_verbose_does_not_change_result(self, executor):
        command = py("import sys; print('same'); sys.exit(2)")

        quiet = await executor.execute(command, ExecutionOptions(output_mode=OutputMode.CAPTURE))
        loud = await executor.execute(command, ExecutionOptions(output_mode=OutputMode.CAPTURE, verbose=True))

        assert quiet == loud
