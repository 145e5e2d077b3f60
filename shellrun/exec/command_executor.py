"""
Command executor module for running commands and draining their output.
Spawns the process from a tokenized command line, multiplexes its stdout and
stderr into the configured destinations, and reports the exit status.
"""

import asyncio
import logging
import subprocess
import sys
import uuid
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union
from dataclasses import dataclass

from .output_capture import OutputMode, OutputSink
from .tokenizer import tokenize
from ..exceptions import InvalidCommandError, LaunchError


logger = logging.getLogger(__name__)

# Read size per stream per multiplexer turn
CHUNK_SIZE = 4096


@dataclass
class ExecutionOptions:
    """
    Options shared by single executions and sequences.

    Attributes:
        output_mode: Where process output goes (default: stream to stdout)
        verbose: Log a diagnostic block around each execution. The block is
            logged at INFO on the executor's logger, so callers must configure
            logging (e.g. logging.basicConfig(level=logging.INFO)) to see it
        continue_on_error: Keep running a sequence after a non-zero exit
        cwd: Working directory override (None inherits the caller's)
        env: Full replacement environment (None inherits the caller's)
    """
    output_mode: OutputMode = OutputMode.STDOUT
    verbose: bool = False
    continue_on_error: bool = False
    cwd: Optional[Union[str, Path]] = None
    env: Optional[Dict[str, str]] = None

    def __post_init__(self):
        self.output_mode = OutputMode.parse(self.output_mode)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output_mode": self.output_mode.value,
            "verbose": self.verbose,
            "continue_on_error": self.continue_on_error,
            "cwd": str(self.cwd) if self.cwd is not None else None,
            "env": dict(self.env) if self.env is not None else None,
        }


@dataclass
class ExecutionStatus:
    """Normalized completion status of a process."""
    exit_code: int
    succeeded: bool

    @classmethod
    def from_exit_code(cls, exit_code: int) -> 'ExecutionStatus':
        return cls(exit_code=exit_code, succeeded=exit_code == 0)


@dataclass
class ExecutionResult:
    """Result of executing one command."""
    status: ExecutionStatus
    output: str = ""  # Only populated for capture and tee modes

    @property
    def exit_code(self) -> int:
        return self.status.exit_code

    @property
    def succeeded(self) -> bool:
        return self.status.succeeded

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dict for logging and JSON output."""
        return {
            "status": {
                "exit_code": self.status.exit_code,
                "succeeded": self.status.succeeded,
            },
            "output": self.output,
        }


async def drain_streams(
    streams: Dict[str, Optional[asyncio.StreamReader]],
    sink: OutputSink,
    chunk_size: int = CHUNK_SIZE,
) -> bool:
    """
    Drain several readers into a sink until all of them reach end-of-stream.

    One read is kept in flight per stream; whichever finishes first is routed
    to the sink and re-armed. An empty read marks that stream as finished.
    When reads complete together they are handled in the order the streams
    were given.

    Args:
        streams: Readers keyed by stream name (None entries are skipped)
        sink: Destination for every chunk read
        chunk_size: Maximum bytes per read

    Returns:
        True if every stream reached EOF, False if a read error cut draining short
    """
    order = {name: index for index, name in enumerate(streams)}
    pending: Dict[asyncio.Future, str] = {}
    for name, stream in streams.items():
        if stream is not None:
            pending[asyncio.ensure_future(stream.read(chunk_size))] = name

    try:
        while pending:
            done, _ = await asyncio.wait(set(pending), return_when=asyncio.FIRST_COMPLETED)
            for task in sorted(done, key=lambda t: order[pending[t]]):
                name = pending.pop(task)
                try:
                    chunk = task.result()
                except OSError as e:
                    logger.debug(f"Read from {name} failed, stopping drain: {e}")
                    return False

                if not chunk:
                    continue

                sink.write(name, chunk)
                pending[asyncio.ensure_future(streams[name].read(chunk_size))] = name
        return True
    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


class CommandExecutor:
    """
    Executes command strings as child processes.
    Diagnostics go through an injected logger; streamed output goes to an
    injected binary console, or the process stdout when none is given.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        console: Optional[BinaryIO] = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        """
        Initialize command executor.

        Args:
            logger: Logger for verbose diagnostics (default: module logger)
            console: Binary stream for streamed output (default: sys.stdout.buffer)
            chunk_size: Maximum bytes per stream read
        """
        self.logger = logger or logging.getLogger(__name__)
        self.console = console
        # A zero-byte read is indistinguishable from end-of-stream
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        self.chunk_size = chunk_size

    async def execute(
        self,
        command: str,
        options: Optional[ExecutionOptions] = None,
    ) -> ExecutionResult:
        """
        Execute a command string.

        Args:
            command: Command line to tokenize and run
            options: Execution options (default: stream to stdout, not verbose)

        Returns:
            ExecutionResult with exit status and captured output

        Raises:
            InvalidCommandError: The command contains no tokens
            LaunchError: The process could not be created
        """
        options = options or ExecutionOptions()

        argv = tokenize(command)
        if not argv:
            raise InvalidCommandError(command)

        context_id = ""
        if options.verbose:
            context_id = str(uuid.uuid4())
            self.logger.info(f"Exec context: {context_id}")
            self.logger.info(f"    Exec options: {options.to_dict()}")
            self.logger.info(f"    Exec command: {command}")
            self.logger.info(f"    Exec command splits: {argv}")

        result = await self._run(argv, options)

        if options.verbose:
            self.logger.info(f"    Exec result: {result.to_dict()}")
            self.logger.info(f"Exec context: {context_id}")

        return result

    async def _spawn(self, argv: List[str], options: ExecutionOptions) -> asyncio.subprocess.Process:
        # Nothing reads the pipes in none mode, so discard output at the source
        if options.output_mode == OutputMode.NONE:
            target = subprocess.DEVNULL
        else:
            target = subprocess.PIPE

        try:
            return await asyncio.create_subprocess_exec(
                *argv,
                stdout=target,
                stderr=target,
                cwd=str(options.cwd) if options.cwd is not None else None,
                env=options.env,
            )
        except OSError as e:
            raise LaunchError(argv, e.strerror or str(e)) from e
        except ValueError as e:
            # e.g. an embedded null byte in the program path or an argument
            raise LaunchError(argv, str(e)) from e

    async def _run(self, argv: List[str], options: ExecutionOptions) -> ExecutionResult:
        process = await self._spawn(argv, options)

        sink = None
        try:
            if options.output_mode != OutputMode.NONE:
                console = None
                if options.output_mode.streams:
                    console = self.console or sys.stdout.buffer
                sink = OutputSink(options.output_mode, console=console)

                drained = await drain_streams(
                    {"stdout": process.stdout, "stderr": process.stderr},
                    sink,
                    self.chunk_size,
                )
                if not drained:
                    self.logger.debug(f"Output draining for {argv[0]} stopped early")

            exit_code = await process.wait()
        finally:
            # Only reached with a live child when draining or waiting raised
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        output = sink.finish() if sink is not None else ""
        return ExecutionResult(
            status=ExecutionStatus.from_exit_code(exit_code),
            output=output,
        )


async def execute(command: str, options: Optional[ExecutionOptions] = None) -> ExecutionResult:
    """Execute a command string with a default CommandExecutor."""
    return await CommandExecutor().execute(command, options)
