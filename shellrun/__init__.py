"""Run external commands, capture or stream their output, and sequence them."""

from .exceptions import InvalidCommandError, LaunchError
from .exec import (
    CommandExecutor,
    ExecutionOptions,
    ExecutionResult,
    ExecutionStatus,
    OutputMode,
    execute,
    tokenize,
)
from .workflow import SequenceExecutor, execute_sequence

__all__ = [
    "InvalidCommandError",
    "LaunchError",
    "CommandExecutor",
    "ExecutionOptions",
    "ExecutionResult",
    "ExecutionStatus",
    "OutputMode",
    "execute",
    "tokenize",
    "SequenceExecutor",
    "execute_sequence",
]
