"""
Execution module for shellrun.
Handles command tokenization, process execution, and output routing.
"""

from .tokenizer import tokenize
from .output_capture import OutputMode, OutputSink
from .command_executor import (
    CommandExecutor,
    ExecutionOptions,
    ExecutionResult,
    ExecutionStatus,
    drain_streams,
    execute,
)

__all__ = [
    "tokenize",
    "OutputMode",
    "OutputSink",
    "CommandExecutor",
    "ExecutionOptions",
    "ExecutionResult",
    "ExecutionStatus",
    "drain_streams",
    "execute",
]
