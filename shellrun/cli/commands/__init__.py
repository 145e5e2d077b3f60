"""CLI command handlers."""

from .execute import exec_command
from .run import run_sequence

__all__ = ['exec_command', 'run_sequence']
