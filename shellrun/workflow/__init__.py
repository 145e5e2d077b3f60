"""Sequential execution of command lists."""

from .sequence import SequenceExecutor, execute_sequence

__all__ = ['SequenceExecutor', 'execute_sequence']
