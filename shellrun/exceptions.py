"""Shellrun exceptions."""

from typing import List, Sequence
from dataclasses import dataclass


class InvalidCommandError(ValueError):
    """Raised when a command string yields no tokens to execute."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Invalid command: {command!r} contains no program to run")


class LaunchError(RuntimeError):
    """Raised when the OS cannot create the process (bad path, permissions, cwd)."""

    def __init__(self, argv: Sequence[str], reason: str):
        self.argv = list(argv)
        self.reason = reason
        super().__init__(f"Failed to launch {self.argv[0]!r}: {reason}")


@dataclass
class ValidationError:
    """Single validation error."""
    message: str
    path: str = ""
    exit_code: int = 2


class SequenceValidationError(Exception):
    """Raised when a sequence file fails validation.

    The loader collects every problem before raising so the CLI can report
    them all at once and map to the validation exit code.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        self.exit_code = 2

        messages = []
        for error in errors:
            if error.path:
                messages.append(f"Validation error at {error.path}: {error.message}")
            else:
                messages.append(f"Validation error: {error.message}")

        super().__init__("\n".join(messages))
