"""
Sequence executor for running commands in order.

A non-zero exit stops the sequence unless continue_on_error is set, in which
case every command is attempted.
"""

import logging
from typing import List, Optional, Sequence

from ..exec.command_executor import CommandExecutor, ExecutionOptions, ExecutionResult


logger = logging.getLogger(__name__)


class SequenceExecutor:
    """Runs a list of commands one after another with shared options."""

    def __init__(self, executor: Optional[CommandExecutor] = None):
        self.executor = executor or CommandExecutor()

    async def execute(
        self,
        commands: Sequence[str],
        options: Optional[ExecutionOptions] = None,
    ) -> List[ExecutionResult]:
        """
        Execute commands sequentially.

        Args:
            commands: Command lines in execution order
            options: Options shared by every command

        Returns:
            One result per attempted command; shorter than commands when stopped early
        """
        options = options or ExecutionOptions()
        results: List[ExecutionResult] = []

        for index, command in enumerate(commands):
            result = await self.executor.execute(command, options)
            results.append(result)

            if result.exit_code == 0:
                continue

            remaining = len(commands) - index - 1
            if not options.continue_on_error:
                if remaining:
                    logger.error(f"Command '{command}' failed with exit code {result.exit_code}. "
                                 f"Stopping sequence, skipping {remaining} remaining command(s)")
                break

            logger.warning(f"Command '{command}' failed with exit code {result.exit_code}. "
                           f"Continuing sequence (continue_on_error=true)")

        return results


async def execute_sequence(
    commands: Sequence[str],
    options: Optional[ExecutionOptions] = None,
    executor: Optional[CommandExecutor] = None,
) -> List[ExecutionResult]:
    """Execute commands in order, stopping on the first failure unless told to continue."""
    return await SequenceExecutor(executor).execute(commands, options)
