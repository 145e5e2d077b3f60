"""Exec command implementation."""

import asyncio
import logging
from argparse import Namespace

from shellrun.exceptions import InvalidCommandError, LaunchError
from shellrun.exec import ExecutionOptions, OutputMode, execute

from .common import LAUNCH_FAILURE_EXIT_CODE, emit_results, parse_env, setup_logging, to_exit_status


logger = logging.getLogger(__name__)


def exec_command(args: Namespace) -> int:
    """
    Execute a single command line.

    Returns the child's exit code as the CLI exit status.
    """
    setup_logging(args)

    try:
        options = ExecutionOptions(
            output_mode=OutputMode.parse(args.output),
            verbose=args.verbose,
            cwd=args.cwd,
            env=parse_env(args.env),
        )
        result = asyncio.run(execute(args.command_line, options))
    except InvalidCommandError as e:
        logger.error(str(e))
        return 2
    except LaunchError as e:
        logger.error(str(e))
        return LAUNCH_FAILURE_EXIT_CODE
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        return 2

    emit_results([result], options.output_mode, args.json)
    return to_exit_status(result.exit_code)
