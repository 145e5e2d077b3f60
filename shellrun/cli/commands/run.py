"""Run command implementation for sequence files."""

import asyncio
import dataclasses
import logging
from argparse import Namespace
from pathlib import Path

from shellrun.exceptions import InvalidCommandError, LaunchError, SequenceValidationError
from shellrun.exec import ExecutionOptions, OutputMode
from shellrun.loader import SequenceLoader
from shellrun.workflow import execute_sequence

from .common import LAUNCH_FAILURE_EXIT_CODE, emit_results, parse_env, setup_logging, to_exit_status


logger = logging.getLogger(__name__)


def apply_overrides(options: ExecutionOptions, args: Namespace) -> ExecutionOptions:
    """Layer command line flags over the options read from the sequence file."""
    overrides = {}
    if args.output:
        overrides['output_mode'] = OutputMode.parse(args.output)
    if args.verbose:
        overrides['verbose'] = True
    if args.continue_on_error:
        overrides['continue_on_error'] = True
    if args.cwd:
        overrides['cwd'] = Path(args.cwd)
    env = parse_env(args.env)
    if env is not None:
        overrides['env'] = env
    return dataclasses.replace(options, **overrides)


def run_sequence(args: Namespace) -> int:
    """
    Run every command of a sequence file.

    Returns 0 when all attempted commands succeeded, otherwise the exit code
    of the first failed command.
    """
    setup_logging(args)

    sequence_path = Path(args.sequence).resolve()
    if not sequence_path.exists():
        logger.error(f"Sequence file not found: {sequence_path}")
        return 1

    logger.debug(f"Loading sequence: {sequence_path}")
    try:
        definition = SequenceLoader().load(sequence_path)
    except SequenceValidationError as e:
        for error in e.errors:
            logger.error(f"Validation error: {error.message}" + (f" ({error.path})" if error.path else ""))
        return e.exit_code

    try:
        options = apply_overrides(definition.options, args)
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        return 2

    if args.dry_run:
        label = f"'{definition.name}'" if definition.name else str(sequence_path)
        logger.info(f"[DRY RUN] Sequence {label} validation successful: {len(definition.commands)} command(s)")
        for command in definition.commands:
            logger.info(f"[DRY RUN] Would run: {command}")
        return 0

    try:
        results = asyncio.run(execute_sequence(definition.commands, options))
    except InvalidCommandError as e:
        logger.error(str(e))
        return 2
    except LaunchError as e:
        logger.error(str(e))
        return LAUNCH_FAILURE_EXIT_CODE

    emit_results(results, options.output_mode, args.json)

    attempted = len(results)
    if attempted < len(definition.commands):
        logger.info(f"Ran {attempted} of {len(definition.commands)} command(s)")

    for result in results:
        if not result.succeeded:
            return to_exit_status(result.exit_code)
    return 0
