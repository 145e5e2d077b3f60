"""Helpers shared by the CLI command handlers."""

import json
import logging
import sys
from argparse import Namespace
from typing import Dict, List, Optional

from shellrun.exec import ExecutionResult, OutputMode


# Conventional shell status when a program cannot be found or started
LAUNCH_FAILURE_EXIT_CODE = 127


def setup_logging(args: Namespace) -> None:
    """Configure root logging from --log-level, --verbose and --quiet."""
    log_level = getattr(logging, args.log_level.upper())
    if args.quiet:
        log_level = logging.ERROR
    elif args.verbose:
        log_level = min(log_level, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def parse_env(pairs: Optional[List[str]]) -> Optional[Dict[str, str]]:
    """
    Parse KEY=VALUE pairs into an environment mapping.

    Returns None when no pairs were given so the child inherits the caller's
    environment; otherwise the mapping replaces it entirely.
    """
    if not pairs:
        return None

    env = {}
    for item in pairs:
        if '=' not in item:
            raise ValueError(f"Invalid env format: {item}. Expected KEY=VALUE")
        key, value = item.split('=', 1)
        if not key:
            raise ValueError(f"Invalid env format: {item}. Key must not be empty")
        env[key] = value
    return env


def to_exit_status(exit_code: int) -> int:
    """Map a child exit code to a process exit status (signals become 128+N)."""
    if exit_code < 0:
        return 128 - exit_code
    return exit_code


def emit_results(results: List[ExecutionResult], mode: OutputMode, as_json: bool) -> None:
    """Print captured output or a JSON report after execution."""
    if as_json:
        payload = [result.to_dict() for result in results]
        print(json.dumps(payload, indent=2))
        return

    # Tee output was already streamed while the process ran
    if mode == OutputMode.CAPTURE:
        for result in results:
            sys.stdout.write(result.output)
        sys.stdout.flush()
