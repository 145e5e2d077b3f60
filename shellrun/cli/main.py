"""Main CLI entry point for shellrun."""

import argparse
import sys
from typing import Optional

from shellrun.exec import OutputMode

from .commands import exec_command, run_sequence


OUTPUT_CHOICES = [mode.value for mode in OutputMode]


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log a diagnostic block around each execution'
    )
    parser.add_argument(
        '--cwd',
        type=str,
        help='Working directory for the child process'
    )
    parser.add_argument(
        '--env',
        action='append',
        metavar='KEY=VALUE',
        help='Environment variable (can be specified multiple times; replaces the inherited environment)'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print results as JSON'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress non-error log output'
    )
    parser.add_argument(
        '--log-level',
        choices=['debug', 'info', 'warning', 'error'],
        default='warning',
        help='Set log level'
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the shellrun CLI."""
    parser = argparse.ArgumentParser(
        prog='shellrun',
        description='Run commands and capture or stream their output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Exec command
    exec_parser = subparsers.add_parser('exec', help='Execute a single command line')
    exec_parser.add_argument(
        'command_line',
        type=str,
        help='Command line to execute, e.g. \'echo "hello world"\''
    )
    exec_parser.add_argument(
        '--output',
        choices=OUTPUT_CHOICES,
        default=OutputMode.STDOUT.value,
        help='Where process output goes'
    )
    _add_common_arguments(exec_parser)

    # Run command
    run_parser = subparsers.add_parser('run', help='Run a sequence file')
    run_parser.add_argument(
        'sequence',
        type=str,
        help='Path to sequence YAML file'
    )
    run_parser.add_argument(
        '--output',
        choices=OUTPUT_CHOICES,
        default=None,
        help='Where process output goes (overrides the file)'
    )
    run_parser.add_argument(
        '--continue-on-error',
        action='store_true',
        help='Keep running after a command fails'
    )
    run_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Validate without execution'
    )
    _add_common_arguments(run_parser)

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'exec':
        return exec_command(parsed_args)
    elif parsed_args.command == 'run':
        return run_sequence(parsed_args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
