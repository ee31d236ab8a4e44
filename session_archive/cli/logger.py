"""
CLI logger adapter - implements LoggerProtocol for command-line usage.

Info lines go to stdout in verbose mode only; warnings and errors always go to
stderr so they stay visible when stdout is redirected.
"""

from __future__ import annotations

import typer


class CLILogger:
    """
    Logger implementation for CLI (implements LoggerProtocol from protocols).

    Archive services call it synchronously while reading or writing.
    """

    def __init__(self, verbose: bool = False) -> None:
        """
        Initialize CLI logger.

        Args:
            verbose: If True, show info messages. If False, only warnings/errors.
        """
        self.verbose = verbose
        self.warnings = 0

    def info(self, message: str) -> None:
        if self.verbose:
            typer.echo(f'[INFO] {message}')

    def warning(self, message: str) -> None:
        self.warnings += 1
        typer.secho(f'[WARNING] {message}', fg=typer.colors.YELLOW, err=True)

    def error(self, message: str) -> None:
        typer.secho(f'[ERROR] {message}', fg=typer.colors.RED, err=True)
