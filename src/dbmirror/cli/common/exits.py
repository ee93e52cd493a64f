"""Exit handling utilities for the CLI."""

from typing import NoReturn

import typer

from dbmirror.cli.common.output import out

EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


def die(msg: str, code: int = EXIT_FAILURE) -> NoReturn:
    """Exit with an error message and optional exit code."""
    out.error(msg)
    raise typer.Exit(code)


def exit_from_exc(exc: Exception, *, message: str, code: int = EXIT_FAILURE) -> NoReturn:
    """
    Print an error message and exit, chaining the original exception.

    Exists to satisfy pylint W0707 and to standardize error exits.
    """
    out.error(message)
    raise typer.Exit(code) from exc
