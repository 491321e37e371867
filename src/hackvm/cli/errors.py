"""
CLI Error Reporting
===================

Exit codes, error messages and logging setup shared by vmtranslate and
hackasm.
"""

import logging
import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click


class ExitCode(IntEnum):
    """Standard exit codes for CLI tools."""
    SUCCESS = 0
    BUILD_ERROR = 1      # Translation or assembly error
    INVALID_ARGS = 2     # Invalid arguments or missing files
    INTERNAL_ERROR = 3   # Unexpected internal error


def configure_logging(verbose: bool) -> None:
    """Send toolchain log records to stderr; DEBUG and up when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def describe_error(error: Exception, error_type: str | None = None) -> tuple[ExitCode, str]:
    """
    Map an exception to an exit code and the message shown to the user.

    Located errors carry their own ``file:line:col: error:`` prefix and
    source context, so they are shown unchanged.
    """
    from hackvm.errors import HackVMError, TranslatorInputError, _LocatedError

    if isinstance(error, TranslatorInputError):
        # Nothing to translate: an argument problem
        return ExitCode.INVALID_ARGS, str(error)
    if isinstance(error, _LocatedError):
        return ExitCode.BUILD_ERROR, str(error)
    if isinstance(error, HackVMError):
        prefix = f"{error_type} error" if error_type else "Error"
        return ExitCode.BUILD_ERROR, f"{prefix}: {error}"
    if isinstance(error, (click.BadParameter, FileNotFoundError, PermissionError)):
        return ExitCode.INVALID_ARGS, f"Error: {error}"
    return ExitCode.INTERNAL_ERROR, f"Internal error: {error}"


def handle_cli_exception(
    error: Exception,
    verbose: bool = False,
    error_type: str | None = None
) -> NoReturn:
    """
    Report an exception raised by a CLI command and exit.

    Args:
        error: The exception that was raised
        verbose: If True, print the traceback of internal errors
        error_type: Prefix for errors without a source location
                    (e.g., "Translation")

    Raises:
        SystemExit: Always, with the code from describe_error()
    """
    code, message = describe_error(error, error_type)
    click.echo(message, err=True)
    if code is ExitCode.INTERNAL_ERROR and verbose:
        traceback.print_exc()
    sys.exit(code)
