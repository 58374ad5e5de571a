"""CLI error handling for splitbuild-cli.

Maps splitbuild-core exceptions to user-facing messages and exit codes.
"""

from __future__ import annotations

from typing import NoReturn

import click

from splitbuild_cli.output import error
from splitbuild_core.errors import (
    BuildFailedError,
    ConfigurationError,
    SourceTreeError,
    SplitbuildError,
)

# Exit codes: 0 success, 1 user or build error, 2 filesystem error
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # Invalid catalog/configuration, failed build
EXIT_SYSTEM_ERROR = 2  # Unreadable source tree, unwritable output


class CLIError(click.ClickException):
    """CLI exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting."""
        error(self.format_message())


def exit_code_for(err: SplitbuildError) -> int:
    """Exit code for a splitbuild-core exception."""
    if isinstance(err, SourceTreeError):
        return EXIT_SYSTEM_ERROR
    if isinstance(err, BuildFailedError) and err.failures and all(
        failure.error_type == SourceTreeError.__name__ for failure in err.failures
    ):
        return EXIT_SYSTEM_ERROR
    return EXIT_USER_ERROR


def handle_splitbuild_error(err: SplitbuildError) -> NoReturn:
    """Convert a splitbuild-core exception into a CLIError.

    Raises:
        CLIError: Always.
    """
    if isinstance(err, ConfigurationError):
        raise CLIError(f"Invalid build catalog or configuration: {err.user_message}") from err
    raise CLIError(err.user_message, exit_code=exit_code_for(err)) from err


def handle_permission_error(path: str, operation: str = "write") -> NoReturn:
    """Handle permission errors.

    Raises:
        CLIError: Always.
    """
    raise CLIError(f"Permission denied: Cannot {operation} {path}", exit_code=EXIT_SYSTEM_ERROR)

