"""Error types and error reporting for the Common Fate provider CLI."""

from typing import List, Optional

import typer


class CLIError(Exception):
    """Base error for anything the CLI reports to the user.

    ``info`` lines are printed after the main message, for example a hint
    telling the user which command to run next.
    """

    def __init__(self, message: str, info: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.info = list(info or [])


class UserInputError(CLIError):
    """Invalid input supplied on the command line or at a prompt."""


class UserCancelledError(CLIError):
    """The user declined a confirmation prompt."""


class NotDeployedError(CLIError):
    """The bootstrap stack does not exist in this account and region."""

    def __init__(self):
        super().__init__(
            "bootstrap stack has not yet been deployed in this account and region"
        )


class StackIntegrityError(CLIError):
    """CloudFormation returned an unexpected number of stacks."""


class ApiError(CLIError):
    """An API returned a typed error payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnhandledResponseError(ApiError):
    """An API returned a status code the caller does not know how to handle."""

    def __init__(self, status_code: int, body: str, service: str = "Common Fate API"):
        super().__init__(f"Unhandled response from the {service}", status_code)
        self.body = body
        self.info = [f"Status Code: {status_code}", body]


class CollisionError(CLIError):
    """A resource with the requested ID already exists."""


class HealthCheckTimeoutError(CLIError):
    """The handler did not report healthy before the polling deadline."""


def print_error(error: Exception) -> None:
    """Print an error, including any info lines, to stderr."""
    typer.echo(f"❌ Error: {error}", err=True)
    for line in getattr(error, "info", []):
        if line:
            typer.echo(f"   {line}", err=True)


def handle_error(error: Exception, exit_code: int = 1) -> None:
    """Report an error consistently across the CLI and exit."""
    print_error(error)
    raise typer.Exit(exit_code)


def handle_warning(message: str) -> None:
    """Handle warnings consistently across the CLI."""
    typer.echo(f"⚠️ Warning: {message}", err=True)


def handle_success(message: str) -> None:
    """Handle success messages consistently across the CLI."""
    typer.echo(f"✅ {message}", err=True)


def handle_info(message: str) -> None:
    """Handle info messages consistently across the CLI."""
    typer.echo(f"ℹ️ {message}", err=True)
