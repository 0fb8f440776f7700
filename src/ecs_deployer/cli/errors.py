"""Error rendering for the CLI."""

from collections.abc import Iterator
from enum import Enum

from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
)
from rich.markup import escape

from ecs_deployer.cli.ui import error_console
from ecs_deployer.core.errors import DeploymentError, RemoteRejectionError, StabilityTimeoutError

MUTATING_STAGES = frozenset({"update", "wait", "autoscaling"})
# spellchecker:ignore-next-line
CREDENTIAL_ERROR_CODES = frozenset(
    {
        "ExpiredToken",
        "ExpiredTokenException",
        "UnrecognizedClientException",
        "InvalidClientTokenId",
        "InvalidSignatureException",
    }
)
PERMISSION_ERROR_CODES = frozenset({"AccessDenied", "AccessDeniedException"})


class AwsFailure(str, Enum):
    """Kinds of AWS failure that get an extra hint."""

    CREDENTIALS = "credentials"
    PERMISSIONS = "permissions"
    ENDPOINT = "endpoint"


HINTS = {
    AwsFailure.CREDENTIALS: (
        "AWS credentials are missing, invalid, or expired. If using a profile/SSO, run: "
        "aws sso login --profile <profile>. If using temporary keys, refresh "
        "AWS_SESSION_TOKEN and retry."
    ),
    AwsFailure.PERMISSIONS: (
        "The AWS identity is not authorized for this call. Check the IAM policy for the "
        "action named above (RegisterTaskDefinition also needs iam:PassRole on the task roles)."
    ),
    AwsFailure.ENDPOINT: (
        "Could not reach the AWS endpoint. Check network connectivity and the AWS region."
    ),
}


def report_error(exc: Exception) -> None:
    """Print the failing stage and error text, then any AWS-specific hint.

    Args:
        exc: Raised exception from a deployment stage.
    """
    text = escape(str(exc))
    if isinstance(exc, StabilityTimeoutError):
        error_console.print(f"[yellow]Deployment did not stabilise in time:[/yellow] {text}")
    elif isinstance(exc, DeploymentError):
        error_console.print(f"[red]Deployment failed during {exc.stage}:[/red] {text}")
    else:
        error_console.print(f"[red]Deployment failed:[/red] {text}")

    failure = classify_aws_failure(exc)
    if failure is not None:
        error_console.print(f"[dim]{HINTS[failure]}[/dim]")

    if isinstance(exc, DeploymentError) and exc.stage in MUTATING_STAGES:
        error_console.print("[dim]Changes accepted before this step were not rolled back.[/dim]")


def classify_aws_failure(exc: BaseException) -> AwsFailure | None:
    """Return the kind of AWS failure found anywhere in the exception's causes."""
    for item in iter_causes(exc):
        if isinstance(item, EndpointConnectionError):
            return AwsFailure.ENDPOINT
        if isinstance(item, (NoCredentialsError, ProfileNotFound)):
            return AwsFailure.CREDENTIALS
        code = _error_code(item)
        if code in CREDENTIAL_ERROR_CODES:
            return AwsFailure.CREDENTIALS
        if code in PERMISSION_ERROR_CODES:
            return AwsFailure.PERMISSIONS
    return None


def iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield an exception followed by its causes, stopping at any cycle."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _error_code(exc: BaseException) -> str | None:
    if isinstance(exc, RemoteRejectionError):
        return exc.remote_code
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", "")) or None
    return None
