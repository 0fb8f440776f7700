"""CLI entrypoint for the ECS deployer."""

import logging
import signal
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import partial
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ecs_deployer.cli.errors import report_error
from ecs_deployer.cli.ui import console, error_console
from ecs_deployer.core.deployments.aws_ecs import EcsOrchestrator, create_session, get_identity
from ecs_deployer.core.errors import DeploymentCancelledError, StabilityTimeoutError
from ecs_deployer.core.parser import parse_request
from ecs_deployer.core.pipeline import DeploymentResult, plan, run_deployment
from ecs_deployer.core.settings import DeploySettings, get_settings

EXIT_FAILED = 1
EXIT_TIMED_OUT = 2
EXIT_CANCELLED = 130

_REQUEST_OPTIONS = [
    click.option("--image", required=True, help="Container image reference."),
    click.option("--cluster", required=True, help="ECS cluster name."),
    click.option("--service", required=True, help="ECS service name."),
    click.option("--task-family", required=True, help="Task definition family."),
    click.option("--container-name", required=True, help="Container to update."),
    click.option("--region", default=None, help="AWS region [default: from settings]."),
    click.option("--cpu", default="256", show_default=True, help="Task CPU units."),
    click.option("--memory", default="512", show_default=True, help="Task memory (MiB)."),
    click.option("--desired-count", default=None, help="Desired task count."),
    click.option(
        "--environment-variables",
        default=None,
        help='JSON array of {"name", "value"}. Omit to keep, [] to clear.',
    ),
    click.option(
        "--secrets",
        default=None,
        help='JSON array of {"name", "valueFrom"}. Omit to keep, [] to clear.',
    ),
    click.option(
        "--mount-points",
        default=None,
        help='JSON array of {"sourceVolume", "containerPath", "readOnly"}.',
    ),
    click.option(
        "--volumes",
        default=None,
        help='JSON array of {"name", "host" | "efsVolumeConfiguration"}.',
    ),
    click.option(
        "--enable-autoscaling/--no-enable-autoscaling",
        default=False,
        show_default=True,
        help="Configure target-tracking autoscaling after a stable deployment.",
    ),
    click.option("--min-capacity", default="1", show_default=True),
    click.option("--max-capacity", default="10", show_default=True),
    click.option(
        "--target-cpu-utilization",
        default="70",
        show_default=True,
        help="CPU target percent. Pass an empty value to leave the CPU policy alone.",
    ),
    click.option(
        "--target-memory-utilization",
        default="80",
        show_default=True,
        help="Memory target percent. Pass an empty value to leave the memory policy alone.",
    ),
    click.option("--scale-in-cooldown", default="300", show_default=True),
    click.option("--scale-out-cooldown", default="60", show_default=True),
]


def request_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the deployment request options to a command."""
    for option in reversed(_REQUEST_OPTIONS):
        func = option(func)
    return func


@click.group()
@click.option("--log-level", default=None, help="Logging level [default: from settings].")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Deploy container images to Amazon ECS services."""
    load_dotenv(Path.cwd() / ".env")
    settings = get_settings()
    configure_logging(log_level or settings.log_level)
    ctx.obj = settings


@cli.command()
@request_options
@click.option("--poll-interval", type=float, default=None, help="Seconds between status checks.")
@click.option("--max-attempts", type=int, default=None, help="Status checks before timing out.")
@click.pass_obj
def deploy(
    settings: DeploySettings,
    poll_interval: float | None,
    max_attempts: int | None,
    **params: Any,
) -> None:
    """Register a new revision, update the service and wait for it to stabilise."""
    updates: dict[str, Any] = {}
    if poll_interval is not None:
        updates["poll_interval_seconds"] = poll_interval
    if max_attempts is not None:
        updates["max_poll_attempts"] = max_attempts
    settings = settings.model_copy(update=updates)

    try:
        request = parse_request(_with_region(params, settings))
        session = create_session(request.region, settings.profile)
        identity = get_identity(session)
        account = identity.get("Account", "unknown")
        console.print(f"[dim]AWS identity: {identity.get('Arn')} (account {account})[/dim]")
        with cancellation() as cancel_event:
            result = run_deployment(
                request,
                EcsOrchestrator(session),
                settings=settings,
                reporter=report_step,
                cancel_event=cancel_event,
            )
        print_result(result)
        result.raise_for_status()
    except StabilityTimeoutError as exc:
        report_error(exc)
        raise SystemExit(EXIT_TIMED_OUT) from exc
    except DeploymentCancelledError as exc:
        report_error(exc)
        raise SystemExit(EXIT_CANCELLED) from exc
    except Exception as exc:  # noqa: BLE001
        report_error(exc)
        raise SystemExit(EXIT_FAILED) from exc


@cli.command(name="plan")
@request_options
@click.pass_obj
def plan_command(settings: DeploySettings, **params: Any) -> None:
    """Print the task definition a deployment would register, without changing anything."""
    try:
        request = parse_request(_with_region(params, settings))
        session = create_session(request.region, settings.profile)
        reporter = partial(report_step, target=error_console)
        candidate = plan(request, EcsOrchestrator(session), settings, reporter=reporter)
    except Exception as exc:  # noqa: BLE001
        report_error(exc)
        raise SystemExit(EXIT_FAILED) from exc

    click.echo(candidate.to_json())


def report_step(message: str, target: Console = console) -> None:
    """Print a deployment progress line."""
    target.print(f"[cyan]•[/cyan] {message}")


def print_result(result: DeploymentResult) -> None:
    """Print a deployment summary table."""
    table = Table(title="Deployment", show_header=True, header_style="bold cyan")
    table.add_column("Field", style="white", no_wrap=True)
    table.add_column("Value", style="bright_white")

    state_style = "green" if result.succeeded else "yellow"
    table.add_row("State", f"[{state_style}]{result.state.value}[/{state_style}]")
    if result.revision is not None:
        table.add_row("Task definition", result.revision.arn)
    for arn in result.policy_arns:
        table.add_row("Scaling policy", arn)
    if result.message:
        table.add_row("Message", result.message)

    console.print(table)


def configure_logging(level: str) -> None:
    """Configure root logging once for the CLI process."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    logging.getLogger("botocore").setLevel(logging.WARNING)


@contextmanager
def cancellation() -> Iterator[threading.Event]:
    """Set an event on SIGINT/SIGTERM for the duration of the block."""
    event = threading.Event()

    def _handler(signum: int, _frame: Any) -> None:
        logging.getLogger(__name__).warning("Received signal %d, cancelling wait", signum)
        event.set()

    if threading.current_thread() is not threading.main_thread():
        yield event
        return

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield event
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _with_region(params: dict[str, Any], settings: DeploySettings) -> dict[str, Any]:
    return {**params, "region": params.get("region") or settings.region}


def main() -> None:
    """Run the CLI."""
    cli()
