"""Deployment entry points: parse, merge, validate, reconcile, autoscale.

Stages run strictly in order and stop at the first error. Concurrent runs
against the same service are not coordinated; the last service update wins.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ecs_deployer.core.autoscaling import AutoscalingConfigurator, build_policy_set
from ecs_deployer.core.deployments.aws_ecs import EcsOrchestrator, create_session
from ecs_deployer.core.descriptors import CandidateDescriptor, RegisteredRevision
from ecs_deployer.core.errors import StabilityTimeoutError
from ecs_deployer.core.interfaces import OrchestratorInterface
from ecs_deployer.core.merger import merge_descriptor
from ecs_deployer.core.models import DeploymentRequest
from ecs_deployer.core.parser import parse_request
from ecs_deployer.core.reconciler import Reconciler, ReconcileState
from ecs_deployer.core.settings import DeploySettings, get_settings
from ecs_deployer.core.validator import validate_descriptor

logger = logging.getLogger(__name__)

JsonArray = str | list[dict[str, Any]] | None


@dataclass
class DeploymentResult:
    """Outcome of a deployment."""

    state: ReconcileState
    candidate: CandidateDescriptor
    revision: RegisteredRevision | None = None
    policy_arns: list[str] = field(default_factory=list)
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state is ReconcileState.STABLE

    @property
    def timed_out(self) -> bool:
        return self.state is ReconcileState.TIMED_OUT

    def raise_for_status(self) -> None:
        """Raise ``StabilityTimeoutError`` if the stability wait timed out."""
        if self.timed_out:
            raise StabilityTimeoutError(self.message)


def deploy(
    image: str,
    cluster: str,
    service: str,
    task_family: str,
    container_name: str,
    *,
    cpu: int | str | None = 256,
    memory: int | str | None = 512,
    desired_count: int | str | None = None,
    environment_variables: JsonArray = None,
    secrets: JsonArray = None,
    mount_points: JsonArray = None,
    volumes: JsonArray = None,
    region: str | None = None,
    enable_autoscaling: bool | str = False,
    min_capacity: int | str = 1,
    max_capacity: int | str = 10,
    target_cpu_utilization: float | str | None = 70,
    target_memory_utilization: float | str | None = 80,
    scale_in_cooldown: int | str = 300,
    scale_out_cooldown: int | str = 60,
    orchestrator: OrchestratorInterface | None = None,
    settings: DeploySettings | None = None,
    reporter: Callable[[str], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> DeploymentResult:
    """Deploy a new image to an ECS service.

    Omitted list parameters leave the container's current values in place; an
    empty list clears them. A target utilization of ``None`` leaves any
    existing policy for that metric untouched.

    Args:
        image: Container image reference.
        cluster: ECS cluster name.
        service: ECS service name.
        task_family: Task definition family.
        container_name: Container to update inside the task definition.
        region: AWS region, defaulting to the configured region.
        orchestrator: Orchestrator to use instead of the boto3 implementation.
        settings: Settings to use instead of the environment.
        reporter: Progress callback.
        cancel_event: Set to abort the stability wait.

    Returns:
        The deployment result. A timed out wait is returned, not raised.
    """
    settings = settings or get_settings()
    report = reporter or logger.info
    request = parse_request(
        {
            "image": image,
            "cluster": cluster,
            "service": service,
            "task_family": task_family,
            "container_name": container_name,
            "region": region or settings.region,
            "cpu": cpu,
            "memory": memory,
            "desired_count": desired_count,
            "environment_variables": environment_variables,
            "secrets": secrets,
            "mount_points": mount_points,
            "volumes": volumes,
            "enable_autoscaling": enable_autoscaling,
            "min_capacity": min_capacity,
            "max_capacity": max_capacity,
            "target_cpu_utilization": target_cpu_utilization,
            "target_memory_utilization": target_memory_utilization,
            "scale_in_cooldown": scale_in_cooldown,
            "scale_out_cooldown": scale_out_cooldown,
        }
    )
    return run_deployment(
        request,
        orchestrator or _default_orchestrator(request, settings),
        settings=settings,
        reporter=report,
        cancel_event=cancel_event,
    )


def run_deployment(
    request: DeploymentRequest,
    orchestrator: OrchestratorInterface,
    settings: DeploySettings | None = None,
    reporter: Callable[[str], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> DeploymentResult:
    """Run every stage for an already parsed request."""
    settings = settings or get_settings()
    report = reporter or logger.info

    candidate = prepare_candidate(request, orchestrator, report)
    reconciler = Reconciler(
        orchestrator,
        poll_interval_seconds=settings.poll_interval_seconds,
        max_poll_attempts=settings.max_poll_attempts,
        reporter=report,
        cancel_event=cancel_event,
    )
    outcome = reconciler.reconcile(
        candidate,
        request.cluster,
        request.service,
        desired_count=request.desired_count,
    )
    result = DeploymentResult(
        state=outcome.state,
        candidate=candidate,
        revision=outcome.revision,
        message=outcome.message,
    )

    if not request.autoscaling.enabled:
        return result
    if not result.succeeded:
        report("Skipping autoscaling because the service did not stabilise")
        return result

    policy_set = build_policy_set(request.cluster, request.service, request.autoscaling)
    result.policy_arns = AutoscalingConfigurator(orchestrator, report).apply(policy_set)
    return result


def plan(
    request: DeploymentRequest,
    orchestrator: OrchestratorInterface | None = None,
    settings: DeploySettings | None = None,
    reporter: Callable[[str], None] | None = None,
) -> CandidateDescriptor:
    """Return the descriptor a deployment would register, without mutating anything."""
    settings = settings or get_settings()
    return prepare_candidate(
        request,
        orchestrator or _default_orchestrator(request, settings),
        reporter or logger.info,
    )


def prepare_candidate(
    request: DeploymentRequest,
    orchestrator: OrchestratorInterface,
    reporter: Callable[[str], None],
) -> CandidateDescriptor:
    """Fetch the current revision, merge the request over it and validate the result."""
    reporter(f"Fetching latest task definition for {request.task_family}")
    remote = orchestrator.fetch_latest_task_definition(request.task_family)
    candidate = merge_descriptor(request, remote)
    validate_descriptor(candidate)
    return candidate


def _default_orchestrator(
    request: DeploymentRequest,
    settings: DeploySettings,
) -> OrchestratorInterface:
    return EcsOrchestrator(create_session(request.region, settings.profile))
