"""Register a candidate revision, roll the service onto it and wait for stability.

State machine::

    Pending -> Registering -> Updating -> WaitingStable -> Stable
                   |             |              |-> TimedOut
                   +-------------+--------------+-> Failed
                                                +-> Cancelled

Every run registers a new revision even when the candidate is identical to
the current one; ECS does not deduplicate task definitions. Nothing is rolled
back: a revision or service update that was accepted stays in place when a
later step fails, times out or is cancelled.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from ecs_deployer.core.descriptors import CandidateDescriptor, RegisteredRevision, ServiceStatus
from ecs_deployer.core.errors import (
    DeploymentCancelledError,
    DeploymentError,
    RemoteRejectionError,
    ServiceDeploymentFailedError,
)
from ecs_deployer.core.interfaces import OrchestratorInterface

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 15
DEFAULT_MAX_POLL_ATTEMPTS = 40
RETRYABLE_DESCRIBE_CODES = frozenset(
    {"ThrottlingException", "ServerException", "ServiceUnavailableException"}
)
TERMINAL_SERVICE_STATUSES = frozenset({"DRAINING", "INACTIVE"})


class ReconcileState(str, Enum):
    """States of a single reconciliation run."""

    PENDING = "Pending"
    REGISTERING = "Registering"
    UPDATING = "Updating"
    WAITING_STABLE = "WaitingStable"
    STABLE = "Stable"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"
    CANCELLED = "Cancelled"



@dataclass
class ReconcileResult:
    """Outcome of a reconciliation run."""

    state: ReconcileState
    revision: RegisteredRevision | None = None
    attempts: int = 0
    message: str = ""
    history: list[ReconcileState] = field(default_factory=list)


class Reconciler:
    """Drive one service onto a new task definition revision."""

    def __init__(
        self,
        orchestrator: OrchestratorInterface,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
        reporter: Callable[[str], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        if max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be at least 1")
        self._orchestrator = orchestrator
        self._poll_interval = poll_interval_seconds
        self._max_attempts = max_poll_attempts
        self._report = reporter or logger.info
        self._cancel_event = cancel_event or threading.Event()
        self.state = ReconcileState.PENDING
        self.history: list[ReconcileState] = [self.state]

    def reconcile(
        self,
        candidate: CandidateDescriptor,
        cluster: str,
        service: str,
        desired_count: int | None = None,
    ) -> ReconcileResult:
        """Run the full register, update and wait sequence.

        Args:
            candidate: The validated descriptor to register.
            cluster: ECS cluster name.
            service: ECS service name.
            desired_count: Task count to set in the same update call, if any.

        Returns:
            The result. ``TimedOut`` is returned, not raised.

        Raises:
            RemoteRejectionError: If registration or the service update is refused.
            ServiceDeploymentFailedError: If the service reports a terminal failure.
            DeploymentCancelledError: If the wait was cancelled.
        """
        if self.state is not ReconcileState.PENDING:
            raise RuntimeError(f"Reconciler already used (state {self.state.value}).")

        revision = self._register(candidate)
        self._update(cluster, service, revision, desired_count)
        state, attempts, message = self._wait_for_stable(cluster, service)
        return ReconcileResult(
            state=state,
            revision=revision,
            attempts=attempts,
            message=message,
            history=list(self.history),
        )

    def _transition(self, state: ReconcileState) -> None:
        logger.debug("Reconciler %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _register(self, candidate: CandidateDescriptor) -> RegisteredRevision:
        self._transition(ReconcileState.REGISTERING)
        self._report(f"Registering new revision of task definition {candidate.family}")
        try:
            revision = self._orchestrator.register_task_definition(candidate.to_registration())
        except DeploymentError:
            self._transition(ReconcileState.FAILED)
            raise
        self._report(f"Registered {revision.family}:{revision.revision}")
        return revision

    def _update(
        self,
        cluster: str,
        service: str,
        revision: RegisteredRevision,
        desired_count: int | None,
    ) -> None:
        self._transition(ReconcileState.UPDATING)
        if desired_count is None:
            self._report(f"Updating service {service} in cluster {cluster}")
        else:
            self._report(
                f"Updating service {service} in cluster {cluster} (desired count {desired_count})"
            )
        try:
            self._orchestrator.update_service(cluster, service, revision.arn, desired_count)
        except DeploymentError:
            self._transition(ReconcileState.FAILED)
            raise

    def _wait_for_stable(self, cluster: str, service: str) -> tuple[ReconcileState, int, str]:
        self._transition(ReconcileState.WAITING_STABLE)
        self._report(f"Waiting for service {service} to become stable")

        for attempt in range(1, self._max_attempts + 1):
            status = self._describe(cluster, service)
            if status is not None:
                failure = _failure_reason(status)
                if failure:
                    self._transition(ReconcileState.FAILED)
                    raise ServiceDeploymentFailedError(failure)
                if _is_stable(status):
                    self._transition(ReconcileState.STABLE)
                    message = f"Service {service} is stable ({status.running_count} running)."
                    self._report(message)
                    return ReconcileState.STABLE, attempt, message
                logger.debug(
                    "Attempt %d/%d: %d/%d running, %d deployments",
                    attempt,
                    self._max_attempts,
                    status.running_count,
                    status.desired_count,
                    len(status.deployments),
                )

            if attempt < self._max_attempts and self._cancel_event.wait(self._poll_interval):
                self._transition(ReconcileState.CANCELLED)
                raise DeploymentCancelledError(
                    f"Cancelled while waiting for service {service}; "
                    "the new revision and service update remain in place."
                )

        self._transition(ReconcileState.TIMED_OUT)
        message = (
            f"Service {service} did not stabilise after {self._max_attempts} checks; "
            "the new revision and service update remain in place."
        )
        self._report(message)
        return ReconcileState.TIMED_OUT, self._max_attempts, message

    def _describe(self, cluster: str, service: str) -> ServiceStatus | None:
        try:
            return self._orchestrator.describe_service(cluster, service)
        except DeploymentError as exc:
            if _is_retryable(exc):
                logger.warning("Status check failed, retrying: %s", exc)
                return None
            self._transition(ReconcileState.FAILED)
            raise


def _is_retryable(exc: DeploymentError) -> bool:
    return isinstance(exc, RemoteRejectionError) and exc.remote_code in RETRYABLE_DESCRIBE_CODES


def _is_stable(status: ServiceStatus) -> bool:
    """Match the ``services-stable`` waiter: one deployment and all tasks running."""
    return len(status.deployments) == 1 and status.running_count == status.desired_count


def _failure_reason(status: ServiceStatus) -> str | None:
    if status.failure_reason:
        return f"Service lookup failed: {status.failure_reason}"
    if status.status in TERMINAL_SERVICE_STATUSES:
        return f"Service is {status.status}"
    primary = status.primary_deployment
    if primary is not None and primary.get("rolloutState") == "FAILED":
        reason = primary.get("rolloutStateReason") or "deployment rollout failed"
        return f"Deployment failed: {reason}"
    return None
