"""Abstract interface for the remote container orchestrator.

The pipeline only talks to the orchestrator through this contract, so it can
run against the boto3 implementation or an in-memory fake.
"""

from abc import ABC, abstractmethod
from typing import Any

from ecs_deployer.core.descriptors import (
    RegisteredRevision,
    RemoteTaskDefinition,
    ScalableTarget,
    ServiceStatus,
    TargetTrackingPolicy,
)


class OrchestratorInterface(ABC):
    """Operations consumed from ECS and Application Auto Scaling.

    Implementations raise ``RemoteRejectionError`` with the remote error text
    when a call is refused.
    """

    @abstractmethod
    def fetch_latest_task_definition(self, family: str) -> RemoteTaskDefinition:
        """Return the latest active revision of a task definition family."""
        raise NotImplementedError

    @abstractmethod
    def register_task_definition(self, payload: dict[str, Any]) -> RegisteredRevision:
        """Register a new task definition revision."""
        raise NotImplementedError

    @abstractmethod
    def update_service(
        self,
        cluster: str,
        service: str,
        task_definition_arn: str,
        desired_count: int | None = None,
    ) -> None:
        """Point a service at a task definition revision."""
        raise NotImplementedError

    @abstractmethod
    def describe_service(self, cluster: str, service: str) -> ServiceStatus:
        """Return the current status of a service."""
        raise NotImplementedError

    @abstractmethod
    def register_scalable_target(self, target: ScalableTarget) -> None:
        """Create or update the scalable target for a service."""
        raise NotImplementedError

    @abstractmethod
    def put_scaling_policy(self, policy: TargetTrackingPolicy) -> str:
        """Create or replace a target-tracking policy and return its ARN."""
        raise NotImplementedError
