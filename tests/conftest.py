"""Shared fixtures for the deployer tests."""

import copy
from typing import Any

import pytest

from ecs_deployer.core.descriptors import (
    RegisteredRevision,
    RemoteTaskDefinition,
    ScalableTarget,
    ServiceStatus,
    TargetTrackingPolicy,
)
from ecs_deployer.core.errors import DeploymentError, RemoteRejectionError
from ecs_deployer.core.interfaces import OrchestratorInterface
from ecs_deployer.core.settings import DeploySettings

ACCOUNT_PREFIX = "arn:aws:ecs:us-east-1:123456789012"


def stable_status(count: int = 1) -> ServiceStatus:
    return ServiceStatus(
        status="ACTIVE",
        desired_count=count,
        running_count=count,
        deployments=[{"id": "ecs-svc/1", "status": "PRIMARY", "rolloutState": "COMPLETED"}],
    )


def rolling_status(count: int = 1) -> ServiceStatus:
    return ServiceStatus(
        status="ACTIVE",
        desired_count=count,
        running_count=0,
        deployments=[
            {"id": "ecs-svc/2", "status": "PRIMARY", "rolloutState": "IN_PROGRESS"},
            {"id": "ecs-svc/1", "status": "ACTIVE", "rolloutState": "COMPLETED"},
        ],
    )


class FakeOrchestrator(OrchestratorInterface):
    """In-memory orchestrator that records every call in order."""

    def __init__(self, task_definition: dict[str, Any]) -> None:
        self.task_definitions = {task_definition["family"]: copy.deepcopy(task_definition)}
        self.registered: list[dict[str, Any]] = []
        self.calls: list[tuple[Any, ...]] = []
        self.statuses: list[ServiceStatus] = [stable_status()]
        self.register_error: DeploymentError | None = None
        self.update_error: DeploymentError | None = None
        self.scalable_targets: dict[str, ScalableTarget] = {}
        self.policies: dict[str, TargetTrackingPolicy] = {}

    def fetch_latest_task_definition(self, family: str) -> RemoteTaskDefinition:
        self.calls.append(("fetch", family))
        if family not in self.task_definitions:
            raise RemoteRejectionError(
                "fetch", "Unable to describe task definition.", "ClientException"
            )
        return RemoteTaskDefinition.from_response(self.task_definitions[family])

    def register_task_definition(self, payload: dict[str, Any]) -> RegisteredRevision:
        self.calls.append(("register", payload["family"]))
        if self.register_error is not None:
            raise self.register_error
        family = payload["family"]
        revision = self.task_definitions[family]["revision"] + 1
        arn = f"{ACCOUNT_PREFIX}:task-definition/{family}:{revision}"
        stored = {
            **copy.deepcopy(payload),
            "revision": revision,
            "taskDefinitionArn": arn,
            "status": "ACTIVE",
        }
        self.task_definitions[family] = stored
        self.registered.append(copy.deepcopy(payload))
        return RegisteredRevision(arn=arn, family=family, revision=revision)

    def update_service(
        self,
        cluster: str,
        service: str,
        task_definition_arn: str,
        desired_count: int | None = None,
    ) -> None:
        self.calls.append(("update", cluster, service, task_definition_arn, desired_count))
        if self.update_error is not None:
            raise self.update_error

    def describe_service(self, cluster: str, service: str) -> ServiceStatus:
        self.calls.append(("describe", cluster, service))
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    def register_scalable_target(self, target: ScalableTarget) -> None:
        self.calls.append(("register_scalable_target", target.resource_id))
        self.scalable_targets[target.resource_id] = target

    def put_scaling_policy(self, policy: TargetTrackingPolicy) -> str:
        self.calls.append(("put_scaling_policy", policy.policy_name))
        self.policies[policy.policy_name] = policy
        return f"arn:aws:autoscaling:us-east-1:123456789012:scalingPolicy/{policy.policy_name}"

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def task_definition() -> dict[str, Any]:
    """A DescribeTaskDefinition payload with two containers."""
    return {
        "taskDefinitionArn": f"{ACCOUNT_PREFIX}:task-definition/web:7",
        "family": "web",
        "revision": 7,
        "status": "ACTIVE",
        "networkMode": "awsvpc",
        "requiresCompatibilities": ["FARGATE"],
        "compatibilities": ["EC2", "FARGATE"],
        "executionRoleArn": "arn:aws:iam::123456789012:role/web-task-execution",
        "taskRoleArn": "arn:aws:iam::123456789012:role/web-task",
        "cpu": "256",
        "memory": "512",
        "registeredAt": "2026-10-01T12:00:00Z",
        "volumes": [
            {"name": "cache", "host": {"sourcePath": "/var/cache/web"}},
        ],
        "containerDefinitions": [
            {
                "name": "api",
                "image": "123456789012.dkr.ecr.us-east-1.amazonaws.com/api:1.0.0",
                "essential": True,
                "environment": [
                    {"name": "LOG_LEVEL", "value": "info"},
                    {"name": "NODE_ENV", "value": "staging"},
                ],
                "secrets": [
                    {
                        "name": "DB_PASSWORD",
                        "valueFrom": "arn:aws:secretsmanager:us-east-1:123456789012:secret:db",
                    }
                ],
                "mountPoints": [
                    {"sourceVolume": "cache", "containerPath": "/cache", "readOnly": False}
                ],
            },
            {
                "name": "log-router",
                "image": "public.ecr.aws/aws-observability/aws-for-fluent-bit:stable",
                "essential": False,
                "environment": [{"name": "FLB_LOG_LEVEL", "value": "warn"}],
            },
        ],
    }


@pytest.fixture
def orchestrator(task_definition: dict[str, Any]) -> FakeOrchestrator:
    return FakeOrchestrator(task_definition)


@pytest.fixture
def settings() -> DeploySettings:
    """Settings that never sleep between status checks."""
    return DeploySettings(
        _env_file=None,  # type: ignore[call-arg]
        region="us-east-1",
        poll_interval_seconds=0,
        max_poll_attempts=3,
    )


@pytest.fixture
def base_params() -> dict[str, Any]:
    return {
        "image": "123456789012.dkr.ecr.us-east-1.amazonaws.com/api:2.0.0",
        "cluster": "prod",
        "service": "web",
        "task_family": "web",
        "container_name": "api",
    }
