"""Task definition descriptors exchanged between pipeline stages."""

import copy
import json
from dataclasses import dataclass, field
from typing import Any

# Keys accepted by RegisterTaskDefinition that are carried over from the
# current revision. Everything else in a DescribeTaskDefinition response
# (revision, status, ARN, timestamps, compatibilities) is read-only.
REGISTRATION_KEYS = (
    "taskRoleArn",
    "executionRoleArn",
    "networkMode",
    "placementConstraints",
    "requiresCompatibilities",
    "pidMode",
    "ipcMode",
    "proxyConfiguration",
    "inferenceAccelerators",
    "runtimePlatform",
    "ephemeralStorage",
)


@dataclass(frozen=True)
class RemoteTaskDefinition:
    """The latest registered revision of a task definition family.

    Instances are read-only snapshots: accessors return deep copies so the
    fetched state is never mutated by later stages.
    """

    family: str
    revision: int
    arn: str
    raw: dict[str, Any]

    @classmethod
    def from_response(cls, task_definition: dict[str, Any]) -> "RemoteTaskDefinition":
        """Build a snapshot from a DescribeTaskDefinition ``taskDefinition`` payload."""
        return cls(
            family=str(task_definition["family"]),
            revision=int(task_definition.get("revision", 0)),
            arn=str(task_definition.get("taskDefinitionArn", "")),
            raw=copy.deepcopy(task_definition),
        )

    @property
    def container_definitions(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.raw.get("containerDefinitions", []))

    @property
    def volumes(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.raw.get("volumes", []))

    @property
    def cpu(self) -> int | None:
        return _optional_int(self.raw.get("cpu"))

    @property
    def memory(self) -> int | None:
        return _optional_int(self.raw.get("memory"))

    def registration_fields(self) -> dict[str, Any]:
        """Return the carried-over registration keys that are set on this revision."""
        return {
            key: copy.deepcopy(self.raw[key])
            for key in REGISTRATION_KEYS
            if self.raw.get(key) is not None
        }


@dataclass
class CandidateDescriptor:
    """A task definition ready to be registered as a new revision."""

    family: str
    container_name: str
    container_definitions: list[dict[str, Any]]
    volumes: list[dict[str, Any]] = field(default_factory=list)
    cpu: int | None = None
    memory: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    base_revision: int | None = None

    @property
    def target_container(self) -> dict[str, Any]:
        for container in self.container_definitions:
            if container.get("name") == self.container_name:
                return container
        raise KeyError(self.container_name)

    def to_registration(self) -> dict[str, Any]:
        """Return keyword arguments for ``ecs.register_task_definition``."""
        payload: dict[str, Any] = {
            "family": self.family,
            "containerDefinitions": copy.deepcopy(self.container_definitions),
        }
        payload.update(copy.deepcopy(self.extra))
        if self.volumes:
            payload["volumes"] = copy.deepcopy(self.volumes)
        if self.cpu is not None:
            payload["cpu"] = str(self.cpu)
        if self.memory is not None:
            payload["memory"] = str(self.memory)
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_registration(), indent=2, sort_keys=True)


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


@dataclass(frozen=True)
class RegisteredRevision:
    """A task definition revision created by ``RegisterTaskDefinition``."""

    arn: str
    family: str
    revision: int


@dataclass(frozen=True)
class ServiceStatus:
    """The fields of a DescribeServices result used to judge stability."""

    status: str
    desired_count: int = 0
    running_count: int = 0
    deployments: list[dict[str, Any]] = field(default_factory=list)
    failure_reason: str | None = None

    @property
    def primary_deployment(self) -> dict[str, Any] | None:
        for deployment in self.deployments:
            if deployment.get("status") == "PRIMARY":
                return deployment
        return None


@dataclass(frozen=True)
class ScalableTarget:
    """An ECS service registered with Application Auto Scaling."""

    resource_id: str
    min_capacity: int
    max_capacity: int


@dataclass(frozen=True)
class TargetTrackingPolicy:
    """A target-tracking policy on a predefined ECS service metric."""

    policy_name: str
    resource_id: str
    metric_type: str
    target_value: float
    scale_in_cooldown: int
    scale_out_cooldown: int


@dataclass(frozen=True)
class ScalingPolicySet:
    """The scalable target plus up to one CPU and one memory policy."""

    target: ScalableTarget
    cpu_policy: TargetTrackingPolicy | None = None
    memory_policy: TargetTrackingPolicy | None = None

    @property
    def policies(self) -> list[TargetTrackingPolicy]:
        return [policy for policy in (self.cpu_policy, self.memory_policy) if policy is not None]
