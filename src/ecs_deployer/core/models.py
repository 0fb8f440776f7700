"""Data models for a deployment request."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TaskCpu = Literal[256, 512, 1024, 2048, 4096]

MIN_TASK_MEMORY = 512
MAX_TASK_MEMORY = 30720


class EcsItem(BaseModel):
    """Base for list items that mirror ECS container definition shapes."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    def to_ecs(self) -> dict[str, Any]:
        """Return the item in the shape ECS expects."""
        return self.model_dump(by_alias=True, exclude_none=True)


class EnvironmentVariable(EcsItem):
    """A plain environment variable for the container."""

    name: str = Field(min_length=1)
    value: str


class SecretReference(EcsItem):
    """An environment variable resolved from Secrets Manager or SSM by ARN."""

    name: str = Field(min_length=1)
    value_from: str = Field(alias="valueFrom", min_length=1)


class MountPoint(EcsItem):
    """A volume mounted into the container."""

    source_volume: str = Field(alias="sourceVolume", min_length=1)
    container_path: str = Field(alias="containerPath", min_length=1)
    read_only: bool = Field(default=False, alias="readOnly")


class HostVolume(EcsItem):
    """Bind mount host configuration."""

    source_path: str = Field(alias="sourcePath", min_length=1)


class EfsAuthorizationConfig(EcsItem):
    """Access point and IAM settings for an EFS volume."""

    access_point_id: str | None = Field(default=None, alias="accessPointId")
    iam: Literal["ENABLED", "DISABLED"] | None = None


class EfsVolumeConfiguration(EcsItem):
    """EFS file system backing a volume."""

    file_system_id: str = Field(alias="fileSystemId", min_length=1)
    root_directory: str | None = Field(default=None, alias="rootDirectory")
    transit_encryption: Literal["ENABLED", "DISABLED"] | None = Field(
        default=None, alias="transitEncryption"
    )
    transit_encryption_port: int | None = Field(
        default=None, alias="transitEncryptionPort", ge=1, le=65535
    )
    authorization_config: EfsAuthorizationConfig | None = Field(
        default=None, alias="authorizationConfig"
    )


class VolumeDefinition(EcsItem):
    """A task-level volume backed by exactly one of a host path or EFS."""

    name: str = Field(min_length=1)
    host: HostVolume | None = None
    efs_volume_configuration: EfsVolumeConfiguration | None = Field(
        default=None, alias="efsVolumeConfiguration"
    )

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "VolumeDefinition":
        if (self.host is None) == (self.efs_volume_configuration is None):
            raise ValueError(
                f"volume '{self.name}' needs exactly one of 'host' or 'efsVolumeConfiguration'"
            )
        return self


class AutoscalingConfig(BaseModel):
    """Target-tracking autoscaling settings for the service."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    enabled: bool = False
    min_capacity: int = Field(default=1, ge=0)
    max_capacity: int = Field(default=10, ge=1)
    target_cpu_utilization: float | None = Field(default=70, ge=1, le=100)
    target_memory_utilization: float | None = Field(default=80, ge=1, le=100)
    scale_in_cooldown: int = Field(default=300, ge=0)
    scale_out_cooldown: int = Field(default=60, ge=0)

    @model_validator(mode="after")
    def _capacity_bounds(self) -> "AutoscalingConfig":
        if self.min_capacity > self.max_capacity:
            raise ValueError(
                f"min_capacity ({self.min_capacity}) exceeds max_capacity ({self.max_capacity})"
            )
        return self


class DeploymentRequest(BaseModel):
    """A validated, typed deployment request.

    List-valued fields use ``None`` for "leave the current value alone". An
    empty list is an explicit instruction to clear the field.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    image: str = Field(min_length=1)
    cluster: str = Field(min_length=1)
    service: str = Field(min_length=1)
    task_family: str = Field(min_length=1)
    container_name: str = Field(min_length=1)
    region: str = Field(default="us-east-1", min_length=1)

    cpu: TaskCpu | None = None
    memory: int | None = Field(default=None, ge=MIN_TASK_MEMORY, le=MAX_TASK_MEMORY)
    desired_count: int | None = Field(default=None, ge=0)

    environment_variables: list[EnvironmentVariable] | None = None
    secrets: list[SecretReference] | None = None
    mount_points: list[MountPoint] | None = None
    volumes: list[VolumeDefinition] | None = None

    autoscaling: AutoscalingConfig = Field(default_factory=AutoscalingConfig)

    @field_validator("image", "cluster", "service", "task_family", "container_name", "region")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("environment_variables", "secrets")
    @classmethod
    def _unique_names(
        cls, items: list[EnvironmentVariable] | list[SecretReference] | None
    ) -> Any:
        if items is not None:
            _ensure_unique([item.name for item in items], "name")
        return items

    @field_validator("volumes")
    @classmethod
    def _unique_volumes(cls, items: list[VolumeDefinition] | None) -> Any:
        if items is not None:
            _ensure_unique([item.name for item in items], "volume name")
        return items

    @field_validator("mount_points")
    @classmethod
    def _unique_mounts(cls, items: list[MountPoint] | None) -> Any:
        if items is not None:
            _ensure_unique([item.container_path for item in items], "containerPath")
        return items


def _ensure_unique(values: list[str], label: str) -> None:
    seen: set[str] = set()
    for value in values:
        if value in seen:
            raise ValueError(f"duplicate {label} '{value}'")
        seen.add(value)
