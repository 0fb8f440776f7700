"""Errors raised by the deployment pipeline."""


class DeploymentError(RuntimeError):
    """Base error for a failed deployment stage."""

    stage = "deploy"

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"


class ValidationError(DeploymentError):
    """Raised when an input parameter has the wrong shape or range."""

    stage = "parse"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


class ContainerNotFoundError(DeploymentError):
    """Raised when the task definition has no container with the requested name."""

    stage = "merge"

    def __init__(self, container_name: str, family: str, available: list[str]) -> None:
        names = ", ".join(available) or "none"
        super().__init__(
            f"Container '{container_name}' not found in task definition '{family}' "
            f"(containers: {names})."
        )
        self.container_name = container_name


class IncompatibleResourceError(DeploymentError):
    """Raised when a CPU and memory pair is not a valid Fargate combination."""

    stage = "validate"

    def __init__(self, cpu: int, memory: int, allowed: list[int] | None = None) -> None:
        if allowed:
            detail = f"valid memory for {cpu} CPU units: {_format_memory(allowed)}"
        else:
            detail = f"{cpu} is not a supported CPU value"
        super().__init__(f"Invalid CPU/memory combination cpu={cpu} memory={memory} ({detail}).")
        self.cpu = cpu
        self.memory = memory


class DanglingMountError(DeploymentError):
    """Raised when a mount point references a volume that does not exist."""

    stage = "validate"

    def __init__(self, container_name: str, source_volume: str) -> None:
        super().__init__(
            f"Container '{container_name}' mounts volume '{source_volume}', "
            "which is not defined in the request or the current task definition."
        )
        self.container_name = container_name
        self.source_volume = source_volume


class RemoteRejectionError(DeploymentError):
    """Raised when AWS refuses a registration or update call."""

    def __init__(self, stage: str, remote_message: str, remote_code: str | None = None) -> None:
        super().__init__(remote_message, stage=stage)
        self.remote_message = remote_message
        self.remote_code = remote_code


class ServiceDeploymentFailedError(DeploymentError):
    """Raised when the service reports a terminal failure while waiting for stability."""

    stage = "wait"


class StabilityTimeoutError(DeploymentError):
    """Raised when the service did not stabilise within the poll budget."""

    stage = "wait"


class DeploymentCancelledError(DeploymentError):
    """Raised when the stability wait was cancelled before it finished."""

    stage = "wait"


def _format_memory(values: list[int]) -> str:
    return ", ".join(str(value) for value in values)
