"""Pre-flight checks run on a candidate descriptor before any remote mutation."""

import logging

from ecs_deployer.core.descriptors import CandidateDescriptor
from ecs_deployer.core.errors import DanglingMountError, IncompatibleResourceError

logger = logging.getLogger(__name__)

# Fargate task-level CPU units mapped to the memory sizes (MiB) they accept.
FARGATE_CPU_MEMORY: dict[int, tuple[int, ...]] = {
    256: (512, 1024, 2048),
    512: (1024, 2048, 3072, 4096),
    1024: tuple(range(2048, 8192 + 1, 1024)),
    2048: tuple(range(4096, 16384 + 1, 1024)),
    4096: tuple(range(8192, 30720 + 1, 1024)),
}


def allowed_memory(cpu: int) -> tuple[int, ...]:
    """Return the memory sizes valid for a CPU value, or an empty tuple."""
    return FARGATE_CPU_MEMORY.get(cpu, ())


def validate_descriptor(candidate: CandidateDescriptor) -> None:
    """Validate resource sizing and volume references.

    Args:
        candidate: The merged descriptor.

    Raises:
        IncompatibleResourceError: If the CPU/memory pair is not allowed.
        DanglingMountError: If a mount point names an undefined volume.
    """
    check_resources(candidate.cpu, candidate.memory)
    check_mounts(candidate)
    logger.debug("Descriptor for %s passed validation", candidate.family)


def check_resources(cpu: int | None, memory: int | None) -> None:
    """Check a task-level CPU/memory pair against the Fargate table.

    Descriptors without both task-level values (EC2 launch type sizing at the
    container level) are not checked.
    """
    if cpu is None or memory is None:
        logger.debug("Skipping CPU/memory check (cpu=%s memory=%s)", cpu, memory)
        return
    allowed = allowed_memory(cpu)
    if memory not in allowed:
        raise IncompatibleResourceError(cpu, memory, list(allowed))


def check_mounts(candidate: CandidateDescriptor) -> None:
    """Ensure every container mount references a volume of the descriptor."""
    volume_names = {str(volume.get("name")) for volume in candidate.volumes}
    for container in candidate.container_definitions:
        for mount in container.get("mountPoints", []):
            source = str(mount.get("sourceVolume", ""))
            if source not in volume_names:
                raise DanglingMountError(str(container.get("name", "")), source)
