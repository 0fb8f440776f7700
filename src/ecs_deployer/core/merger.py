"""Merge a deployment request over the current task definition revision.

Override rules for the targeted container:

* ``image`` is always replaced.
* ``environment``, ``secrets`` and ``mountPoints`` are replaced wholesale when
  the request supplies them. There is no per-key merge. A request that omits a
  list leaves the current value untouched, while an empty list clears it.

Task-level ``cpu`` and ``memory`` are overridden only when supplied. Volumes
are the union of current and requested volumes keyed by name, with the
requested definition winning on a name collision.
"""

import logging
from collections.abc import Sequence
from typing import Any

from ecs_deployer.core.descriptors import CandidateDescriptor, RemoteTaskDefinition
from ecs_deployer.core.errors import ContainerNotFoundError
from ecs_deployer.core.models import DeploymentRequest, EcsItem

logger = logging.getLogger(__name__)


def merge_descriptor(
    request: DeploymentRequest,
    remote: RemoteTaskDefinition,
) -> CandidateDescriptor:
    """Build the candidate descriptor for a new revision.

    Args:
        request: The validated deployment request.
        remote: The latest revision of the task definition family.

    Returns:
        The candidate descriptor.

    Raises:
        ContainerNotFoundError: If the remote revision has no container named
            ``request.container_name``.
    """
    containers = remote.container_definitions
    target = _find_container(containers, request.container_name)
    if target is None:
        raise ContainerNotFoundError(
            request.container_name,
            remote.family,
            [str(container.get("name", "")) for container in containers],
        )

    previous_image = target.get("image")
    target["image"] = request.image
    logger.info(
        "Container %s image: %s -> %s", request.container_name, previous_image, request.image
    )

    _replace_list(target, "environment", request.environment_variables)
    _replace_list(target, "secrets", request.secrets)
    _replace_list(target, "mountPoints", request.mount_points)

    return CandidateDescriptor(
        family=remote.family,
        container_name=request.container_name,
        container_definitions=containers,
        volumes=_merge_volumes(remote.volumes, request),
        cpu=request.cpu if request.cpu is not None else remote.cpu,
        memory=request.memory if request.memory is not None else remote.memory,
        extra=remote.registration_fields(),
        base_revision=remote.revision,
    )


def _find_container(containers: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
    """Return a container definition by name."""
    for container in containers:
        if container.get("name") == name:
            return container
    return None


def _replace_list(
    container: dict[str, Any],
    key: str,
    items: Sequence[EcsItem] | None,
) -> None:
    if items is None:
        return
    container[key] = [item.to_ecs() for item in items]
    logger.debug("Replaced %s on container %s (%d entries)", key, container.get("name"), len(items))


def _merge_volumes(
    current: list[dict[str, Any]],
    request: DeploymentRequest,
) -> list[dict[str, Any]]:
    if request.volumes is None:
        return current

    requested = {volume.name: volume.to_ecs() for volume in request.volumes}
    merged: list[dict[str, Any]] = []
    for volume in current:
        name = volume.get("name")
        merged.append(requested.pop(name) if name in requested else volume)
    merged.extend(requested.values())
    return merged
