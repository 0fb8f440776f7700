"""ECS deployer - reconcile task definitions and services on Amazon ECS."""

from ecs_deployer.core.descriptors import CandidateDescriptor, RemoteTaskDefinition
from ecs_deployer.core.errors import (
    ContainerNotFoundError,
    DanglingMountError,
    DeploymentCancelledError,
    DeploymentError,
    IncompatibleResourceError,
    RemoteRejectionError,
    ServiceDeploymentFailedError,
    StabilityTimeoutError,
    ValidationError,
)
from ecs_deployer.core.models import DeploymentRequest
from ecs_deployer.core.parser import parse_request
from ecs_deployer.core.pipeline import DeploymentResult, deploy, plan
from ecs_deployer.core.reconciler import ReconcileState

__all__ = [
    "deploy",
    "plan",
    "parse_request",
    "DeploymentRequest",
    "DeploymentResult",
    "CandidateDescriptor",
    "RemoteTaskDefinition",
    "ReconcileState",
    "DeploymentError",
    "ValidationError",
    "ContainerNotFoundError",
    "DanglingMountError",
    "IncompatibleResourceError",
    "RemoteRejectionError",
    "ServiceDeploymentFailedError",
    "StabilityTimeoutError",
    "DeploymentCancelledError",
]
