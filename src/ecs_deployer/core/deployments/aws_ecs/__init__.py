"""AWS ECS deployment helpers."""

from ecs_deployer.core.deployments.aws_ecs.orchestrator import EcsOrchestrator
from ecs_deployer.core.deployments.aws_ecs.session import create_session, get_identity

__all__ = [
    "EcsOrchestrator",
    "create_session",
    "get_identity",
]
