"""Target-tracking autoscaling for an ECS service."""

import logging
from collections.abc import Callable

from ecs_deployer.core.descriptors import ScalableTarget, ScalingPolicySet, TargetTrackingPolicy
from ecs_deployer.core.interfaces import OrchestratorInterface
from ecs_deployer.core.models import AutoscalingConfig

logger = logging.getLogger(__name__)

CPU_METRIC = "ECSServiceAverageCPUUtilization"
MEMORY_METRIC = "ECSServiceAverageMemoryUtilization"


def service_resource_id(cluster: str, service: str) -> str:
    """Return the Application Auto Scaling resource ID of a service."""
    return f"service/{cluster}/{service}"


def policy_name(service: str, metric: str) -> str:
    """Return the conventional policy name for a service metric (``cpu`` or ``memory``)."""
    return f"{service}-{metric}-target-tracking"


def build_policy_set(cluster: str, service: str, config: AutoscalingConfig) -> ScalingPolicySet:
    """Build the scaling target and the policies whose targets were specified."""
    resource_id = service_resource_id(cluster, service)
    target = ScalableTarget(
        resource_id=resource_id,
        min_capacity=config.min_capacity,
        max_capacity=config.max_capacity,
    )

    def _policy(metric: str, metric_type: str, value: float | None) -> TargetTrackingPolicy | None:
        if value is None:
            return None
        return TargetTrackingPolicy(
            policy_name=policy_name(service, metric),
            resource_id=resource_id,
            metric_type=metric_type,
            target_value=float(value),
            scale_in_cooldown=config.scale_in_cooldown,
            scale_out_cooldown=config.scale_out_cooldown,
        )

    return ScalingPolicySet(
        target=target,
        cpu_policy=_policy("cpu", CPU_METRIC, config.target_cpu_utilization),
        memory_policy=_policy("memory", MEMORY_METRIC, config.target_memory_utilization),
    )


class AutoscalingConfigurator:
    """Apply a scaling policy set idempotently.

    Re-registering the target updates its bounds and putting a policy under an
    existing name replaces it. Policies for metrics absent from the set are
    never touched, so a CPU-only run keeps an existing memory policy.
    """

    def __init__(
        self,
        orchestrator: OrchestratorInterface,
        reporter: Callable[[str], None] | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._report = reporter or logger.info

    def apply(self, policy_set: ScalingPolicySet) -> list[str]:
        """Register the target and put each configured policy.

        Returns:
            ARNs of the policies that were created or replaced.
        """
        target = policy_set.target
        self._report(
            f"Registering scalable target {target.resource_id} "
            f"(min {target.min_capacity}, max {target.max_capacity})"
        )
        self._orchestrator.register_scalable_target(target)

        policy_arns: list[str] = []
        for policy in policy_set.policies:
            self._report(
                f"Putting scaling policy {policy.policy_name} (target {policy.target_value:g}%)"
            )
            policy_arns.append(self._orchestrator.put_scaling_policy(policy))

        if not policy_set.policies:
            logger.warning("Autoscaling enabled without CPU or memory targets; no policies changed")
        return policy_arns
