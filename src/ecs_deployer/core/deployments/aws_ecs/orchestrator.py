"""ECS and Application Auto Scaling implementation of the orchestrator interface."""

import logging
from typing import Any, cast

from boto3.session import Session
from botocore.exceptions import BotoCoreError, ClientError

from ecs_deployer.core.descriptors import (
    RegisteredRevision,
    RemoteTaskDefinition,
    ScalableTarget,
    ServiceStatus,
    TargetTrackingPolicy,
)
from ecs_deployer.core.errors import RemoteRejectionError
from ecs_deployer.core.interfaces import OrchestratorInterface

logger = logging.getLogger(__name__)

SERVICE_NAMESPACE = "ecs"
SCALABLE_DIMENSION = "ecs:service:DesiredCount"


class EcsOrchestrator(OrchestratorInterface):
    """Talk to ECS through boto3 clients created from a session."""

    def __init__(self, session: Session) -> None:
        self._ecs = session.client("ecs")
        self._autoscaling = session.client("application-autoscaling")

    def fetch_latest_task_definition(self, family: str) -> RemoteTaskDefinition:
        try:
            response = self._ecs.describe_task_definition(taskDefinition=family)
        except (ClientError, BotoCoreError) as exc:
            raise _remote_error("fetch", exc) from exc

        task_definition = response["taskDefinition"]
        logger.info(
            "Fetched task definition %s:%s",
            task_definition.get("family"),
            task_definition.get("revision"),
        )
        return RemoteTaskDefinition.from_response(task_definition)

    def register_task_definition(self, payload: dict[str, Any]) -> RegisteredRevision:
        try:
            response = self._ecs.register_task_definition(**payload)
        except (ClientError, BotoCoreError) as exc:
            raise _remote_error("register", exc) from exc

        task_definition = response["taskDefinition"]
        return RegisteredRevision(
            arn=cast(str, task_definition["taskDefinitionArn"]),
            family=cast(str, task_definition["family"]),
            revision=int(task_definition["revision"]),
        )

    def update_service(
        self,
        cluster: str,
        service: str,
        task_definition_arn: str,
        desired_count: int | None = None,
    ) -> None:
        request: dict[str, Any] = {
            "cluster": cluster,
            "service": service,
            "taskDefinition": task_definition_arn,
        }
        if desired_count is not None:
            request["desiredCount"] = desired_count

        try:
            response = self._ecs.update_service(**request)
        except (ClientError, BotoCoreError) as exc:
            raise _remote_error("update", exc) from exc

        deployments = response.get("service", {}).get("deployments", [])
        if deployments:
            logger.info("Service update initiated, deployment %s", deployments[0].get("id"))

    def describe_service(self, cluster: str, service: str) -> ServiceStatus:
        try:
            response = self._ecs.describe_services(cluster=cluster, services=[service])
        except (ClientError, BotoCoreError) as exc:
            raise _remote_error("wait", exc) from exc

        services = response.get("services", [])
        if not services:
            failures = response.get("failures", [])
            reason = str(failures[0].get("reason", "MISSING")) if failures else "MISSING"
            return ServiceStatus(status="MISSING", failure_reason=reason)

        details = services[0]
        return ServiceStatus(
            status=str(details.get("status", "")),
            desired_count=int(details.get("desiredCount", 0)),
            running_count=int(details.get("runningCount", 0)),
            deployments=list(details.get("deployments", [])),
        )

    def register_scalable_target(self, target: ScalableTarget) -> None:
        try:
            self._autoscaling.register_scalable_target(
                ServiceNamespace=SERVICE_NAMESPACE,
                ResourceId=target.resource_id,
                ScalableDimension=SCALABLE_DIMENSION,
                MinCapacity=target.min_capacity,
                MaxCapacity=target.max_capacity,
            )
        except (ClientError, BotoCoreError) as exc:
            raise _remote_error("autoscaling", exc) from exc

    def put_scaling_policy(self, policy: TargetTrackingPolicy) -> str:
        try:
            response = self._autoscaling.put_scaling_policy(
                PolicyName=policy.policy_name,
                ServiceNamespace=SERVICE_NAMESPACE,
                ResourceId=policy.resource_id,
                ScalableDimension=SCALABLE_DIMENSION,
                PolicyType="TargetTrackingScaling",
                TargetTrackingScalingPolicyConfiguration={
                    "TargetValue": policy.target_value,
                    "PredefinedMetricSpecification": {
                        "PredefinedMetricType": policy.metric_type,
                    },
                    "ScaleInCooldown": policy.scale_in_cooldown,
                    "ScaleOutCooldown": policy.scale_out_cooldown,
                },
            )
        except (ClientError, BotoCoreError) as exc:
            raise _remote_error("autoscaling", exc) from exc
        return cast(str, response["PolicyARN"])


def _remote_error(stage: str, exc: ClientError | BotoCoreError) -> RemoteRejectionError:
    """Wrap a boto3 failure, keeping the AWS message verbatim.

    Client-side failures (bad parameters, unreachable endpoint, missing
    credentials) carry no service error code, so the botocore class name
    stands in for one.
    """
    if isinstance(exc, BotoCoreError):
        return RemoteRejectionError(stage, str(exc), remote_code=type(exc).__name__)
    error = exc.response.get("Error", {})
    message = str(error.get("Message") or exc)
    code = error.get("Code")
    return RemoteRejectionError(stage, message, remote_code=str(code) if code else None)
