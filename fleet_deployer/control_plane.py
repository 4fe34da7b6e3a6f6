"""
Cluster control plane access.

Wraps the ECS and EC2 Auto Scaling APIs behind the handful of calls a rollout
needs. boto3 clients are synchronous, so each call runs in the event loop's
default executor and never blocks other services' rollouts.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol, TypeVar, runtime_checkable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from fleet_deployer.exceptions import ControlPlaneError
from fleet_deployer.models import (
    CapacityRecord,
    DeploymentRecord,
    DeploymentStatus,
    TaskDefinitionDocument,
)
from fleet_deployer.utils.log_sanitizer import sanitize_service_name

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class ClusterControlPlane(Protocol):
    """
    Protocol for the container orchestration control plane.

    Every method raises ControlPlaneError when the platform call fails.
    """

    async def register_task_definition(self, document: TaskDefinitionDocument) -> str:
        """Register a task definition and return its opaque task reference (ARN)."""
        ...

    async def update_service(self, cluster: str, service_name: str, task_reference: str) -> None:
        """Roll a service forward to the given task reference."""
        ...

    async def describe_service(self, cluster: str, service_name: str) -> DeploymentStatus:
        """Report the deployments currently attached to a service."""
        ...

    async def describe_auto_scaling_group(self, group_name: str) -> CapacityRecord:
        """Report an Auto Scaling group's desired capacity."""
        ...

    async def set_desired_capacity(self, group_name: str, desired_capacity: int) -> None:
        """Request a new desired capacity. Returns once the request is accepted."""
        ...


class EcsControlPlane:
    """Amazon ECS + EC2 Auto Scaling implementation of ClusterControlPlane."""

    def __init__(
        self,
        region: Optional[str] = None,
        ecs_client: Optional[Any] = None,
        autoscaling_client: Optional[Any] = None,
    ) -> None:
        """
        Initialize ECS control plane client.

        Args:
            region: AWS region of the clusters
            ecs_client: Optional boto3 ECS client (mainly for tests)
            autoscaling_client: Optional boto3 Auto Scaling client (mainly for tests)
        """
        self.region = region
        self._ecs = ecs_client or boto3.client("ecs", region_name=region)
        self._autoscaling = autoscaling_client or boto3.client("autoscaling", region_name=region)

    async def _call(self, operation: str, fn: Callable[[], T]) -> T:
        """Run a blocking SDK call in the executor and normalize its errors."""
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, fn)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Control plane call {operation} failed: {e}")
            raise ControlPlaneError(operation, str(e)) from e

    async def register_task_definition(self, document: TaskDefinitionDocument) -> str:
        payload = document.to_registration_payload()
        response = await self._call(
            "register_task_definition",
            lambda: self._ecs.register_task_definition(**payload),
        )
        task_arn = response["taskDefinition"]["taskDefinitionArn"]
        logger.debug(f"Registered task definition {task_arn}")
        return task_arn

    async def update_service(self, cluster: str, service_name: str, task_reference: str) -> None:
        await self._call(
            "update_service",
            lambda: self._ecs.update_service(
                cluster=cluster, service=service_name, taskDefinition=task_reference
            ),
        )

    async def describe_service(self, cluster: str, service_name: str) -> DeploymentStatus:
        response = await self._call(
            "describe_service",
            lambda: self._ecs.describe_services(cluster=cluster, services=[service_name]),
        )

        services = response.get("services", [])
        if len(services) != 1:
            raise ControlPlaneError(
                "describe_service",
                f"Unable to find ECS service {sanitize_service_name(service_name)} "
                f"in cluster {sanitize_service_name(cluster)}",
            )

        deployments = [
            DeploymentRecord(
                task_reference=deployment["taskDefinition"],
                is_primary=deployment.get("status") == "PRIMARY",
                desired_count=deployment.get("desiredCount", 0),
                running_count=deployment.get("runningCount", 0),
            )
            for deployment in services[0].get("deployments", [])
        ]
        return DeploymentStatus(service_name=service_name, deployments=deployments)

    async def describe_auto_scaling_group(self, group_name: str) -> CapacityRecord:
        response = await self._call(
            "describe_auto_scaling_group",
            lambda: self._autoscaling.describe_auto_scaling_groups(
                AutoScalingGroupNames=[group_name], MaxRecords=1
            ),
        )

        groups = response.get("AutoScalingGroups", [])
        if not groups:
            raise ControlPlaneError(
                "describe_auto_scaling_group", f"Unable to find auto scaling group {group_name}"
            )

        return CapacityRecord(
            group_name=groups[0].get("AutoScalingGroupName", group_name),
            desired_capacity=groups[0]["DesiredCapacity"],
        )

    async def set_desired_capacity(self, group_name: str, desired_capacity: int) -> None:
        await self._call(
            "set_desired_capacity",
            lambda: self._autoscaling.set_desired_capacity(
                AutoScalingGroupName=group_name, DesiredCapacity=desired_capacity
            ),
        )
