"""
Rollout of a single service.

A ServiceDeployment walks one service through register, update, optional
scale-up, polling and optional scale-down. It is created for one deploy and
discarded afterwards.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from fleet_deployer.artifact_store import ArtifactStore
from fleet_deployer.control_plane import ClusterControlPlane
from fleet_deployer.deployment.events import EventDispatcher
from fleet_deployer.deployment.polling import RolloutState, evaluate_rollout
from fleet_deployer.exceptions import DeploymentSupersededError, DeploymentTimeoutError
from fleet_deployer.logging_config import log_service_operation
from fleet_deployer.models import DeploymentPhase, ServiceDescriptor

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ServiceDeployment:
    """State machine that rolls one service forward to a new version."""

    def __init__(
        self,
        service: ServiceDescriptor,
        control_plane: ClusterControlPlane,
        artifact_store: ArtifactStore,
        events: Optional[EventDispatcher] = None,
        poll_interval_seconds: float = 15.0,
        max_poll_attempts: int = 100,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """
        Initialize the rollout.

        Args:
            service: Service to deploy
            control_plane: Cluster control plane client
            artifact_store: Source of the task definition template
            events: Dispatcher for progress and waiting notifications
            poll_interval_seconds: Delay between status checks
            max_poll_attempts: Status checks before giving up
            sleep: Awaitable delay, replaced in tests
        """
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be at least 1")

        self.service = service
        self.control_plane = control_plane
        self.artifact_store = artifact_store
        self.events = events or EventDispatcher()
        self.poll_interval_seconds = poll_interval_seconds
        self.max_poll_attempts = max_poll_attempts
        self._sleep = sleep

        self.phase = DeploymentPhase.PENDING
        self.task_reference: Optional[str] = None
        self.previous_capacity: Optional[int] = None
        self.poll_attempts = 0

    @property
    def name(self) -> str:
        return self.service.name

    async def is_ready(self) -> None:
        """
        Check that every resource this rollout touches is reachable.

        Fetches the task definition template, describes the service and, when
        the service scales its cluster, describes the Auto Scaling group.
        Returns None on success and raises the first failure otherwise.
        """
        checks = [
            self.artifact_store.fetch(self.service.task_definition),
            self.control_plane.describe_service(self.service.cluster, self.service.name),
        ]
        if self.service.auto_scaling:
            checks.append(
                self.control_plane.describe_auto_scaling_group(self.service.auto_scaling.group_name)
            )
        await asyncio.gather(*checks)
        logger.debug(f"[{self.name}] Ready to deploy")

    async def run(self, version: str) -> ServiceDescriptor:
        """
        Deploy the version to this service and wait for it to converge.

        Args:
            version: Image tag to deploy

        Returns:
            The service descriptor, once the rollout has converged

        Raises:
            FleetDeployerError: Any failure; the machine is left in the failed phase
        """
        if self.phase != DeploymentPhase.PENDING:
            raise RuntimeError(f"Deployment of {self.name} has already run ({self.phase.value})")

        try:
            task_reference = await self.register_task_definition(version)
            await self.update_service(task_reference)
            if self.service.auto_scaling:
                await self.scale_up()
            await self.wait_for_deploy(task_reference)
            if self.service.auto_scaling:
                await self.scale_down()
        except Exception as e:
            self.phase = DeploymentPhase.FAILED
            log_service_operation(
                "failed",
                self.name,
                {"version": version, "phase_error": type(e).__name__, "error": str(e)},
                level="ERROR",
            )
            raise

        self.phase = DeploymentPhase.CONVERGED
        log_service_operation("converged", self.name, {"version": version})
        return self.service

    async def register_task_definition(self, version: str) -> str:
        """Fetch the template, point its images at the version and register it."""
        self.phase = DeploymentPhase.REGISTERING
        template = await self.artifact_store.fetch(self.service.task_definition)
        document = template.with_image_version(version)

        self.task_reference = await self.control_plane.register_task_definition(document)
        self._log_progress(f"Registered new task definition {self.task_reference}")
        log_service_operation(
            "register",
            self.name,
            {"task_reference": self.task_reference, "images": document.images},
        )
        return self.task_reference

    async def update_service(self, task_reference: str) -> None:
        """Point the service at the new task definition."""
        self.phase = DeploymentPhase.UPDATING
        await self.control_plane.update_service(self.service.cluster, self.name, task_reference)
        self._log_progress(f"Updated service to {task_reference}")
        log_service_operation("update", self.name, {"cluster": self.service.cluster})

    async def scale_up(self) -> None:
        """Double the cluster's desired capacity so old and new tasks fit side by side."""
        self.phase = DeploymentPhase.SCALING_UP
        group_name = self.service.auto_scaling.group_name

        capacity = await self.control_plane.describe_auto_scaling_group(group_name)
        self.previous_capacity = capacity.desired_capacity
        target = capacity.desired_capacity * 2

        await self.control_plane.set_desired_capacity(group_name, target)
        self._log_progress(
            f"Scaling up {group_name} from {self.previous_capacity} to {target} instances"
        )
        log_service_operation(
            "scale_up",
            self.name,
            {"group": group_name, "from": self.previous_capacity, "to": target},
        )

    async def wait_for_deploy(self, task_reference: str) -> None:
        """
        Poll the service until the new deployment has fully replaced the old one.

        Raises:
            DeploymentSupersededError: Another deploy became primary
            DeploymentTimeoutError: The polling budget ran out
        """
        self.phase = DeploymentPhase.POLLING
        remaining = self.max_poll_attempts
        announced_running = False

        while remaining > 0:
            status = await self.control_plane.describe_service(self.service.cluster, self.name)
            self.poll_attempts += 1
            check = evaluate_rollout(status, task_reference)

            if check.state == RolloutState.SUPERSEDED:
                raise DeploymentSupersededError(self.name, task_reference)

            if check.new_version_running and not announced_running:
                self._log_progress("New version is running")
                announced_running = True

            if check.converged:
                self._log_progress("Old versions are no longer running")
                return

            self.events.waiting(self.poll_interval_seconds, check.wait_status, self.name)
            remaining -= 1
            if remaining:
                await self._sleep(self.poll_interval_seconds)

        raise DeploymentTimeoutError(self.name, self.max_poll_attempts)

    async def scale_down(self) -> None:
        """Restore the capacity recorded before scale-up."""
        self.phase = DeploymentPhase.SCALING_DOWN
        group_name = self.service.auto_scaling.group_name

        await self.control_plane.set_desired_capacity(group_name, self.previous_capacity)
        self._log_progress(f"Scaling down {group_name} to {self.previous_capacity} instances")
        log_service_operation(
            "scale_down", self.name, {"group": group_name, "to": self.previous_capacity}
        )

    def _log_progress(self, message: str) -> None:
        logger.info(f"[{self.name}] {message}")
        self.events.progress(message, self.name)
