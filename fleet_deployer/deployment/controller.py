"""
Fleet deploy orchestration.

The controller validates the application, confirms the version and every
service are ready, then rolls all services forward concurrently. Each service
succeeds or fails on its own; the caller gets one outcome per service.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from fleet_deployer.artifact_store import ArtifactStore, TaskDefinitionStore
from fleet_deployer.audit import audit_deployment_action
from fleet_deployer.config import DeployerSettings
from fleet_deployer.control_plane import ClusterControlPlane, EcsControlPlane
from fleet_deployer.deployment.events import EventDispatcher, EventListener
from fleet_deployer.deployment.service import ServiceDeployment, Sleep
from fleet_deployer.exceptions import (
    DeploymentInProgressError,
    FleetDeploymentError,
    ValidationError,
)
from fleet_deployer.models import (
    AggregationPolicy,
    ApplicationDescriptor,
    DeployOutcome,
    FleetResult,
    RegistryConfig,
)
from fleet_deployer.registries import ImageRegistry, create_registry

logger = logging.getLogger(__name__)

RegistryFactory = Callable[[RegistryConfig, Optional[str]], ImageRegistry]


def _record_outcome(
    deployment: ServiceDeployment, error: Optional[BaseException] = None
) -> DeployOutcome:
    return DeployOutcome(
        service=deployment.name,
        cluster=deployment.service.cluster,
        succeeded=error is None,
        error=str(error) if error is not None else None,
        error_type=type(error).__name__ if error is not None else None,
        completed_at=datetime.now(timezone.utc).isoformat(),
    )


async def _gather_fail_fast(*aws: Awaitable) -> None:
    """Run awaitables concurrently; on the first failure cancel the rest and re-raise."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class DeploymentController:
    """Deploys one application's services to a new version."""

    def __init__(
        self,
        app: Optional[ApplicationDescriptor],
        settings: Optional[DeployerSettings] = None,
        *,
        registry_factory: RegistryFactory = create_registry,
        artifact_store: Optional[ArtifactStore] = None,
        control_plane: Optional[ClusterControlPlane] = None,
        listener: Optional[EventListener] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """
        Initialize the controller. Nothing is contacted until a deploy starts.

        Args:
            app: Application descriptor (validated by validate())
            settings: Region, polling budget and aggregation policy
            registry_factory: Builds the image registry client for the descriptor
            artifact_store: Task definition source (defaults to S3/filesystem)
            control_plane: Cluster control plane (defaults to ECS)
            listener: Receives every DeploymentEvent
            sleep: Awaitable delay used between status checks
        """
        self.app = app
        self.settings = settings or DeployerSettings()
        self._registry_factory = registry_factory
        self._artifact_store = artifact_store
        self._control_plane = control_plane
        self.events = EventDispatcher(listener)
        self._sleep = sleep
        self._deploying: Optional[str] = None

    @property
    def artifact_store(self) -> ArtifactStore:
        if self._artifact_store is None:
            self._artifact_store = TaskDefinitionStore(region=self.settings.region)
        return self._artifact_store

    @property
    def control_plane(self) -> ClusterControlPlane:
        if self._control_plane is None:
            self._control_plane = EcsControlPlane(region=self.settings.region)
        return self._control_plane

    def validate(self) -> None:
        """
        Check that the application can be deployed at all.

        Raises:
            ValidationError: Missing descriptor, no services, or no registry
        """
        if self.app is None:
            raise ValidationError("application", "No application descriptor was provided")
        if not self.app.services:
            raise ValidationError("services", "At least one service must be configured")
        if self.app.registry is None:
            raise ValidationError("registry", "A registry must be configured")

    def _create_deployments(self) -> List[ServiceDeployment]:
        return [
            ServiceDeployment(
                service,
                control_plane=self.control_plane,
                artifact_store=self.artifact_store,
                events=self.events,
                poll_interval_seconds=self.settings.poll_interval_seconds,
                max_poll_attempts=self.settings.max_poll_attempts,
                sleep=self._sleep,
            )
            for service in self.app.services
        ]

    async def check_readiness(self, version: str) -> None:
        """
        Confirm the version exists and every service can be deployed.

        Raises:
            ValidationError: The descriptor is incomplete
            RegistryError: The version is missing or the registry is unreachable
            ArtifactStoreError, ControlPlaneError: A service is not ready
        """
        self.validate()
        await self._check_readiness(version, self._create_deployments())

    async def _check_readiness(self, version: str, deployments: List[ServiceDeployment]) -> None:
        registry = self._registry_factory(self.app.registry, self.settings.region)

        async def check_image() -> None:
            await registry.exists(version)
            self.events.progress("Found tagged image", registry.kind)

        try:
            await _gather_fail_fast(check_image(), *(d.is_ready() for d in deployments))
        finally:
            await registry.close()

    async def deploy(self, version: str) -> FleetResult:
        """
        Deploy a version to every service of the application.

        Args:
            version: Image tag to deploy

        Returns:
            FleetResult with one outcome per service, in descriptor order

        Raises:
            ValidationError: The descriptor is incomplete
            RegistryError, ArtifactStoreError, ControlPlaneError: Readiness failed;
                no service was touched
            FleetDeploymentError: all_or_nothing aggregation and a service failed
            DeploymentInProgressError: This controller is already deploying
        """
        self.validate()
        if self._deploying is not None:
            raise DeploymentInProgressError(f"Deploy of {self._deploying} is already in progress")

        self._deploying = version
        try:
            return await self._deploy(version)
        finally:
            self._deploying = None

    async def _deploy(self, version: str) -> FleetResult:
        app_name = self.app.name or "application"
        deployments = self._create_deployments()
        logger.info(f"Checking readiness of {app_name} {version} ({len(deployments)} services)")
        await self._check_readiness(version, deployments)

        self.events.ready()
        audit_deployment_action(
            "deploy_started",
            version,
            self.settings.audit_log_path,
            details={
                "application": self.app.name,
                "services": [d.name for d in deployments],
            },
        )
        logger.info(f"Deploying {app_name} {version}")

        outcomes: List[Optional[DeployOutcome]] = [None] * len(deployments)
        completed = 0

        async def run_one(index: int, deployment: ServiceDeployment) -> None:
            nonlocal completed
            try:
                await deployment.run(version)
            except Exception as e:
                logger.error(f"Deploy of {version} to {deployment.name} failed: {e}")
                outcome = _record_outcome(deployment, e)
            else:
                outcome = _record_outcome(deployment)

            outcomes[index] = outcome
            completed += 1
            if outcome.succeeded:
                self.events.deployed(deployment.name)
            else:
                self.events.failure(deployment.name, outcome.error)
            logger.info(f"{completed}/{len(deployments)} services finished")

        await asyncio.gather(*(run_one(i, d) for i, d in enumerate(deployments)))

        result = FleetResult(version=version, outcomes=[o for o in outcomes if o is not None])
        self.events.end()

        audit_deployment_action(
            "deploy_completed",
            version,
            self.settings.audit_log_path,
            details={
                "succeeded": [o.service for o in result.succeeded],
                "failed": [o.service for o in result.failed],
            },
            success=result.all_succeeded,
        )
        logger.info(
            f"Deploy of {app_name} {version} finished: "
            f"{len(result.succeeded)} succeeded, {len(result.failed)} failed"
        )

        strict = self.settings.aggregation == AggregationPolicy.ALL_OR_NOTHING
        if strict and not result.all_succeeded:
            raise FleetDeploymentError(result)
        return result
