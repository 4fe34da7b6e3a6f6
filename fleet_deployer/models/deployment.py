"""
Deployment-related data models.

These models describe the documents we register with the control plane, the
status the control plane reports back while a rollout is in flight, and the
per-service outcomes the controller aggregates into a fleet result.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fleet_deployer.utils.image_ref import rewrite_image_tag

# Keys returned by DescribeTaskDefinition that RegisterTaskDefinition rejects
READ_ONLY_TASK_DEFINITION_KEYS = (
    "taskDefinitionArn",
    "revision",
    "status",
    "requiresAttributes",
    "compatibilities",
    "registeredAt",
    "registeredBy",
    "deregisteredAt",
)


class DeploymentPhase(str, Enum):
    """States of a single service rollout."""

    PENDING = "pending"
    REGISTERING = "registering"
    UPDATING = "updating"
    SCALING_UP = "scaling_up"
    POLLING = "polling"
    SCALING_DOWN = "scaling_down"
    CONVERGED = "converged"
    FAILED = "failed"


class WaitStatus(str, Enum):
    """Why a rollout has not converged yet."""

    DEPLOYING_NEW_VERSION = "DEPLOYING_NEW_VERSION"
    RAMPING_DOWN_OLD_VERSION = "RAMPING_DOWN_OLD_VERSION"


class AggregationPolicy(str, Enum):
    """How service failures affect the outcome of a fleet deploy."""

    ISOLATED = "isolated"
    ALL_OR_NOTHING = "all_or_nothing"


class ContainerDefinition(BaseModel):
    """A container entry in a task definition. Only the image is interpreted."""

    model_config = ConfigDict(extra="allow")

    image: str = Field(..., description="Image reference, e.g. acme/app:1.4")


class TaskDefinitionDocument(BaseModel):
    """
    ECS task definition template.

    Everything except the container images is passed through to the control
    plane untouched.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    container_definitions: List[ContainerDefinition] = Field(
        ..., alias="containerDefinitions", description="Containers in the task"
    )

    def with_image_version(self, version: str) -> "TaskDefinitionDocument":
        """
        Return a copy whose container images all point at the given version.

        Args:
            version: Image tag to deploy

        Returns:
            New document; this one is left unchanged
        """
        updated = self.model_copy(deep=True)
        # Every container is assumed to be built from the released image
        for container in updated.container_definitions:
            container.image = rewrite_image_tag(container.image, version)
        return updated

    def to_registration_payload(self) -> Dict[str, Any]:
        """Serialize for RegisterTaskDefinition."""
        payload = self.model_dump(by_alias=True, exclude_none=True)
        for key in READ_ONLY_TASK_DEFINITION_KEYS:
            payload.pop(key, None)
        return payload

    @property
    def images(self) -> List[str]:
        return [container.image for container in self.container_definitions]


class DeploymentRecord(BaseModel):
    """One deployment of a service as reported by the control plane."""

    task_reference: str = Field(..., description="Task definition ARN this deployment runs")
    is_primary: bool = Field(default=False, description="Whether this is the PRIMARY deployment")
    desired_count: int = Field(default=0, ge=0, description="Tasks the deployment wants running")
    running_count: int = Field(default=0, ge=0, description="Tasks currently running")


class DeploymentStatus(BaseModel):
    """Snapshot of a service's deployments at one observation instant."""

    service_name: str = Field(..., description="ECS service name")
    deployments: List[DeploymentRecord] = Field(default_factory=list)

    def find(self, task_reference: str) -> Optional[DeploymentRecord]:
        """Return the deployment running the given task definition, if any."""
        for record in self.deployments:
            if record.task_reference == task_reference:
                return record
        return None

    def running_elsewhere(self, task_reference: str) -> int:
        """Count tasks still running under any other task definition."""
        return sum(
            record.running_count
            for record in self.deployments
            if record.task_reference != task_reference
        )


class CapacityRecord(BaseModel):
    """Desired capacity of an Auto Scaling group."""

    group_name: str = Field(..., description="Auto Scaling group name")
    desired_capacity: int = Field(..., ge=0, description="Configured desired instance count")


class DeployOutcome(BaseModel):
    """Terminal result of one service's rollout."""

    service: str = Field(..., description="Service name")
    cluster: str = Field(..., description="Cluster the service runs in")
    succeeded: bool = Field(..., description="Whether the rollout converged")
    error: Optional[str] = Field(default=None, description="Failure reason")
    error_type: Optional[str] = Field(default=None, description="Exception class name")
    completed_at: Optional[str] = Field(
        default=None, description="ISO 8601 timestamp when the outcome was recorded"
    )


class FleetResult(BaseModel):
    """Outcomes of every service in one fleet deploy."""

    version: str = Field(..., description="Version that was deployed")
    outcomes: List[DeployOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[DeployOutcome]:
        return [outcome for outcome in self.outcomes if outcome.succeeded]

    @property
    def failed(self) -> List[DeployOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed
