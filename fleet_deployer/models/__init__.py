"""
Pydantic models for fleet deployments.

These models provide type-safe data structures and validation for the
application descriptor, control plane documents and deployment results.
"""

from fleet_deployer.models.application import (
    ApplicationDescriptor,
    AutoScalingConfig,
    DockerRegistryConfig,
    EcrRegistryConfig,
    NoneRegistryConfig,
    QuayRegistryConfig,
    RegistryConfig,
    ServiceDescriptor,
    TaskDefinitionLocation,
    parse_s3_url,
)
from fleet_deployer.models.deployment import (
    AggregationPolicy,
    CapacityRecord,
    ContainerDefinition,
    DeploymentPhase,
    DeploymentRecord,
    DeploymentStatus,
    DeployOutcome,
    FleetResult,
    TaskDefinitionDocument,
    WaitStatus,
)
from fleet_deployer.models.events import DeploymentEvent, EventType

__all__ = [
    # Application descriptor
    "ApplicationDescriptor",
    "AutoScalingConfig",
    "ServiceDescriptor",
    "TaskDefinitionLocation",
    "parse_s3_url",
    # Registries
    "DockerRegistryConfig",
    "EcrRegistryConfig",
    "NoneRegistryConfig",
    "QuayRegistryConfig",
    "RegistryConfig",
    # Deployments
    "AggregationPolicy",
    "CapacityRecord",
    "ContainerDefinition",
    "DeploymentPhase",
    "DeploymentRecord",
    "DeploymentStatus",
    "DeployOutcome",
    "FleetResult",
    "TaskDefinitionDocument",
    "WaitStatus",
    # Events
    "DeploymentEvent",
    "EventType",
]
