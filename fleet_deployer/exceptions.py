"""
Exception hierarchy for fleet deployments.

Errors raised before any infrastructure is touched (validation, configuration,
registry lookups) abort the whole deploy. Errors raised while a single service
is rolling out are caught by the controller and reported for that service only.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from fleet_deployer.models import FleetResult


class FleetDeployerError(Exception):
    """Base exception for all fleet deployer errors."""


class ValidationError(FleetDeployerError):
    """
    Raised when an application descriptor cannot be deployed.

    Attributes:
        field: Descriptor field that failed validation
        message: Human-readable description of the problem
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"Validation error in '{field}': {message}")


class ConfigError(FleetDeployerError):
    """Raised when a configuration file cannot be read or parsed."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"Configuration error in {path}: {message}")


class RegistryError(FleetDeployerError):
    """
    Base class for image registry failures.

    Attributes:
        registry: Registry kind that produced the error (quay, ecr, docker, ...)
        tag: Image tag that was being checked
    """

    def __init__(self, registry: str, tag: str, message: str) -> None:
        self.registry = registry
        self.tag = tag
        self.message = message
        super().__init__(message)


class ImageNotFoundError(RegistryError):
    """The requested tag does not exist in the registry."""


class RegistryAuthError(RegistryError):
    """The registry rejected our credentials."""


class RegistryNetworkError(RegistryError):
    """The registry could not be reached or returned an unexpected error."""


class ArtifactStoreError(FleetDeployerError):
    """Raised when a task definition document cannot be fetched or parsed."""

    def __init__(self, location: str, message: str) -> None:
        self.location = location
        self.message = message
        super().__init__(f"Failed to fetch task definition from {location}: {message}")


class ControlPlaneError(FleetDeployerError):
    """
    Raised when a cluster control plane call fails.

    Attributes:
        operation: Control plane operation name (register, update, describe, scale)
        message: Error details from the platform
    """

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class DeploymentSupersededError(FleetDeployerError):
    """Another deploy became primary while we were waiting for ours to converge."""

    def __init__(self, service: str, task_reference: str) -> None:
        self.service = service
        self.task_reference = task_reference
        super().__init__(
            f"Deploy of {task_reference} to {service} is no longer the primary deploy. "
            "Another deploy has taken precedence."
        )


class DeploymentTimeoutError(FleetDeployerError):
    """The rollout did not converge within the polling budget."""

    def __init__(self, service: str, attempts: int) -> None:
        self.service = service
        self.attempts = attempts
        super().__init__(
            f"Timed out waiting for {service} to deploy after {attempts} status checks"
        )


class FleetDeploymentError(FleetDeployerError):
    """
    Raised in all-or-nothing mode when at least one service failed.

    Attributes:
        result: Outcomes for every service in the fleet
    """

    def __init__(self, result: "FleetResult", message: Optional[str] = None) -> None:
        self.result = result
        failed = [outcome.service for outcome in result.failed]
        super().__init__(message or f"Deploy of {result.version} failed for: {', '.join(failed)}")


class DeploymentInProgressError(FleetDeployerError):
    """A controller was asked to deploy while its previous deploy is still running."""
