"""Image registries checked before a version is rolled out."""

from typing import Optional

from fleet_deployer.exceptions import ValidationError
from fleet_deployer.models import (
    DockerRegistryConfig,
    EcrRegistryConfig,
    NoneRegistryConfig,
    QuayRegistryConfig,
    RegistryConfig,
)
from fleet_deployer.registries.base import ImageRegistry


def create_registry(config: RegistryConfig, region: Optional[str] = None) -> ImageRegistry:
    """
    Create an image registry client for the configured registry kind.

    Args:
        config: Registry configuration from the application descriptor
        region: Deployer region, used by registries hosted in AWS

    Returns:
        Registry client implementing ``exists(tag)``
    """
    if isinstance(config, QuayRegistryConfig):
        from fleet_deployer.registries.quay import QuayRegistry

        return QuayRegistry(config)

    if isinstance(config, EcrRegistryConfig):
        from fleet_deployer.registries.ecr import EcrRegistry

        return EcrRegistry(config, region=region)

    if isinstance(config, DockerRegistryConfig):
        from fleet_deployer.registries.docker import DockerRegistry

        return DockerRegistry(config)

    if isinstance(config, NoneRegistryConfig):
        from fleet_deployer.registries.none import NoneRegistry

        return NoneRegistry()

    raise ValidationError(
        field="registry.kind",
        message=f"Unsupported registry kind: {getattr(config, 'kind', config)}",
    )


__all__ = ["ImageRegistry", "create_registry"]
