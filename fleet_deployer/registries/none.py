"""
Registry that performs no checks.

Useful for services whose image is not gated on a registry, and as a
skeleton for adding new registries.
"""

from fleet_deployer.registries.base import ImageRegistry


class NoneRegistry(ImageRegistry):
    """Every tag exists."""

    kind = "none"

    async def exists(self, tag: str) -> bool:
        return True
