"""
Base interface for image registries.

A registry answers a single question before anything is deployed: does the
image for this version exist?
"""

from abc import ABC, abstractmethod


class ImageRegistry(ABC):
    """Abstract base class for image registries."""

    #: Registry kind as written in configuration
    kind: str = ""

    @abstractmethod
    async def exists(self, tag: str) -> bool:
        """
        Check that an image with the given tag has been pushed.

        Args:
            tag: Image tag (the release version)

        Returns:
            True when the tag exists

        Raises:
            ImageNotFoundError: If the registry reports the tag missing
            RegistryAuthError: If the registry rejects our credentials
            RegistryNetworkError: If the registry cannot be reached
        """

    async def close(self) -> None:
        """Release any connections held by the registry client."""
        return None
