"""
Quay repository API client.

Checks tags via ``GET {repository_url}/tag/{tag}/images``.
"""

import logging
from typing import Optional

import httpx

from fleet_deployer.exceptions import (
    ImageNotFoundError,
    RegistryAuthError,
    RegistryNetworkError,
)
from fleet_deployer.models import QuayRegistryConfig
from fleet_deployer.registries.base import ImageRegistry
from fleet_deployer.utils.log_sanitizer import sanitize_for_log

logger = logging.getLogger(__name__)


class QuayRegistry(ImageRegistry):
    """Client for a Quay repository."""

    kind = "quay"

    def __init__(
        self, config: QuayRegistryConfig, client: Optional[httpx.AsyncClient] = None
    ) -> None:
        """
        Initialize Quay registry client.

        Args:
            config: Quay repository URL and bearer token
            client: Optional HTTP client (mainly for tests)
        """
        self.url = config.url.rstrip("/")
        self.auth = config.auth
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def exists(self, tag: str) -> bool:
        url = f"{self.url}/tag/{tag}/images"
        headers = {"Authorization": f"Bearer {self.auth}"}

        try:
            response = await self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Error querying Quay for tag {sanitize_for_log(tag)}: {e}")
            raise RegistryNetworkError(self.kind, tag, f"Unable to reach Quay: {e}") from e

        if response.status_code == 200:
            logger.info(f"Found tag {sanitize_for_log(tag)} in Quay")
            return True

        if response.status_code == 401:
            raise RegistryAuthError(self.kind, tag, "Authentication failure")

        logger.warning(
            f"Quay returned {response.status_code} for tag {sanitize_for_log(tag)}: "
            f"{sanitize_for_log(response.text)}"
        )
        raise ImageNotFoundError(self.kind, tag, "Unable to find tagged image in Quay")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
