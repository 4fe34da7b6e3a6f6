"""
Docker Registry HTTP API v2 client.

Handles ghcr.io, Docker Hub and any other registry that serves
``/v2/<repository>/manifests/<tag>``.
"""

import base64
import logging
from typing import Optional

import httpx

from fleet_deployer.exceptions import (
    ImageNotFoundError,
    RegistryAuthError,
    RegistryNetworkError,
)
from fleet_deployer.models import DockerRegistryConfig
from fleet_deployer.registries.base import ImageRegistry
from fleet_deployer.utils.image_ref import DEFAULT_REGISTRY, parse_image_reference

logger = logging.getLogger(__name__)

MANIFEST_ACCEPT = ", ".join(
    [
        "application/vnd.docker.distribution.manifest.v2+json",
        "application/vnd.docker.distribution.manifest.list.v2+json",
        "application/vnd.oci.image.manifest.v1+json",
        "application/vnd.oci.image.index.v1+json",
    ]
)


class DockerRegistry(ImageRegistry):
    """Client for registries speaking the Docker Registry HTTP API v2."""

    kind = "docker"

    def __init__(
        self, config: DockerRegistryConfig, client: Optional[httpx.AsyncClient] = None
    ) -> None:
        """
        Initialize Docker registry client.

        Args:
            config: Image name and optional access token (a GitHub token for ghcr.io)
            client: Optional HTTP client (mainly for tests)
        """
        self.registry, self.repository, _ = parse_image_reference(config.image)
        self.auth_token = config.token
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def exists(self, tag: str) -> bool:
        try:
            auth_header = await self._get_auth_header(tag)

            headers = {"Accept": MANIFEST_ACCEPT}
            if auth_header:
                headers["Authorization"] = auth_header

            url = f"https://{self.registry}/v2/{self.repository}/manifests/{tag}"
            response = await self._client.head(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Error querying {self.registry} for {self.repository}:{tag}: {e}")
            raise RegistryNetworkError(
                self.kind, tag, f"Unable to reach {self.registry}: {e}"
            ) from e

        if response.status_code == 200:
            # Digest is in the Docker-Content-Digest header
            digest = response.headers.get("Docker-Content-Digest")
            logger.info(
                f"Found {self.repository}:{tag} on {self.registry} ({digest or 'no digest'})"
            )
            return True

        if response.status_code in (401, 403):
            raise RegistryAuthError(
                self.kind, tag, f"{self.registry} rejected credentials ({response.status_code})"
            )

        raise ImageNotFoundError(
            self.kind, tag, f"Unable to find {self.repository}:{tag} on {self.registry}"
        )

    async def _get_auth_header(self, tag: str) -> Optional[str]:
        """
        Get authentication header for the registry.

        Returns:
            Authorization header value or None
        """
        if self.registry == "ghcr.io" and self.auth_token:
            # GitHub Container Registry requires token exchange, using the PAT as Basic auth
            token_url = (
                f"https://ghcr.io/token?service=ghcr.io&scope=repository:{self.repository}:pull"
            )
            auth_string = base64.b64encode(
                f"{self.auth_token}:{self.auth_token}".encode()
            ).decode()
            return await self._exchange_token(
                tag, token_url, {"Authorization": f"Basic {auth_string}"}
            )

        if self.registry == DEFAULT_REGISTRY:
            # Docker Hub hands out anonymous pull tokens for public repositories
            token_url = (
                "https://auth.docker.io/token?service=registry.docker.io"
                f"&scope=repository:{self.repository}:pull"
            )
            headers = {}
            if self.auth_token:
                headers["Authorization"] = f"Bearer {self.auth_token}"
            return await self._exchange_token(tag, token_url, headers)

        if self.auth_token:
            return f"Bearer {self.auth_token}"

        return None

    async def _exchange_token(self, tag: str, token_url: str, headers: dict) -> Optional[str]:
        response = await self._client.get(token_url, headers=headers)
        if response.status_code in (401, 403):
            raise RegistryAuthError(
                self.kind, tag, f"Token exchange with {self.registry} was rejected"
            )
        if response.status_code != 200:
            logger.error(f"Failed to get {self.registry} token: {response.status_code}")
            return None

        docker_token = response.json().get("token")
        if not docker_token:
            logger.error(f"No token in {self.registry} response")
            return None
        return f"Bearer {docker_token}"

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
