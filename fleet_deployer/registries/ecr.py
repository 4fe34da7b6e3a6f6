"""
Amazon ECR registry client.

boto3 is synchronous, so calls run in the event loop's default executor.
"""

import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from fleet_deployer.exceptions import ImageNotFoundError, RegistryNetworkError
from fleet_deployer.models import EcrRegistryConfig
from fleet_deployer.registries.base import ImageRegistry
from fleet_deployer.utils.log_sanitizer import sanitize_for_log

logger = logging.getLogger(__name__)


class EcrRegistry(ImageRegistry):
    """Client for an ECR repository."""

    kind = "ecr"

    def __init__(
        self,
        config: EcrRegistryConfig,
        region: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        """
        Initialize ECR registry client.

        Args:
            config: ECR repository settings
            region: Deployer region, used when the repository has none
            client: Optional boto3 ECR client (mainly for tests)
        """
        self.repository = config.repository
        self.region = config.region or region
        self._client = client or boto3.client("ecr", region_name=self.region)

    async def exists(self, tag: str) -> bool:
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: self._client.describe_images(
                    repositoryName=self.repository,
                    imageIds=[{"imageTag": tag}],
                ),
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code == "ImageNotFoundException":
                raise ImageNotFoundError(
                    self.kind, tag, "Unable to find tagged image in ECR"
                ) from e
            logger.error(f"ECR describe_images failed for {sanitize_for_log(tag)}: {e}")
            raise RegistryNetworkError(self.kind, tag, f"ECR request failed: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Error reaching ECR for {sanitize_for_log(tag)}: {e}")
            raise RegistryNetworkError(self.kind, tag, f"Unable to reach ECR: {e}") from e

        logger.info(f"Found tag {sanitize_for_log(tag)} in ECR repository {self.repository}")
        return True
