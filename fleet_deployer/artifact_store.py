"""
Task definition template storage.

Templates are JSON documents kept in S3 (or any S3-compatible store) or on
the local filesystem. They are read fresh for every deploy and never written
back; the version rewrite happens on an in-memory copy.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

import aiofiles  # type: ignore
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as PydanticValidationError

from fleet_deployer.exceptions import ArtifactStoreError
from fleet_deployer.models import TaskDefinitionDocument, TaskDefinitionLocation

logger = logging.getLogger(__name__)


@runtime_checkable
class ArtifactStore(Protocol):
    """Protocol for fetching task definition templates."""

    async def fetch(self, location: TaskDefinitionLocation) -> TaskDefinitionDocument:
        """
        Fetch and parse the task definition stored at a location.

        Raises:
            ArtifactStoreError: If the document cannot be read or is not a task definition
        """
        ...


class TaskDefinitionStore:
    """Reads task definition templates from S3 or the local filesystem."""

    def __init__(
        self,
        region: Optional[str] = None,
        s3_client_factory: Optional[Callable[[Optional[str]], Any]] = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            region: AWS region for S3 clients
            s3_client_factory: Builds an S3 client for an endpoint URL (None for AWS).
                Defaults to boto3.
        """
        self.region = region
        self._s3_client_factory = s3_client_factory or self._default_s3_client
        self._s3_clients: Dict[Optional[str], Any] = {}

    def _default_s3_client(self, endpoint_url: Optional[str]) -> Any:
        return boto3.client("s3", region_name=self.region, endpoint_url=endpoint_url)

    def _get_s3_client(self, host: Optional[str]) -> Any:
        """Return a cached S3 client for the given custom endpoint host."""
        endpoint_url = None
        if host:
            endpoint_url = host if "://" in host else f"https://{host}"
        if endpoint_url not in self._s3_clients:
            self._s3_clients[endpoint_url] = self._s3_client_factory(endpoint_url)
        return self._s3_clients[endpoint_url]

    async def fetch(self, location: TaskDefinitionLocation) -> TaskDefinitionDocument:
        if location.scheme == "s3":
            body = await self._read_s3(location)
        else:
            body = await self._read_file(location)

        try:
            data = json.loads(body)
        except ValueError as e:
            raise ArtifactStoreError(str(location), f"Invalid JSON: {e}") from e

        try:
            document = TaskDefinitionDocument.model_validate(data)
        except PydanticValidationError as e:
            raise ArtifactStoreError(str(location), f"Not a task definition: {e}") from e

        logger.debug(
            f"Fetched task definition from {location} ({len(document.images)} containers)"
        )
        return document

    async def _read_s3(self, location: TaskDefinitionLocation) -> bytes:
        client = self._get_s3_client(location.host)
        loop = asyncio.get_event_loop()

        def _get_object() -> bytes:
            response = client.get_object(Bucket=location.bucket, Key=location.key)
            return response["Body"].read()

        try:
            return await loop.run_in_executor(None, _get_object)
        except (ClientError, BotoCoreError) as e:
            raise ArtifactStoreError(str(location), str(e)) from e

    async def _read_file(self, location: TaskDefinitionLocation) -> str:
        try:
            async with aiofiles.open(location.path, "r") as f:
                return await f.read()
        except OSError as e:
            raise ArtifactStoreError(str(location), str(e)) from e
