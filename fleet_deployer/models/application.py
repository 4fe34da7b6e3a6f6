"""
Application descriptor models.

An application is a set of ECS services that share one container image and are
released together under a single version tag. These models are loaded from the
``services`` and ``registry`` sections of the deployer configuration file.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def parse_s3_url(url: str) -> Tuple[str, str]:
    """
    Split an S3 URL into bucket and key.

    Args:
        url: An S3 URL, e.g. "s3://bucket/my/task-definition.json"

    Returns:
        Tuple of (bucket, key)
    """
    if url[:5].lower() == "s3://":
        url = url[5:]
    bucket, _, key = url.partition("/")
    return bucket, key


class TaskDefinitionLocation(BaseModel):
    """
    Where a service's task definition template lives.

    Accepts either a URL string or a mapping. Supported forms:
    - "s3://bucket/path/task-definition.json"
    - {"bucket": "bucket", "key": "path/task-definition.json", "host": "minio:9000"}
    - "file:///srv/deploy/task-definition.json" or a plain filesystem path
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = Field(..., description="S3 URL, file:// URL, or filesystem path")
    host: Optional[str] = Field(
        default=None, description="Custom S3 endpoint (e.g., a MinIO host)"
    )

    @model_validator(mode="before")
    @classmethod
    def coerce_location(cls, data: Any) -> Any:
        """Accept bare URLs and bucket/key mappings."""
        if isinstance(data, str):
            return {"url": data}
        if isinstance(data, dict) and "url" not in data and "bucket" in data:
            data = dict(data)
            bucket = data.pop("bucket")
            key = str(data.pop("key", "")).lstrip("/")
            data["url"] = f"s3://{bucket}/{key}"
        return data

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure S3 locations name both a bucket and a key."""
        if not v.strip():
            raise ValueError("Task definition location must not be empty")
        if v[:5].lower() == "s3://":
            bucket, key = parse_s3_url(v)
            if not bucket or not key:
                raise ValueError(f"Invalid S3 location: {v}. Expected s3://bucket/key")
        return v

    @property
    def scheme(self) -> Literal["s3", "file"]:
        return "s3" if self.url[:5].lower() == "s3://" else "file"

    @property
    def bucket(self) -> Optional[str]:
        return parse_s3_url(self.url)[0] if self.scheme == "s3" else None

    @property
    def key(self) -> Optional[str]:
        return parse_s3_url(self.url)[1] if self.scheme == "s3" else None

    @property
    def path(self) -> Optional[str]:
        if self.scheme != "file":
            return None
        if self.url.startswith("file://"):
            return self.url[len("file://") :]
        return self.url

    def __str__(self) -> str:
        return self.url


class AutoScalingConfig(BaseModel):
    """EC2 Auto Scaling group backing the service's cluster."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    group_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("group_name", "groupName", "name"),
        description="Auto Scaling group name",
    )


class ServiceDescriptor(BaseModel):
    """
    One ECS service that is part of the application.

    Immutable for the duration of a deploy.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="ECS service name")
    cluster: str = Field(..., min_length=1, description="ECS cluster the service runs in")
    task_definition: TaskDefinitionLocation = Field(
        ...,
        validation_alias=AliasChoices("task_definition", "taskDefinition"),
        description="Location of the task definition template",
    )
    auto_scaling: Optional[AutoScalingConfig] = Field(
        default=None,
        validation_alias=AliasChoices("auto_scaling", "autoScaling"),
        description="Auto Scaling group to grow while old and new tasks overlap",
    )

    @property
    def scales_cluster(self) -> bool:
        return self.auto_scaling is not None


class QuayRegistryConfig(BaseModel):
    """Quay.io (or self-hosted Quay) repository API."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["quay"] = "quay"
    url: str = Field(
        ..., description="Repository API URL, e.g. https://quay.io/api/v1/repository/acme/app"
    )
    auth: str = Field(default="", repr=False, description="OAuth bearer token")


class EcrRegistryConfig(BaseModel):
    """Amazon ECR repository."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["ecr"] = "ecr"
    repository: str = Field(..., min_length=1, description="ECR repository name")
    region: Optional[str] = Field(
        default=None, description="Region of the repository (defaults to the deployer region)"
    )


class DockerRegistryConfig(BaseModel):
    """Any registry speaking the Docker Registry HTTP API v2 (ghcr.io, Docker Hub, ...)."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["docker"] = "docker"
    image: str = Field(..., description="Image without tag, e.g. ghcr.io/acme/app")
    token: Optional[str] = Field(default=None, repr=False, description="Registry access token")


class NoneRegistryConfig(BaseModel):
    """Skip the image existence check."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["none"] = "none"


RegistryConfig = Annotated[
    Union[QuayRegistryConfig, EcrRegistryConfig, DockerRegistryConfig, NoneRegistryConfig],
    Field(discriminator="kind"),
]


class ApplicationDescriptor(BaseModel):
    """
    The set of services deployed together and the registry holding their image.

    Completeness (at least one service, a registry) is checked by the deployment
    controller rather than here, so that an incomplete descriptor is rejected
    before any network call with a clear validation error.
    """

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, description="Application name for logs")
    services: List[ServiceDescriptor] = Field(
        default_factory=list, description="Services to deploy"
    )
    registry: Optional[RegistryConfig] = Field(
        default=None,
        validation_alias=AliasChoices("registry", "docker"),
        description="Registry used to check that the version exists",
    )

    @field_validator("registry", mode="before")
    @classmethod
    def default_registry_kind(cls, v: Any) -> Any:
        """Default to Quay and accept the legacy 'repo' key for the kind."""
        if isinstance(v, dict) and "kind" not in v:
            data: Dict[str, Any] = dict(v)
            data["kind"] = str(data.pop("repo", "quay")).lower()
            return data
        return v

    @field_validator("services")
    @classmethod
    def validate_unique_services(cls, v: List[ServiceDescriptor]) -> List[ServiceDescriptor]:
        """A service may only appear once per cluster."""
        seen = set()
        for service in v:
            key = (service.cluster, service.name)
            if key in seen:
                raise ValueError(
                    f"Service {service.name} is listed twice for cluster {service.cluster}"
                )
            seen.add(key)
        return v
