"""
Deployer configuration.

A single YAML file describes the application (services and registry) plus an
optional ``deployer:`` section with runtime settings. Example::

    name: storefront
    registry:
      kind: quay
      url: https://quay.io/api/v1/repository/acme/storefront
      auth: <oauth token>
    services:
      - name: web
        cluster: production
        task_definition: s3://acme-deploy/storefront/web.json
        auto_scaling:
          group_name: production-asg
    deployer:
      region: us-east-1
      poll_interval_seconds: 15
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from fleet_deployer.exceptions import ConfigError
from fleet_deployer.models import AggregationPolicy, ApplicationDescriptor


def _region_from_environment() -> Optional[str]:
    return os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION")


class LoggingSettings(BaseModel):
    """Log output configuration."""

    log_dir: str = Field(
        default="~/.local/log/fleet-deployer", description="Directory for log files"
    )
    console_level: str = Field(default="INFO", description="Console log level")
    file_level: str = Field(default="DEBUG", description="File log level")
    use_json: bool = Field(default=False, description="Write JSON lines to log files")
    max_bytes: int = Field(default=10 * 1024 * 1024, gt=0, description="Rotate after this size")
    backup_count: int = Field(default=5, ge=0, description="Rotated files to keep")


class DeployerSettings(BaseModel):
    """Runtime settings shared by every service rollout."""

    region: Optional[str] = Field(
        default_factory=_region_from_environment,
        description="AWS region (defaults to AWS_REGION / AWS_DEFAULT_REGION)",
    )
    poll_interval_seconds: float = Field(
        default=15.0, gt=0, description="Delay between service status checks"
    )
    max_poll_attempts: int = Field(
        default=100, ge=1, description="Status checks before a rollout times out"
    )
    aggregation: AggregationPolicy = Field(
        default=AggregationPolicy.ISOLATED,
        description="Whether one failed service fails the whole deploy",
    )
    audit_log_path: Optional[str] = Field(
        default=None, description="JSONL file recording deploy start and completion"
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class FleetConfig(BaseModel):
    """Complete configuration file: the application and the deployer settings."""

    application: ApplicationDescriptor = Field(default_factory=ApplicationDescriptor)
    deployer: DeployerSettings = Field(default_factory=DeployerSettings)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FleetConfig":
        """
        Load configuration from a YAML (or JSON) file.

        Raises:
            ConfigError: If the file is missing, unparsable or invalid
        """
        config_path = Path(path)
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(str(config_path), f"Unable to read file: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(str(config_path), f"Invalid YAML: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(str(config_path), "Top level must be a mapping")

        return cls.from_dict(data, source=str(config_path))

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "<dict>") -> "FleetConfig":
        """Build configuration from an already parsed mapping."""
        data = dict(data)
        deployer = data.pop("deployer", None) or {}
        try:
            return cls(
                application=ApplicationDescriptor.model_validate(data),
                deployer=DeployerSettings.model_validate(deployer),
            )
        except PydanticValidationError as e:
            raise ConfigError(source, str(e)) from e

    def to_dict(self) -> Dict[str, Any]:
        data = self.application.model_dump(mode="json", exclude_none=True)
        data["deployer"] = self.deployer.model_dump(mode="json", exclude_none=True)
        return data

    def save(self, path: Union[str, Path]) -> None:
        """Write configuration to a YAML file, creating parent directories."""
        config_path = Path(path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def sample(cls) -> "FleetConfig":
        """Example configuration written by --generate-config."""
        return cls.from_dict(
            {
                "name": "storefront",
                "registry": {"kind": "docker", "image": "ghcr.io/acme/storefront"},
                "services": [
                    {
                        "name": "storefront-web",
                        "cluster": "production",
                        "task_definition": "s3://acme-deploy/storefront/web.json",
                        "auto_scaling": {"group_name": "production-ecs"},
                    },
                    {
                        "name": "storefront-worker",
                        "cluster": "production",
                        "task_definition": "s3://acme-deploy/storefront/worker.json",
                    },
                ],
                "deployer": {"region": "us-east-1"},
            },
            source="<sample>",
        )
