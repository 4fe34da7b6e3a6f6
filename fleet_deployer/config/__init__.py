"""Configuration loading for the fleet deployer."""

from fleet_deployer.config.settings import DeployerSettings, FleetConfig, LoggingSettings

__all__ = ["DeployerSettings", "FleetConfig", "LoggingSettings"]
