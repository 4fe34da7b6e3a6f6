"""fleet-deployer - Rolling image deploys for fleets of ECS services."""

__version__ = "1.0.0"

from fleet_deployer.config import DeployerSettings, FleetConfig  # noqa: E402
from fleet_deployer.deployment import DeploymentController, ServiceDeployment  # noqa: E402
from fleet_deployer.models import ApplicationDescriptor, FleetResult  # noqa: E402

__all__ = [
    "ApplicationDescriptor",
    "DeployerSettings",
    "DeploymentController",
    "FleetConfig",
    "FleetResult",
    "ServiceDeployment",
    "__version__",
]
