"""Service rollouts and the controller that fans them out across a fleet."""

from fleet_deployer.deployment.controller import DeploymentController
from fleet_deployer.deployment.events import EventDispatcher, EventListener
from fleet_deployer.deployment.polling import RolloutCheck, RolloutState, evaluate_rollout
from fleet_deployer.deployment.service import ServiceDeployment

__all__ = [
    "DeploymentController",
    "EventDispatcher",
    "EventListener",
    "RolloutCheck",
    "RolloutState",
    "ServiceDeployment",
    "evaluate_rollout",
]
