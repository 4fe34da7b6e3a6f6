"""
Convergence check for a rolling service update.

A rollout has converged when the deployment running our task definition has
all its desired tasks running and no other deployment of the service still
runs any task. The check is a pure function of one status observation so the
polling loop around it can be tested without real time passing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fleet_deployer.models import DeploymentStatus, WaitStatus


class RolloutState(str, Enum):
    """Result of evaluating one status observation."""

    CONVERGED = "converged"
    CONTINUE = "continue"
    SUPERSEDED = "superseded"


@dataclass(frozen=True)
class RolloutCheck:
    """Outcome of a single convergence check."""

    state: RolloutState
    wait_status: Optional[WaitStatus] = None
    new_version_running: bool = False

    @property
    def converged(self) -> bool:
        return self.state == RolloutState.CONVERGED


def evaluate_rollout(status: DeploymentStatus, task_reference: str) -> RolloutCheck:
    """
    Decide whether a rollout has converged, should keep waiting, or lost primacy.

    Args:
        status: Current deployments of the service
        task_reference: Task definition ARN this rollout registered

    Returns:
        RolloutCheck describing what the polling loop should do next
    """
    record = status.find(task_reference)

    # Not visible yet: the control plane has not picked up our update
    if record is None:
        return RolloutCheck(RolloutState.CONTINUE, WaitStatus.DEPLOYING_NEW_VERSION)

    if not record.is_primary:
        return RolloutCheck(RolloutState.SUPERSEDED)

    if record.desired_count != record.running_count:
        return RolloutCheck(RolloutState.CONTINUE, WaitStatus.DEPLOYING_NEW_VERSION)

    if status.running_elsewhere(task_reference) > 0:
        return RolloutCheck(
            RolloutState.CONTINUE, WaitStatus.RAMPING_DOWN_OLD_VERSION, new_version_running=True
        )

    return RolloutCheck(RolloutState.CONVERGED, new_version_running=True)
