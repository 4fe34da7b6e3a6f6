"""
Notification models emitted while a fleet deploy runs.

The controller hands every event to a single listener supplied by the caller.
Events from different services interleave in no particular order.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from fleet_deployer.models.deployment import WaitStatus


class EventType(str, Enum):
    """Lifecycle notifications of a fleet deploy."""

    PROGRESS = "progress"
    READY = "ready"
    WAITING = "waiting"
    DEPLOYED = "deployed"
    FAILURE = "failure"
    END = "end"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DeploymentEvent(BaseModel):
    """
    A single notification.

    Which optional fields are set depends on the type:
    - progress: message, service
    - waiting: interval_seconds, status, service
    - deployed: service
    - failure: service, error
    - ready / end: nothing
    """

    type: EventType = Field(..., description="Event type")
    service: Optional[str] = Field(default=None, description="Originating service")
    message: Optional[str] = Field(default=None, description="Human-readable progress message")
    status: Optional[WaitStatus] = Field(default=None, description="Why we are still waiting")
    interval_seconds: Optional[float] = Field(
        default=None, description="Delay before the next status check"
    )
    error: Optional[str] = Field(default=None, description="Failure reason")
    timestamp: str = Field(default_factory=_now, description="ISO 8601 timestamp")

    def describe(self) -> str:
        """One-line rendering for terminals and logs."""
        prefix = f"[{self.service}] " if self.service else ""
        if self.type == EventType.PROGRESS:
            return f"{prefix}{self.message}"
        if self.type == EventType.WAITING:
            status = self.status.value if self.status else "WAITING"
            return f"{prefix}{status}, checking again in {self.interval_seconds:g}s"
        if self.type == EventType.DEPLOYED:
            return f"{prefix}deployed"
        if self.type == EventType.FAILURE:
            return f"{prefix}failed: {self.error}"
        if self.type == EventType.READY:
            return "All readiness checks passed, starting deploy"
        return "Deploy finished"
