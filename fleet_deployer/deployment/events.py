"""
Delivery of deployment notifications to the caller's listener.
"""

import logging
from typing import Callable, Optional

from fleet_deployer.models import DeploymentEvent, EventType, WaitStatus

logger = logging.getLogger(__name__)

EventListener = Callable[[DeploymentEvent], None]


class EventDispatcher:
    """
    Hands events to a single listener.

    Delivery is fire-and-forget: a listener that raises is logged and ignored,
    so a broken progress display can never fail a deploy.
    """

    def __init__(self, listener: Optional[EventListener] = None) -> None:
        self.listener = listener

    def emit(self, event: DeploymentEvent) -> None:
        logger.debug(f"Event: {event.describe()}")
        if self.listener is None:
            return
        try:
            self.listener(event)
        except Exception as e:
            logger.warning(f"Deployment event listener failed on {event.type.value} event: {e}")

    def progress(self, message: str, service: str) -> None:
        self.emit(DeploymentEvent(type=EventType.PROGRESS, message=message, service=service))

    def ready(self) -> None:
        self.emit(DeploymentEvent(type=EventType.READY))

    def waiting(self, interval_seconds: float, status: WaitStatus, service: str) -> None:
        self.emit(
            DeploymentEvent(
                type=EventType.WAITING,
                interval_seconds=interval_seconds,
                status=status,
                service=service,
            )
        )

    def deployed(self, service: str) -> None:
        self.emit(DeploymentEvent(type=EventType.DEPLOYED, service=service))

    def failure(self, service: str, error: str) -> None:
        self.emit(DeploymentEvent(type=EventType.FAILURE, service=service, error=error))

    def end(self) -> None:
        self.emit(DeploymentEvent(type=EventType.END))
