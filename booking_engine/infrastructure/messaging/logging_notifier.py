import logging
from typing import Any

from booking_engine.application.interfaces.notifier import Notifier

logger = logging.getLogger(__name__)


class LoggingNotifier(Notifier):
    """Notifier por defecto: deja la notificación en el log."""

    async def send(self, event_type: str, payload: dict[str, Any]) -> None:
        logger.info(
            "Notification dispatched",
            extra={"event_type": event_type, "payload": payload},
        )


class RecordingNotifier(Notifier):
    """Guarda las notificaciones enviadas; útil para inspeccionarlas en tests."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []

    async def send(self, event_type: str, payload: dict[str, Any]) -> None:
        self.sent.append((event_type, payload))
