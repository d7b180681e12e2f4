from dataclasses import dataclass
from datetime import datetime


@dataclass
class ProcessedWebhookEvent:
    event_id: str
    event_type: str
    received_at: datetime


class WebhookEventRepo:
    async def exists(self, event_id: str) -> bool:
        raise NotImplementedError

    async def record(self, event: ProcessedWebhookEvent) -> bool:
        """Inserta si no existe; False si el evento ya estaba registrado."""
        raise NotImplementedError
