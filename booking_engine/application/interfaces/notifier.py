from typing import Any


class Notifier:
    """Entrega fire-and-forget; el motor no espera respuesta."""

    async def send(self, event_type: str, payload: dict[str, Any]) -> None:
        raise NotImplementedError
