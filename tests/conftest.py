"""
Fixtures compartidos.

Cada test recibe un bundle en memoria nuevo, un reloj fijo y un cliente HTTP
con los overrides aplicados. ``Marketplace`` agrupa los pasos HTTP que casi
todos los escenarios repiten (publicar, reservar, pagar).
"""

import hashlib
import hmac
import json
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient

from booking_engine.api.dependencies import _in_memory_bundle, build_use_cases, get_clock
from booking_engine.application.interfaces.clock import FakeClock
from booking_engine.application.interfaces.uuid_generator import FakeUUIDGenerator
from booking_engine.config import get_settings
from booking_engine.main import app

OWNER = "owner-1"
RENTER = "renter-1"
OTHER_RENTER = "renter-2"
ADMIN = "admin-1"

TODAY = date(2026, 3, 2)
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def actor_headers(actor_id: str, role: str, **extra: str) -> dict[str, str]:
    headers = {"X-Actor-Id": actor_id, "X-Actor-Role": role}
    headers.update(extra)
    return headers


def sign_payload(payload: str, secret: str, timestamp: int | None = None) -> str:
    """Header Stripe-Signature v1 para un payload."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


class Marketplace:
    def __init__(self, client: TestClient, bundle: dict[str, Any]) -> None:
        self.client = client
        self.bundle = bundle
        self._event_seq = 0

    @property
    def gateway(self):
        return self.bundle["payment_gateway"]

    @property
    def store(self):
        return self.bundle["store"]

    def register_listing(self, owner_id: str = OWNER, **overrides) -> dict:
        payload = {"title": "Cámara Sony A7", "daily_rate": 5000, "security_deposit": 20000}
        payload.update(overrides)
        res = self.client.post(
            "/api/v1/listings", json=payload, headers=actor_headers(owner_id, "owner")
        )
        assert res.status_code == 201, res.text
        return res.json()

    def link_payout(self, owner_id: str = OWNER, account_id: str = "acct_owner1") -> dict:
        res = self.client.put(
            "/api/v1/payout-accounts",
            json={"processor_account_id": account_id},
            headers=actor_headers(owner_id, "owner"),
        )
        assert res.status_code == 200, res.text
        return res.json()

    def request_booking(
        self,
        listing_id: str,
        start: date = TODAY,
        days: int = 3,
        renter_id: str = RENTER,
        idem_key: str | None = None,
        **extra,
    ):
        payload = {
            "listing_id": listing_id,
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=days)).isoformat(),
        }
        payload.update(extra)
        self._event_seq += 1
        headers = actor_headers(
            renter_id, "renter", **{"Idempotency-Key": idem_key or f"key-{self._event_seq}"}
        )
        return self.client.post("/api/v1/bookings", json=payload, headers=headers)

    def create_booking(self, listing_id: str, **kwargs) -> dict:
        res = self.request_booking(listing_id, **kwargs)
        assert res.status_code == 201, res.text
        return res.json()

    def action(self, booking_id: str, action: str, actor_id: str, role: str, json=None):
        return self.client.post(
            f"/api/v1/bookings/{booking_id}/{action}",
            json=json,
            headers=actor_headers(actor_id, role),
        )

    def get_booking(self, booking_id: str, actor_id: str = RENTER, role: str = "renter") -> dict:
        res = self.client.get(
            f"/api/v1/bookings/{booking_id}", headers=actor_headers(actor_id, role)
        )
        assert res.status_code == 200, res.text
        return res.json()

    def create_intent(self, booking_id: str, renter_id: str = RENTER):
        return self.client.post(
            f"/api/v1/bookings/{booking_id}/payment-intent",
            headers=actor_headers(renter_id, "renter"),
        )

    def payment_event(
        self,
        processor_intent_id: str,
        event_type: str = "payment_intent.succeeded",
        event_id: str | None = None,
        failure_message: str | None = None,
    ) -> dict:
        self._event_seq += 1
        obj: dict[str, Any] = {"id": processor_intent_id, "object": "payment_intent"}
        if failure_message:
            obj["last_payment_error"] = {"message": failure_message}
        return {
            "id": event_id or f"evt_{self._event_seq}",
            "type": event_type,
            "data": {"object": obj},
        }

    def send_webhook(self, event: dict, headers: dict | None = None):
        return self.client.post(
            "/api/v1/webhooks/stripe",
            content=json.dumps(event),
            headers={"Content-Type": "application/json", **(headers or {})},
        )

    def paid_booking(self, instant_book: bool = False) -> tuple[dict, dict, dict]:
        """Listing + reserva pagada; devuelve (listing, booking, intent)."""
        listing = self.register_listing(instant_book=instant_book)
        self.link_payout()
        booking = self.create_booking(listing["id"])
        res = self.create_intent(booking["id"])
        assert res.status_code == 201, res.text
        intent = res.json()
        ack = self.send_webhook(self.payment_event(intent["processor_intent_id"]))
        assert ack.status_code == 200, ack.text
        return listing, self.get_booking(booking["id"]), intent

    def active_booking(self) -> tuple[dict, dict, dict]:
        listing, booking, intent = self.paid_booking()
        res = self.action(booking["id"], "check-out", RENTER, "renter")
        assert res.status_code == 200, res.text
        return listing, res.json(), intent

    def open_dispute(self, booking_id: str, actor_id: str = RENTER, role: str = "renter", **body):
        payload = {"dispute_type": "damage", "description": "Lente rayado al devolver"}
        payload.update(body)
        return self.client.post(
            f"/api/v1/bookings/{booking_id}/disputes",
            json=payload,
            headers=actor_headers(actor_id, role),
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def bundle() -> Generator[dict[str, Any], None, None]:
    _in_memory_bundle.cache_clear()
    yield _in_memory_bundle()
    _in_memory_bundle.cache_clear()


@pytest.fixture
def client(bundle, clock) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def market(client, bundle) -> Marketplace:
    return Marketplace(client, bundle)


@pytest.fixture
def use_cases(bundle, clock) -> dict[str, Any]:
    """Casos de uso sobre el mismo bundle, para escenarios sin HTTP."""
    return build_use_cases(bundle, get_settings(), clock, FakeUUIDGenerator())
