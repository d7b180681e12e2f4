from fastapi.testclient import TestClient

from booking_engine.main import app


def test_liveness(client):
    for path in ("/health", "/health/live"):
        res = client.get(path)
        assert res.status_code == 200
        assert res.json() == {"status": "ok", "service": "rental-booking-engine"}


def test_readiness_in_memory(client):
    res = client.get("/health/ready")

    assert res.status_code == 200
    assert res.json() == {"status": "ready", "checks": {"storage": "in_memory"}}


def test_unhandled_error_hides_details(bundle):
    class BrokenRepo:
        async def get(self, listing_id):
            raise RuntimeError("connection reset")

    bundle["listing_repo"] = BrokenRepo()

    with TestClient(app, raise_server_exceptions=False) as client:
        res = client.post(
            "/api/v1/listings/l-1/quote",
            json={"start_date": "2026-03-10", "end_date": "2026-03-12"},
        )

    assert res.status_code == 500
    body = res.json()
    assert body["code"] == "INTERNAL_ERROR"
    assert body["error_id"]
    assert "connection reset" not in res.text
