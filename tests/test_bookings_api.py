from datetime import timedelta

from tests.conftest import ADMIN, OTHER_RENTER, OWNER, RENTER, TODAY, actor_headers


class TestCreateBooking:
    def test_request_booking_starts_pending(self, market):
        listing = market.register_listing()

        res = market.request_booking(listing["id"])

        assert res.status_code == 201
        body = res.json()
        assert body["status"] == "pending"
        assert body["renter_id"] == RENTER
        assert body["owner_id"] == OWNER
        assert body["pricing"]["subtotal"] == 15000
        assert body["pricing"]["service_fee"] == 1500
        assert body["pricing"]["total"] == 16500
        assert body["pricing"]["security_deposit"] == 20000

    def test_instant_book_listing_confirms_immediately(self, market):
        listing = market.register_listing(instant_book=True)

        booking = market.create_booking(listing["id"])

        assert booking["status"] == "confirmed"
        assert booking["confirmed_at"] is not None

    def test_idempotent_replay_returns_same_booking(self, market):
        listing = market.register_listing()

        first = market.request_booking(listing["id"], idem_key="abc-123")
        second = market.request_booking(listing["id"], idem_key="abc-123")

        assert second.status_code == 201
        assert second.json()["id"] == first.json()["id"]
        assert len(market.store.bookings) == 1

    def test_same_key_different_payload_conflicts(self, market):
        listing = market.register_listing()
        market.create_booking(listing["id"], idem_key="abc-123")

        res = market.request_booking(
            listing["id"], start=TODAY + timedelta(days=10), idem_key="abc-123"
        )

        assert res.status_code == 409
        assert res.json()["code"] == "IDEMPOTENCY_CONFLICT"
        assert len(market.store.bookings) == 1

    def test_idempotency_key_is_scoped_per_renter(self, market):
        listing = market.register_listing()
        market.create_booking(listing["id"], idem_key="shared")

        res = market.request_booking(
            listing["id"],
            start=TODAY + timedelta(days=10),
            renter_id=OTHER_RENTER,
            idem_key="shared",
        )

        assert res.status_code == 201
        assert len(market.store.bookings) == 2

    def test_missing_idempotency_key(self, market):
        listing = market.register_listing()

        res = market.client.post(
            "/api/v1/bookings",
            json={
                "listing_id": listing["id"],
                "start_date": TODAY.isoformat(),
                "end_date": (TODAY + timedelta(days=2)).isoformat(),
            },
            headers=actor_headers(RENTER, "renter"),
        )

        assert res.status_code == 400

    def test_overlapping_request_conflicts(self, market):
        listing = market.register_listing()
        first = market.create_booking(listing["id"], start=TODAY, days=3)

        res = market.request_booking(
            listing["id"], start=TODAY + timedelta(days=2), days=3, renter_id=OTHER_RENTER
        )

        assert res.status_code == 409
        assert res.json()["code"] == "CONFLICT"
        assert res.json()["conflicting_booking_ids"] == [first["id"]]

    def test_touching_ranges_do_not_overlap(self, market):
        listing = market.register_listing()
        market.create_booking(listing["id"], start=TODAY, days=3)

        res = market.request_booking(
            listing["id"], start=TODAY + timedelta(days=3), days=2, renter_id=OTHER_RENTER
        )

        assert res.status_code == 201

    def test_owner_cannot_rent_own_listing(self, market):
        listing = market.register_listing()

        res = market.request_booking(listing["id"], renter_id=OWNER)

        assert res.status_code == 403

    def test_owner_role_cannot_request(self, market):
        listing = market.register_listing()

        res = market.client.post(
            "/api/v1/bookings",
            json={
                "listing_id": listing["id"],
                "start_date": TODAY.isoformat(),
                "end_date": (TODAY + timedelta(days=2)).isoformat(),
            },
            headers=actor_headers("owner-2", "owner", **{"Idempotency-Key": "k1"}),
        )

        assert res.status_code == 403

    def test_start_date_in_the_past(self, market):
        listing = market.register_listing()

        res = market.request_booking(listing["id"], start=TODAY - timedelta(days=1))

        assert res.status_code == 400
        assert res.json()["code"] == "VALIDATION_ERROR"

    def test_end_before_start_fails_validation(self, market):
        listing = market.register_listing()

        res = market.request_booking(listing["id"], days=0)

        assert res.status_code == 422

    def test_unknown_listing(self, market):
        res = market.request_booking("missing")

        assert res.status_code == 404


class TestLifecycle:
    def test_owner_approves_pending_booking(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        res = market.action(booking["id"], "approve", OWNER, "owner")

        assert res.status_code == 200
        assert res.json()["status"] == "confirmed"

    def test_renter_cannot_approve(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        res = market.action(booking["id"], "approve", RENTER, "renter")

        assert res.status_code == 403
        assert market.get_booking(booking["id"])["status"] == "pending"

    def test_reject_stores_reason(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        res = market.action(booking["id"], "reject", OWNER, "owner", json={"reason": "mantenimiento"})

        assert res.json()["status"] == "rejected"
        detail = market.get_booking(booking["id"])
        assert detail["rejection_reason"] == "mantenimiento"

    def test_illegal_transition_conflicts(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        res = market.action(booking["id"], "complete", OWNER, "owner")

        assert res.status_code == 409
        assert res.json()["code"] == "ILLEGAL_TRANSITION"
        assert market.get_booking(booking["id"])["status"] == "pending"

    def test_terminal_booking_cannot_move(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])
        market.action(booking["id"], "cancel", RENTER, "renter")

        res = market.action(booking["id"], "approve", OWNER, "owner")

        assert res.status_code == 409

    def test_full_rental_flow(self, market, clock):
        listing = market.register_listing(instant_book=True)
        booking = market.create_booking(listing["id"])

        checks = market.client.post(
            f"/api/v1/bookings/{booking['id']}/condition-checks",
            json={"phase": "before"},
            headers=actor_headers(RENTER, "renter"),
        )
        assert checks.json()["before_check_completed"] is True

        active = market.action(booking["id"], "check-out", RENTER, "renter")
        assert active.json()["status"] == "active"

        clock.advance(days=3)
        assert market.get_booking(booking["id"])["is_overdue"] is True

        done = market.action(booking["id"], "complete", OWNER, "owner")
        assert done.json()["status"] == "completed"

        detail = market.get_booking(booking["id"])
        assert detail["is_overdue"] is False
        assert [t["to_status"] for t in detail["transitions"]] == [
            "confirmed",
            "active",
            "completed",
        ]
        assert detail["transitions"][0]["from_status"] is None

    def test_check_out_before_start_date(self, market):
        listing = market.register_listing(instant_book=True)
        booking = market.create_booking(listing["id"], start=TODAY + timedelta(days=5))

        res = market.action(booking["id"], "check-out", RENTER, "renter")

        assert res.status_code == 400
        assert market.get_booking(booking["id"])["status"] == "confirmed"

    def test_after_check_requires_active_booking(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        res = market.client.post(
            f"/api/v1/bookings/{booking['id']}/condition-checks",
            json={"phase": "after"},
            headers=actor_headers(OWNER, "owner"),
        )

        assert res.status_code == 400


class TestGetBooking:
    def test_parties_and_admin_can_read(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        assert market.get_booking(booking["id"], OWNER, "owner")["id"] == booking["id"]
        assert market.get_booking(booking["id"], ADMIN, "admin")["id"] == booking["id"]

    def test_stranger_is_forbidden(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        res = market.client.get(
            f"/api/v1/bookings/{booking['id']}",
            headers=actor_headers(OTHER_RENTER, "renter"),
        )

        assert res.status_code == 403

    def test_unknown_booking(self, client):
        res = client.get("/api/v1/bookings/missing", headers=actor_headers(RENTER, "renter"))

        assert res.status_code == 404


class TestRescheduleBooking:
    def _reschedule(self, market, booking_id, start, days=3, actor_id=RENTER, role="renter"):
        return market.client.put(
            f"/api/v1/bookings/{booking_id}/dates",
            json={
                "start_date": start.isoformat(),
                "end_date": (start + timedelta(days=days)).isoformat(),
            },
            headers=actor_headers(actor_id, role),
        )

    def test_same_dates_are_available_to_the_booking_itself(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        res = self._reschedule(market, booking["id"], TODAY)

        assert res.status_code == 200
        assert res.json()["start_date"] == TODAY.isoformat()

    def test_shift_over_own_range_reprices(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        res = self._reschedule(market, booking["id"], TODAY + timedelta(days=1), days=4)

        assert res.status_code == 200
        body = res.json()
        assert body["start_date"] == (TODAY + timedelta(days=1)).isoformat()
        assert body["end_date"] == (TODAY + timedelta(days=5)).isoformat()
        assert body["pricing"]["subtotal"] == 20000
        assert body["pricing"]["total"] == 22000
        assert any(
            e.event_type == "BOOKING_RESCHEDULED" for e in market.store.outbox.values()
        )

    def test_overlap_with_another_booking_conflicts(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])
        other = market.create_booking(
            listing["id"], start=TODAY + timedelta(days=5), renter_id=OTHER_RENTER
        )

        res = self._reschedule(market, booking["id"], TODAY + timedelta(days=4))

        assert res.status_code == 409
        assert res.json()["code"] == "CONFLICT"
        assert market.get_booking(booking["id"])["start_date"] == TODAY.isoformat()
        assert res.json()["conflicting_booking_ids"] == [other["id"]]

    def test_owner_cannot_change_dates(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        res = self._reschedule(
            market, booking["id"], TODAY + timedelta(days=1), actor_id=OWNER, role="owner"
        )

        assert res.status_code == 403

    def test_confirmed_booking_cannot_change_dates(self, market):
        listing = market.register_listing(instant_book=True)
        booking = market.create_booking(listing["id"])

        res = self._reschedule(market, booking["id"], TODAY + timedelta(days=1))

        assert res.status_code == 409
        assert res.json()["code"] == "BOOKING_NOT_RESCHEDULABLE"

    def test_new_start_in_the_past(self, market):
        listing = market.register_listing()
        booking = market.create_booking(listing["id"])

        res = self._reschedule(market, booking["id"], TODAY - timedelta(days=1))

        assert res.status_code == 400
        assert res.json()["code"] == "VALIDATION_ERROR"


class TestListBookings:
    def _list(self, market, actor_id, actor_role, **params):
        return market.client.get(
            "/api/v1/bookings", params=params, headers=actor_headers(actor_id, actor_role)
        )

    def test_renter_sees_only_own_bookings(self, market):
        listing = market.register_listing()
        mine = market.create_booking(listing["id"])
        market.create_booking(
            listing["id"], start=TODAY + timedelta(days=5), renter_id=OTHER_RENTER
        )

        res = self._list(market, RENTER, "renter")

        assert res.status_code == 200
        assert [b["id"] for b in res.json()] == [mine["id"]]

    def test_owner_sees_bookings_of_their_listings(self, market):
        listing = market.register_listing()
        first = market.create_booking(listing["id"])
        second = market.create_booking(
            listing["id"], start=TODAY + timedelta(days=5), renter_id=OTHER_RENTER
        )

        res = self._list(market, OWNER, "owner", role="owner")

        assert {b["id"] for b in res.json()} == {first["id"], second["id"]}
        assert self._list(market, OWNER, "owner", role="renter").json() == []

    def test_status_filter(self, market):
        listing = market.register_listing()
        pending = market.create_booking(listing["id"])
        cancelled = market.create_booking(listing["id"], start=TODAY + timedelta(days=5))
        market.action(cancelled["id"], "cancel", RENTER, "renter")

        res = self._list(market, RENTER, "renter", status="pending")

        assert [b["id"] for b in res.json()] == [pending["id"]]

    def test_unknown_status_is_rejected(self, market):
        res = self._list(market, RENTER, "renter", status="lost")

        assert res.status_code == 422
