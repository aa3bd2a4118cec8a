"""Tests for reservation submission, decisions, cancellation and availability."""
from datetime import datetime, timedelta

from reservation_portal.config import settings
from reservation_portal.services.calendar_service import slot_interval
from tests.conftest import (
    approved_reservation,
    book,
    create_test_room,
    create_test_user,
    future_day,
    slot,
)


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _setup(client):
    user = create_test_user(client, name="Hanako")
    room = create_test_room(client, name="room-a", capacity=4)
    return user, room


class TestCreateReservation:
    def test_new_reservation_is_pending(self, client):
        user, room = _setup(client)
        resp = book(client, user["user_id"], room["room_id"], future_day(), 10)
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["status"] == "pending"
        assert data["user_name"] == "Hanako"
        assert data["version"] == 1
        assert data["access_token"] is None

    def test_overlapping_pending_reservation_conflicts(self, client):
        user, room = _setup(client)
        day = future_day()
        first = book(client, user["user_id"], room["room_id"], day, 10, hours=2).json()
        other = create_test_user(client, name="Taro")

        resp = book(client, other["user_id"], room["room_id"], day, 11)
        assert resp.status_code == 409
        conflicts = resp.json()["detail"]["conflicts"]
        assert [c["reservation_id"] for c in conflicts] == [first["reservation_id"]]
        assert conflicts[0]["status"] == "pending"

    def test_back_to_back_reservations_allowed(self, client):
        user, room = _setup(client)
        day = future_day()
        assert book(client, user["user_id"], room["room_id"], day, 10).status_code == 201
        assert book(client, user["user_id"], room["room_id"], day, 11).status_code == 201
        assert book(client, user["user_id"], room["room_id"], day, 9).status_code == 201

    def test_same_interval_other_room_allowed(self, client):
        user, room = _setup(client)
        room_b = create_test_room(client, name="room-b")
        day = future_day()
        assert book(client, user["user_id"], room["room_id"], day, 10).status_code == 201
        assert book(client, user["user_id"], room_b["room_id"], day, 10).status_code == 201

    def test_rejected_reservation_releases_slot(self, client):
        user, room = _setup(client)
        day = future_day()
        first = book(client, user["user_id"], room["room_id"], day, 10).json()
        client.post(f"/api/reservations/{first['reservation_id']}/reject", json={})
        assert book(client, user["user_id"], room["room_id"], day, 10).status_code == 201

    def test_end_before_start_rejected(self, client):
        user, room = _setup(client)
        start, end = slot(future_day(), 10)
        resp = client.post("/api/reservations/", json={
            "room_id": room["room_id"],
            "user_id": user["user_id"],
            "start_time": end,
            "end_time": start,
            "purpose": "Backwards",
        })
        assert resp.status_code == 422
        assert "must be after start" in resp.json()["detail"]

    def test_zero_participants_rejected(self, client):
        user, room = _setup(client)
        resp = book(client, user["user_id"], room["room_id"], future_day(), 10, participants=0)
        assert resp.status_code == 422

    def test_unknown_user_or_room(self, client):
        user, room = _setup(client)
        assert book(client, "nobody", room["room_id"], future_day(), 10).status_code == 404
        assert book(client, user["user_id"], "no-room", future_day(), 10).status_code == 404

    def test_stale_room_version_refused(self, client):
        """A booking made against an outdated day view is refused."""
        user, room = _setup(client)
        day = future_day()
        seen_version = client.get(f"/api/rooms/{room['room_id']}").json()["version"]
        assert book(client, user["user_id"], room["room_id"], day, 14).status_code == 201

        start, end = slot(day, 10)
        resp = client.post("/api/reservations/", json={
            "room_id": room["room_id"],
            "user_id": user["user_id"],
            "start_time": start,
            "end_time": end,
            "purpose": "Late click",
            "room_version": seen_version,
        })
        assert resp.status_code == 409
        assert "Re-fetch" in resp.json()["detail"]

    def test_visitors_stored(self, client):
        user, room = _setup(client)
        visitors = [{"company": "ABC", "name": "Yamada", "email": "yamada@abc.example"}]
        resp = book(client, user["user_id"], room["room_id"], future_day(), 10, visitors=visitors)
        assert resp.json()["external_visitors"] == visitors

    def test_receipt_email_logged(self, client):
        user, room = _setup(client)
        book(client, user["user_id"], room["room_id"], future_day(), 10)
        emails = client.get("/api/email-history/").json()["emails"]
        assert [e["email_type"] for e in emails] == ["reservation_received"]
        assert emails[0]["recipients"] == ["user@example.com"]


class TestDecisions:
    def test_approve_issues_access_token(self, client):
        user, room = _setup(client)
        data = approved_reservation(client, user["user_id"], room["room_id"], future_day(), 10)
        assert data["status"] == "approved"
        assert data["access_token"].startswith(f"{settings.ACCESS_TOKEN_PREFIX}-")
        assert data["version"] == 2

    def test_approve_twice_refused(self, client):
        user, room = _setup(client)
        data = approved_reservation(client, user["user_id"], room["room_id"], future_day(), 10)
        resp = client.post(f"/api/reservations/{data['reservation_id']}/approve")
        assert resp.status_code == 400

    def test_approval_email_carries_token(self, client):
        user, room = _setup(client)
        data = approved_reservation(client, user["user_id"], room["room_id"], future_day(), 10)
        emails = client.get("/api/email-history/").json()["emails"]
        approved = [e for e in emails if e["email_type"] == "approved"]
        assert approved[0]["access_token"] == data["access_token"]
        assert approved[0]["has_attachment"] is True

    def test_reject_without_reason_uses_default(self, client):
        user, room = _setup(client)
        r = book(client, user["user_id"], room["room_id"], future_day(), 10).json()
        resp = client.post(f"/api/reservations/{r['reservation_id']}/reject", json={})
        assert resp.status_code == 200
        assert resp.json()["status"] == "rejected"
        assert resp.json()["rejection_reason"] == settings.DEFAULT_REJECTION_REASON

    def test_reject_with_reason(self, client):
        user, room = _setup(client)
        r = book(client, user["user_id"], room["room_id"], future_day(), 10).json()
        resp = client.post(f"/api/reservations/{r['reservation_id']}/reject", json={"reason": "Maintenance"})
        assert resp.json()["rejection_reason"] == "Maintenance"

    def test_decide_unknown_reservation(self, client):
        assert client.post("/api/reservations/nope/approve").status_code == 404


class TestCancel:
    def test_owner_withdraws_pending(self, client):
        user, room = _setup(client)
        r = book(client, user["user_id"], room["room_id"], future_day(), 10).json()
        resp = client.post(f"/api/reservations/{r['reservation_id']}/cancel", json={
            "actor_user_id": user["user_id"],
            "version": r["version"],
        })
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"
        types = [e["email_type"] for e in client.get("/api/email-history/").json()["emails"]]
        assert "withdrawal" in types

    def test_owner_cancels_approved(self, client):
        user, room = _setup(client)
        r = approved_reservation(client, user["user_id"], room["room_id"], future_day(), 10)
        resp = client.post(f"/api/reservations/{r['reservation_id']}/cancel", json={
            "actor_user_id": user["user_id"],
            "version": r["version"],
        })
        assert resp.json()["status"] == "cancelled"
        types = [e["email_type"] for e in client.get("/api/email-history/").json()["emails"]]
        assert "cancellation" in types

    def test_cancel_releases_slot(self, client):
        user, room = _setup(client)
        day = future_day()
        r = book(client, user["user_id"], room["room_id"], day, 10).json()
        client.post(f"/api/reservations/{r['reservation_id']}/cancel", json={
            "actor_user_id": user["user_id"],
            "version": r["version"],
        })
        assert book(client, user["user_id"], room["room_id"], day, 10).status_code == 201

    def test_non_owner_forbidden(self, client):
        user, room = _setup(client)
        other = create_test_user(client, name="Taro")
        r = book(client, user["user_id"], room["room_id"], future_day(), 10).json()
        resp = client.post(f"/api/reservations/{r['reservation_id']}/cancel", json={
            "actor_user_id": other["user_id"],
            "version": r["version"],
        })
        assert resp.status_code == 403

    def test_stale_version(self, client):
        user, room = _setup(client)
        r = book(client, user["user_id"], room["room_id"], future_day(), 10).json()
        client.post(f"/api/reservations/{r['reservation_id']}/approve")
        resp = client.post(f"/api/reservations/{r['reservation_id']}/cancel", json={
            "actor_user_id": user["user_id"],
            "version": r["version"],
        })
        assert resp.status_code == 409

    def test_cancel_twice(self, client):
        user, room = _setup(client)
        r = book(client, user["user_id"], room["room_id"], future_day(), 10).json()
        cancelled = client.post(f"/api/reservations/{r['reservation_id']}/cancel", json={
            "actor_user_id": user["user_id"],
            "version": r["version"],
        }).json()
        resp = client.post(f"/api/reservations/{r['reservation_id']}/cancel", json={
            "actor_user_id": user["user_id"],
            "version": cancelled["version"],
        })
        assert resp.status_code == 400


class TestListAndAvailability:
    def test_list_filters(self, client):
        user, room = _setup(client)
        day = future_day()
        kept = book(client, user["user_id"], room["room_id"], day, 12).json()
        gone = book(client, user["user_id"], room["room_id"], day, 10).json()
        client.post(f"/api/reservations/{gone['reservation_id']}/reject", json={})

        all_ids = [r["reservation_id"] for r in client.get("/api/reservations/").json()]
        assert all_ids == [gone["reservation_id"], kept["reservation_id"]]

        active = client.get("/api/reservations/", params={"include_released": False}).json()
        assert [r["reservation_id"] for r in active] == [kept["reservation_id"]]

        rejected = client.get("/api/reservations/", params={"status_filter": ["rejected"]}).json()
        assert [r["reservation_id"] for r in rejected] == [gone["reservation_id"]]

    def test_invalid_status_filter(self, client):
        resp = client.get("/api/reservations/", params={"status_filter": ["done"]})
        assert resp.status_code == 400

    def test_get_reservation(self, client):
        user, room = _setup(client)
        r = book(client, user["user_id"], room["room_id"], future_day(), 10).json()
        assert client.get(f"/api/reservations/{r['reservation_id']}").json()["purpose"] == "Team sync"
        assert client.get("/api/reservations/nope").status_code == 404

    def test_availability_truncates_to_free_tail(self, client):
        """Existing 10:00–11:00; 10:30–11:30 is occupied, leaving 11:00–11:30."""
        user, room = _setup(client)
        day = future_day()
        existing = approved_reservation(client, user["user_id"], room["room_id"], day, 10)
        ten, eleven = slot_interval(day, 10)

        resp = client.post("/api/reservations/availability", json={
            "room_id": room["room_id"],
            "start_time": (ten + timedelta(minutes=30)).isoformat(),
            "end_time": (eleven + timedelta(minutes=30)).isoformat(),
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["occupied"] is True
        assert [c["reservation_id"] for c in data["conflicts"]] == [existing["reservation_id"]]
        assert _parse(data["free_interval"]["start_time"]) == eleven
        assert _parse(data["free_interval"]["end_time"]) == eleven + timedelta(minutes=30)

    def test_availability_free_room(self, client):
        _, room = _setup(client)
        start, end = slot(future_day(), 15)
        data = client.post("/api/reservations/availability", json={
            "room_id": room["room_id"], "start_time": start, "end_time": end,
        }).json()
        assert data["occupied"] is False
        assert data["conflicts"] == []

    def test_availability_invalid_interval(self, client):
        _, room = _setup(client)
        start, _ = slot(future_day(), 15)
        resp = client.post("/api/reservations/availability", json={
            "room_id": room["room_id"], "start_time": start, "end_time": start,
        })
        assert resp.status_code == 422


class TestVisitorImport:
    def test_import_csv(self, client):
        csv_text = "company,name,email\nABC, Yamada ,yamada@abc.example\n\nXYZ,Ito,ito@xyz.example\n"
        resp = client.post("/api/reservations/visitors/import", json={"csv_text": csv_text})
        assert resp.status_code == 200
        assert resp.json() == [
            {"company": "ABC", "name": "Yamada", "email": "yamada@abc.example"},
            {"company": "XYZ", "name": "Ito", "email": "ito@xyz.example"},
        ]

    def test_missing_column(self, client):
        resp = client.post("/api/reservations/visitors/import", json={"csv_text": "company,name\nABC,Yamada\n"})
        assert resp.status_code == 400
        assert "email" in resp.json()["detail"]

    def test_nameless_row(self, client):
        csv_text = "company,name,email\nABC,Yamada,y@abc.example\nABC,,x@abc.example\n"
        resp = client.post("/api/reservations/visitors/import", json={"csv_text": csv_text})
        assert resp.status_code == 400
        assert "row(s) 3" in resp.json()["detail"]


class TestRejectionEmail:
    def test_rejection_email_carries_reason(self, client):
        user, room = _setup(client)
        r = book(client, user["user_id"], room["room_id"], future_day(), 10).json()
        client.post(f"/api/reservations/{r['reservation_id']}/reject", json={"reason": "Maintenance"})
        emails = client.get("/api/email-history/").json()["emails"]
        rejected = next(e for e in emails if e["email_type"] == "rejected")
        assert rejected["reason"] == "Maintenance"

    def test_receipt_email_has_no_reason(self, client):
        user, room = _setup(client)
        book(client, user["user_id"], room["room_id"], future_day(), 10)
        assert client.get("/api/email-history/").json()["emails"][0]["reason"] is None
