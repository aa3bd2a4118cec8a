"""Tests for the mocked integration panels and visitor list."""
from tests.conftest import approved_reservation, book, create_test_room, create_test_user, future_day

V1 = {"company": "ABC", "name": "Yamada", "email": "yamada@abc.example"}
V2 = {"company": "XYZ", "name": "Ito", "email": "ito@xyz.example"}


class TestConnections:
    def test_all_kinds_listed_disconnected(self, client):
        data = client.get("/api/integrations/").json()
        assert {c["kind"]: c["status"] for c in data} == {
            "qr_system": "disconnected",
            "google_calendar": "disconnected",
        }

    def test_connect_and_disconnect(self, client):
        resp = client.post("/api/integrations/qr_system/connect", json={"endpoint_url": "https://qr.example.com/api"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "connected"
        assert resp.json()["connected_at"] is not None

        resp = client.post("/api/integrations/qr_system/disconnect")
        assert resp.json()["status"] == "disconnected"
        assert resp.json()["connected_at"] is None

    def test_bad_endpoint_sets_error(self, client):
        resp = client.post("/api/integrations/google_calendar/connect", json={"endpoint_url": "calendar"})
        assert resp.json()["status"] == "error"
        assert resp.json()["last_error"]

    def test_unknown_kind(self, client):
        resp = client.post("/api/integrations/fax/connect", json={"endpoint_url": "https://x.example"})
        assert resp.status_code == 404


class TestVisitorList:
    def test_rows_per_visitor(self, client):
        user = create_test_user(client, name="Hanako")
        room = create_test_room(client)
        day = future_day()
        approved = approved_reservation(client, user["user_id"], room["room_id"], day, 10, visitors=[V1, V2])
        book(client, user["user_id"], room["room_id"], day, 13, visitors=[V1])
        rejected = book(client, user["user_id"], room["room_id"], day, 15, visitors=[V2]).json()
        client.post(f"/api/reservations/{rejected['reservation_id']}/reject", json={})

        rows = client.get("/api/integrations/visitors").json()
        assert [(r["visitor_name"], r["status"], r["visit_time"]) for r in rows] == [
            ("Yamada", "confirmed", "10:00"),
            ("Ito", "confirmed", "10:00"),
            ("Yamada", "pending", "13:00"),
        ]
        assert rows[0]["access_token"] == approved["access_token"]
        assert rows[0]["host"] == "Hanako"
        assert rows[0]["visit_date"] == day.isoformat()
