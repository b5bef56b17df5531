from __future__ import annotations

from fastapi.testclient import TestClient

from config import Settings
from database import build_engine, build_sessionmaker
from main import create_app
from store import BookingStore


def _payload(hours, dates=("2026-01-19",), **overrides) -> dict:
    body = {
        "parent_name": "Jordan Lee",
        "email": "jordan@example.com",
        "child_name": "Riley",
        "child_grade": "Prep",
        "appointment_dates": list(dates),
        "appointment_hours": list(hours),
    }
    body.update(overrides)
    return body


def test_health(client: TestClient) -> None:
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "OK"
    assert body["port"] == 3001
    assert "timestamp" in body


def test_root(client: TestClient) -> None:
    res = client.get("/")
    assert res.status_code == 200
    assert res.json()["message"] == "Uniform Shop API is running"


def test_slot_catalogue(client: TestClient) -> None:
    body = client.get("/api/slots").json()
    assert body["dates"] == ["2026-01-19", "2026-01-20", "2026-01-21", "2026-01-22", "2026-01-23"]
    assert body["slots"][0] == {"start": "08:00", "end": "08:20", "rooms": ["room1", "room2"]}
    assert body["slots"][-1]["end"] == "14:00"
    assert len(body["slot_ids"]) == 36
    assert body["slot_ids"][:2] == ["08:00-room1", "08:00-room2"]
    assert body["grades"][0] == "Prep"


def test_booking_flow(client: TestClient) -> None:
    first = client.post("/api/appointment", json=_payload(["08:00-room1"]))
    assert first.status_code == 201
    created = first.json()
    assert created["id"] >= 1
    assert created["appointment_hours"] == ["08:00-room1"]

    taken = client.post("/api/appointment", json=_payload(["08:00-room1"]))
    assert taken.status_code == 400
    assert "already taken" in taken.json()["error"]

    other_room = client.post("/api/appointment", json=_payload(["08:00-room2"]))
    assert other_room.status_code == 201

    assert client.get("/api/appointments/count").json() == {"count": 2}

    listed = client.post("/api/appointments").json()
    assert [a["appointment_hours"] for a in listed] == [["08:00-room2"], ["08:00-room1"]]
    assert listed[0]["appointment_dates"] == ["2026-01-19"]


def test_missing_contact_details(client: TestClient) -> None:
    res = client.post("/api/appointment", json=_payload(["08:00-room1"], parent_name=""))
    assert res.status_code == 400
    assert res.json() == {"error": "Parent name and email are required."}


def test_empty_selection(client: TestClient) -> None:
    res = client.post("/api/appointment", json=_payload([]))
    assert res.status_code == 400
    assert res.json() == {"error": "At least one date and one hour must be selected."}


def test_wrongly_typed_body_is_a_400(client: TestClient) -> None:
    res = client.post("/api/appointment", json=_payload([], appointment_hours="08:00-room1"))
    assert res.status_code == 400
    assert "error" in res.json()

    res = client.post("/api/appointment", content=b"{not json", headers={"Content-Type": "application/json"})
    assert res.status_code == 400


def test_counts(client: TestClient) -> None:
    query = {"dates": ["2026-01-19"], "hours": ["09:00-room1", "09:00-room2"]}

    assert client.post("/api/appointments/counts", json=query).json() == {
        "2026-01-19": {"09:00-room1": 0, "09:00-room2": 0}
    }

    client.post("/api/appointment", json=_payload(["09:00-room1"]))

    assert client.post("/api/appointments/counts", json=query).json() == {
        "2026-01-19": {"09:00-room1": 1, "09:00-room2": 0}
    }


def test_counts_requires_arrays(client: TestClient) -> None:
    res = client.post("/api/appointments/counts", json={"dates": ["2026-01-19"]})
    assert res.status_code == 400
    assert res.json() == {"error": "dates and hours must be arrays."}


def test_delete_all(client: TestClient) -> None:
    client.post("/api/appointment", json=_payload(["08:00-room1"]))
    client.post("/api/appointment", json=_payload(["08:20-room1"]))

    res = client.post("/api/appointments/delete-all")
    assert res.status_code == 200
    assert res.json() == {"success": True, "deletedCount": 2}
    assert client.get("/api/appointments/count").json() == {"count": 0}
    assert client.post("/api/appointments").json() == []


def test_storage_failure_is_a_500(settings: Settings) -> None:
    app = create_app(settings)
    with TestClient(app) as client:
        # point the app at a database file that cannot be opened
        broken = Settings(database_url="sqlite+aiosqlite:////nonexistent-dir/appointments.db")
        app.state.sessionmaker = build_sessionmaker(build_engine(broken.database_url))

        res = client.get("/api/appointments/count")
        assert res.status_code == 500
        assert res.json() == {"error": "Failed to fetch count."}


def test_cors_allows_dev_origin(client: TestClient) -> None:
    res = client.get("/health", headers={"Origin": "http://localhost:3000"})
    assert res.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_cors_production_origin(tmp_path) -> None:
    settings = Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'prod.db'}",
        environment="production",
        frontend_url="https://fitting.example.org",
    )
    with TestClient(create_app(settings)) as client:
        res = client.get("/health", headers={"Origin": "http://localhost:3000"})
        assert "access-control-allow-origin" not in res.headers

        res = client.get("/health", headers={"Origin": "https://fitting.example.org"})
        assert res.headers["access-control-allow-origin"] == "https://fitting.example.org"


def test_create_storage_failure_is_a_500(settings: Settings) -> None:
    app = create_app(settings)
    with TestClient(app) as client:
        broken = build_engine("sqlite+aiosqlite:////nonexistent-dir/appointments.db")
        app.state.sessionmaker = build_sessionmaker(broken)

        res = client.post("/api/appointment", json=_payload(["08:00-room1"]))
        assert res.status_code == 500
        assert res.json() == {"error": "Failed to create appointment."}


def test_unexpected_error_is_a_generic_500(settings: Settings, monkeypatch) -> None:
    async def explode(self) -> int:
        raise RuntimeError("boom")

    monkeypatch.setattr(BookingStore, "count", explode)

    with TestClient(create_app(settings), raise_server_exceptions=False) as client:
        res = client.get("/api/appointments/count")
        assert res.status_code == 500
        assert res.json() == {"error": "Internal server error."}
