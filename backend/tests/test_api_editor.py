import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api import sessions
from api.routes import editor as editor_router
from api.routes import itineraries as itineraries_router
from db import Base
from repositories import models  # noqa: F401  registers tables on Base
from services.directions import DirectionsGateway


class RoadGateway(DirectionsGateway):
    def fetch(self, start, end):
        mid = ((start[0] + end[0]) / 2, (start[1] + end[1]) / 2 + 0.1)
        return [start, mid, end]


@pytest.fixture
def client(monkeypatch):
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    monkeypatch.setattr(editor_router, "SessionLocal", TestSessionLocal)
    monkeypatch.setattr(itineraries_router, "SessionLocal", TestSessionLocal)
    monkeypatch.setattr(sessions, "get_default_gateway", lambda: RoadGateway())

    app = FastAPI()
    app.include_router(editor_router.router, prefix="/editor/sessions")
    app.include_router(itineraries_router.router, prefix="/itineraries")
    return TestClient(app)


def _open(client, **body):
    resp = client.post("/editor/sessions", json=body)
    assert resp.status_code == 200
    return resp.json()["id"]


def test_create_session_starts_empty(client):
    resp = client.post("/editor/sessions", json={"use_directions": True})
    assert resp.status_code == 200
    data = resp.json()
    assert data["mode"] == "idle"
    assert data["directions_active"] is True
    assert data["pins"] == []
    assert data["can_undo"] is False


def test_unknown_session_is_404(client):
    assert client.get("/editor/sessions/nope").status_code == 404
    assert client.post("/editor/sessions/nope/undo").status_code == 404


def test_drop_pins_and_read_composed_route(client):
    sid = _open(client)
    client.post(f"/editor/sessions/{sid}/pins", json={"type": "HOTEL", "lon": 0.0, "lat": 0.0})
    client.post(f"/editor/sessions/{sid}/pins", json={"type": "FOOD", "lon": 1.0, "lat": 0.0})

    data = client.get(f"/editor/sessions/{sid}").json()

    assert [p["type"] for p in data["pins"]] == ["HOTEL", "FOOD"]
    assert data["runs"] == [[[0.0, 0.0], [0.5, 0.1], [1.0, 0.0]]]
    assert data["segments"][0]["kind"] == "computed"
    assert data["can_undo"] is True


def test_drop_pin_rejects_out_of_range_coordinates(client):
    sid = _open(client)
    resp = client.post(f"/editor/sessions/{sid}/pins", json={"lon": 200.0, "lat": 0.0})
    assert resp.status_code == 422


def test_draw_custom_path_through_pointer_events(client):
    sid = _open(client)
    client.post(f"/editor/sessions/{sid}/pins", json={"lon": 0.0, "lat": 0.0})
    client.post(f"/editor/sessions/{sid}/pins", json={"lon": 1.0, "lat": 0.0})

    started = client.post(f"/editor/sessions/{sid}/path-mode/toggle").json()
    assert started["outcome"] == "started"
    assert started["state"]["mode"] == "drawing"

    for lon in (1.0, 2.0):
        resp = client.post(f"/editor/sessions/{sid}/click", json={"lon": lon, "lat": 0.0})
        assert resp.json()["point_added"] is True

    finished = client.post(f"/editor/sessions/{sid}/path-mode/toggle").json()
    assert finished["outcome"] == "committed"
    assert finished["state"]["custom_paths"] == [[[1.0, 0.0], [2.0, 0.0]]]

    client.post(f"/editor/sessions/{sid}/pins", json={"lon": 3.0, "lat": 0.0})
    state = client.get(f"/editor/sessions/{sid}").json()
    assert state["runs"][1] == [[2.0, 0.0], [2.5, 0.1], [3.0, 0.0]]

    layers = client.get(f"/editor/sessions/{sid}/layers").json()
    ids = {layer["id"] for layer in layers["layers"]}
    assert ids == {"route-line", "custom-path-layer-0"}
    assert len(layers["markers"]["features"]) == 4


def test_cancel_path_mode_discards_draft(client):
    sid = _open(client)
    client.post(f"/editor/sessions/{sid}/path-mode/toggle")
    client.post(f"/editor/sessions/{sid}/click", json={"lon": 0.0, "lat": 0.0})
    client.post(f"/editor/sessions/{sid}/click", json={"lon": 1.0, "lat": 1.0})

    data = client.post(f"/editor/sessions/{sid}/path-mode/cancel").json()

    assert data["outcome"] == "discarded"
    assert data["state"]["mode"] == "idle"
    assert data["state"]["custom_paths"] == []


def test_dragend_undo_redo(client):
    sid = _open(client)
    pin = client.post(f"/editor/sessions/{sid}/pins", json={"lon": 0.0, "lat": 0.0}).json()

    moved = client.post(
        f"/editor/sessions/{sid}/pins/{pin['id']}/dragend", json={"lon": 5.0, "lat": 5.0}
    ).json()
    assert moved["pins"][0]["lon"] == 5.0

    undone = client.post(f"/editor/sessions/{sid}/undo").json()
    assert undone["pins"][0]["lon"] == 0.0
    assert undone["can_redo"] is True

    redone = client.post(f"/editor/sessions/{sid}/redo").json()
    assert redone["pins"][0]["lon"] == 5.0


def test_edit_and_delete_pin(client):
    sid = _open(client)
    pin = client.post(f"/editor/sessions/{sid}/pins", json={"lon": 0.0, "lat": 0.0}).json()

    edited = client.patch(
        f"/editor/sessions/{sid}/pins/{pin['id']}", json={"title": "Museum"}
    ).json()
    assert edited["title"] == "Museum"

    assert client.patch(f"/editor/sessions/{sid}/pins/nope", json={"title": "x"}).status_code == 404

    state = client.delete(f"/editor/sessions/{sid}/pins/{pin['id']}").json()
    assert state["pins"] == []
    assert client.delete(f"/editor/sessions/{sid}/pins/{pin['id']}").status_code == 404


def test_save_validates_then_persists_in_route_order(client):
    sid = _open(client)
    a = client.post(f"/editor/sessions/{sid}/pins", json={"type": "HOTEL", "lon": 1.0, "lat": 10.0}).json()
    b = client.post(f"/editor/sessions/{sid}/pins", json={"type": "FOOD", "lon": 2.0, "lat": 20.0}).json()

    resp = client.post(f"/editor/sessions/{sid}/save", json={"title": "Trip"})
    assert resp.status_code == 400
    assert "All pins must have a title" in resp.json()["detail"]

    client.patch(f"/editor/sessions/{sid}/pins/{a['id']}", json={"title": "Inn"})
    client.patch(f"/editor/sessions/{sid}/pins/{b['id']}", json={"title": "Lunch"})
    resp = client.post(f"/editor/sessions/{sid}/save", json={"title": "Trip", "is_public": True})
    assert resp.status_code == 200
    saved = resp.json()
    assert [p["order_index"] for p in saved["pins"]] == [0, 1]
    assert saved["pins"][0]["latitude"] == 10.0

    stored = client.get(f"/itineraries/{saved['itinerary_id']}").json()
    assert stored["title"] == "Trip"
    assert stored["is_public"] is True
    assert [p["title"] for p in stored["pins"]] == ["Inn", "Lunch"]


def test_draft_save_fills_defaults(client):
    sid = _open(client)
    client.post(f"/editor/sessions/{sid}/pins", json={"lon": 0.0, "lat": 0.0})

    saved = client.post(f"/editor/sessions/{sid}/save", json={"draft": True, "is_public": True}).json()

    assert saved["title"] == "Untitled Itinerary"
    assert saved["is_public"] is False
    assert saved["pins"][0]["title"] == "Point 1"


def test_open_session_from_saved_itinerary(client):
    created = client.post(
        "/itineraries",
        json={
            "title": "Weekend",
            "pins": [
                {"latitude": 10.0, "longitude": 1.0, "title": "First", "type": "HOTEL"},
                {"latitude": 20.0, "longitude": 2.0, "title": "Second", "type": "FOOD"},
            ],
        },
    ).json()

    resp = client.post("/editor/sessions", json={"itinerary_id": created["id"]})
    assert resp.status_code == 200
    data = resp.json()
    assert [p["title"] for p in data["pins"]] == ["First", "Second"]
    assert data["can_undo"] is False
    (run,) = data["runs"]
    assert run[0] == [1.0, 10.0]
    assert run[-1] == [2.0, 20.0]

    assert client.post("/editor/sessions", json={"itinerary_id": "missing"}).status_code == 404


def test_close_session(client):
    sid = _open(client)
    assert client.delete(f"/editor/sessions/{sid}").status_code == 200
    assert client.get(f"/editor/sessions/{sid}").status_code == 404
