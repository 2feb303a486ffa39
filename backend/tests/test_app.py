from fastapi.testclient import TestClient

from api.main import app


def test_health_endpoints():
    client = TestClient(app)
    assert client.get("/").json()["status"] == "ok"
    assert client.get("/health").json() == {"status": "healthy"}


def test_routers_are_mounted():
    paths = {route.path for route in app.routes}
    assert "/editor/sessions" in paths
    assert "/editor/sessions/{session_id}/layers" in paths
    assert "/itineraries" in paths
