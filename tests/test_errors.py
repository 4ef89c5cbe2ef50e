from fastapi.testclient import TestClient

from hyrepro.main import app
from hyrepro.services.analytics_service import analytics_service


def test_body_validation_is_400(client):
    response = client.post("/api/check-panelist-availability")
    assert response.status_code == 400
    assert response.json()["error"].startswith("Missing required fields:")


def test_handler_required_fields(client, rpc):
    response = client.post("/api/check-panelist-availability", json={"panelistEmail": "p@x.test"})
    assert response.status_code == 400
    assert response.json() == {
        "error": "Missing required fields: panelistEmail, interviewDate, startTime, endTime"
    }


def test_unexpected_exception_is_generic_500(bridge, monkeypatch):
    def explode(db, school_id, period="all"):
        raise RuntimeError("unexpected shape")
    monkeypatch.setattr(analytics_service, "get_school_kpis", explode)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/school-kpis", params={"schoolId": "school-1"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_unknown_api_route_is_json_404(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
