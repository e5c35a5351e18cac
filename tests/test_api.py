"""
API integration tests.
"""

from unittest.mock import AsyncMock, call, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from parking_tracker.config import Settings
from parking_tracker.main import create_app


@pytest.fixture
def settings(database_url):
    return Settings(
        database_url=database_url,
        total_capacity=10,
        default_rate_per_hour=5.0,
        mqtt_host=None
    )


@pytest.fixture
def client(settings, clock):
    """Create test client with a fresh lot and a fake clock."""
    with TestClient(create_app(settings)) as client:
        client.app.state.parking_service.clock = clock
        yield client


def enter(client, plate="ABC-123", spot="A1"):
    return client.post(
        "/api/v1/sessions/entry/",
        json={"license_plate": plate, "parking_spot": spot}
    )


def leave(client, plate="ABC-123", rate=5):
    return client.put(
        "/api/v1/sessions/exit/",
        json={"license_plate": plate, "rate_per_hour": rate}
    )


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "Parking Tracker"
    assert data["status"] == "running"


def test_startup_creates_lot(client):
    response = client.get("/api/v1/lot/availability")
    assert response.status_code == 200
    assert response.json() == {"total_capacity": 10, "available_spots": 10}


def test_vehicle_entry(client, clock):
    response = enter(client)
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Vehicle entry recorded"
    assert data["available_spots"] == 9
    assert data["session"]["license_plate"] == "ABC-123"
    assert data["session"]["parking_spot"] == "A1"
    assert data["session"]["status"] == "parked"
    assert data["session"]["exit_time"] is None
    assert data["session"]["entry_time"] == clock.now.isoformat()


def test_duplicate_entry(client):
    enter(client)
    response = enter(client, spot="A2")
    assert response.status_code == 400
    assert response.json() == {
        "kind": "already_parked",
        "message": "A vehicle with this license plate is already parked"
    }
    assert client.get("/api/v1/lot/availability").json()["available_spots"] == 9


def test_full_lot(client):
    assert client.put("/api/v1/lot/", json={"total_capacity": 1}).status_code == 200
    enter(client)

    response = enter(client, plate="XYZ-789", spot="B5")
    assert response.status_code == 400
    assert response.json()["message"] == "Parking lot is full"
    assert response.json()["kind"] == "full"
    assert client.get("/api/v1/lot/availability").json()["available_spots"] == 0


def test_vehicle_exit_with_fee(client, clock):
    enter(client)
    clock.advance(minutes=90)

    response = leave(client)
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Exit recorded, payment successful"
    assert data["license_plate"] == "ABC-123"
    assert data["parking_spot"] == "A1"
    assert data["duration_hours"] == 2
    assert data["fee"] == 10.0
    assert data["exit_time"] == clock.now.isoformat()
    assert client.get("/api/v1/lot/availability").json()["available_spots"] == 10


def test_exit_default_rate(client, clock):
    enter(client)
    clock.advance(minutes=61)

    response = client.put("/api/v1/sessions/exit/", json={"license_plate": "ABC-123"})
    assert response.status_code == 200
    assert response.json()["rate_per_hour"] == 5.0
    assert response.json()["fee"] == 10.0


def test_exit_unknown_vehicle(client):
    response = leave(client, plate="UNKNOWN-VEHICLE")
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"
    assert client.get("/api/v1/lot/availability").json()["available_spots"] == 10


def test_request_validation(client):
    assert enter(client, plate="").status_code == 422
    assert client.post("/api/v1/sessions/entry/", json={"license_plate": "ABC-123"}).status_code == 422
    assert leave(client, rate=-5).status_code == 422
    assert client.put("/api/v1/lot/", json={"total_capacity": -1}).status_code == 422


def test_blank_plate_rejected_by_service(client):
    response = enter(client, plate="   ")
    assert response.status_code == 422
    assert response.json()["kind"] == "invalid_input"


def test_session_history(client, clock):
    enter(client)
    clock.advance(minutes=30)
    leave(client)
    clock.advance(minutes=30)
    enter(client, spot="B2")

    response = client.get("/api/v1/sessions/ABC-123")
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert [s["status"] for s in data["sessions"]] == ["parked", "exited"]
    assert [s["parking_spot"] for s in data["sessions"]] == ["B2", "A1"]


def test_resize_lot(client):
    enter(client)
    response = client.put("/api/v1/lot/", json={"total_capacity": 4})
    assert response.status_code == 200
    assert response.json() == {"total_capacity": 4, "available_spots": 3}


def test_health_reports_consistency(client):
    enter(client)
    response = client.get("/api/v1/health/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["active_sessions"] == 1
    assert data["available_spots"] == 9
    assert data["consistent"] is True


def test_server_error(client):
    failure = OperationalError("SELECT", {}, Exception("Network error"))
    with patch("parking_tracker.crud.get_parking_lot", AsyncMock(side_effect=failure)):
        response = client.get("/api/v1/lot/availability")

    assert response.status_code == 500
    assert response.json()["message"] == "Server error"
    assert "Network error" in response.json()["detail"]


def test_availability_without_lot(database_url, clock):
    settings = Settings(database_url=database_url, total_capacity=None, mqtt_host=None)
    with TestClient(create_app(settings)) as client:
        response = client.get("/api/v1/lot/availability")
        assert response.status_code == 404
        assert response.json()["message"] == "Parking lot configuration not found"

        # entering an unconfigured lot reports it as full
        assert enter(client).status_code == 400


def test_infinite_rate_rejected(client):
    enter(client)
    response = client.put(
        "/api/v1/sessions/exit/",
        content='{"license_plate": "ABC-123", "rate_per_hour": 1e400}',
        headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 422
    assert client.get("/api/v1/lot/availability").json()["available_spots"] == 9


def test_rate_too_large_to_bill(client, clock):
    enter(client)
    clock.advance(minutes=90)

    response = leave(client, rate=1e30)
    assert response.status_code == 422
    assert response.json()["kind"] == "invalid_input"
    assert client.get("/api/v1/lot/availability").json()["available_spots"] == 9


@patch("parking_tracker.gate.Client")
def test_entry_and_exit_open_gates(mock_client_cls, settings, clock):
    mqtt = AsyncMock()
    mock_client_cls.return_value.__aenter__.return_value = mqtt
    settings = settings.model_copy(update={"mqtt_host": "broker.local"})

    with TestClient(create_app(settings)) as client:
        client.app.state.parking_service.clock = clock
        assert enter(client).status_code == 201
        clock.advance(minutes=30)
        assert leave(client).status_code == 200

    # shutdown waits for pending gate publishes
    mqtt.publish.assert_has_awaits(
        [call("parking/gate/entry", b"open"), call("parking/gate/exit", b"open")],
        any_order=True
    )
    assert mqtt.publish.await_count == 2
    assert mock_client_cls.call_args.kwargs["hostname"] == "broker.local"


def test_gate_not_contacted_when_disabled(client):
    with patch("parking_tracker.gate.Client") as mock_client_cls:
        enter(client)
        leave(client)
    mock_client_cls.assert_not_called()
