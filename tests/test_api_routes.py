import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi.testclient import TestClient

from conftest import (
    FakeWeatherClient,
    InMemoryEventStore,
    InMemoryForecastStore,
    InMemorySensorStore,
    static_collectors,
)
from crowd_intel.engine import CrowdEngine
from crowd_intel.main import app
from crowd_intel.orchestrator.scheduler import CrowdScheduler
from crowd_intel.services.aggregation import CrowdAggregationService
from crowd_intel.services.heatmap import HeatmapService
from crowd_intel.services.prediction import PredictionService
from crowd_intel.services.sensors import SensorService


@pytest.fixture
def client(places, readings):
    aggregation = CrowdAggregationService(places=places, readings=readings, collectors=static_collectors())
    prediction = PredictionService(
        places=places,
        readings=readings,
        forecasts=InMemoryForecastStore(),
        events=InMemoryEventStore(),
        weather=FakeWeatherClient(),
    )
    app.state.engine = CrowdEngine(
        aggregation=aggregation,
        heatmap=HeatmapService(places=places, readings=readings),
        prediction=prediction,
        sensors=SensorService(store=InMemorySensorStore()),
        scheduler=CrowdScheduler(AsyncIOScheduler(), aggregation, prediction),
    )
    yield TestClient(app)
    app.state.engine = None


def test_current_crowd_for_place(client):
    response = client.get("/api/crowd/places/1")

    assert response.status_code == 200
    body = response.json()
    assert body["place_id"] == 1
    assert body["place_name"] == "Zlatni Rat"
    assert body["crowd_index"] == 53
    assert body["crowd_level"] == "BUSY"


def test_unknown_place_is_404(client):
    assert client.get("/api/crowd/places/999").status_code == 404
    assert client.get("/api/predictions/999").status_code == 404


def test_heatmap_lists_places_with_fresh_readings(client):
    client.get("/api/crowd/places/1")

    response = client.get("/api/crowd/heatmap", params={"place_ids": "1,3"})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["points"][0]["place_id"] == 1
    assert body["points"][0]["color"] == "#FFA500"


def test_heatmap_rejects_bad_place_ids(client):
    assert client.get("/api/crowd/heatmap", params={"place_ids": "1,x"}).status_code == 400


def test_predictions(client):
    response = client.get("/api/predictions/1", params={"date": "2026-10-21"})

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == "2026-10-21"
    assert len(body["hourly_predictions"]) == 24
    assert body["best_hour"] == 0
    assert body["weather_forecast"]["condition"] == "clear"


def test_predictions_reject_bad_date(client):
    assert client.get("/api/predictions/1", params={"date": "tomorrow-ish"}).status_code == 400


def test_sensor_registration_and_readings(client):
    created = client.post("/api/sensors", json={
        "place_id": 1, "sensor_type": "camera", "name": "Pier camera", "capacity": 100
    })
    assert created.status_code == 201
    sensor_id = created.json()["sensor_id"]

    ack = client.post("/api/sensors/readings", json={"sensor_id": sensor_id, "count": 25})
    assert ack.status_code == 201
    assert ack.json()["calibrated_count"] == 25

    listed = client.get("/api/sensors/place/1")
    assert [s["sensor_id"] for s in listed.json()] == [sensor_id]

    stats = client.get(f"/api/sensors/{sensor_id}/stats", params={"hours": 6})
    assert stats.status_code == 200
    assert stats.json()["total_readings"] == 1
    assert stats.json()["utilization_rate"] == 25


def test_sensor_update_and_delete(client):
    sensor_id = client.post("/api/sensors", json={
        "place_id": 1, "sensor_type": "wifi", "name": "Gate counter", "capacity": 100
    }).json()["sensor_id"]

    updated = client.put(f"/api/sensors/{sensor_id}", json={"calibration_factor": 2.0})
    assert updated.status_code == 200
    assert updated.json()["calibration_factor"] == 2.0
    assert updated.json()["last_calibrated"] is not None

    ack = client.post("/api/sensors/readings", json={"sensor_id": sensor_id, "count": 15})
    assert ack.json()["calibrated_count"] == 30

    fetched = client.get(f"/api/sensors/{sensor_id}")
    assert fetched.status_code == 200
    assert [r["count"] for r in fetched.json()["recent_readings"]] == [30]

    client.put(f"/api/sensors/{sensor_id}", json={"is_active": False})
    inactive = client.post("/api/sensors/readings", json={"sensor_id": sensor_id, "count": 15})
    assert inactive.status_code == 400

    assert client.delete(f"/api/sensors/{sensor_id}").status_code == 204
    assert client.get(f"/api/sensors/{sensor_id}").status_code == 404
    assert client.put(f"/api/sensors/{sensor_id}", json={"name": "Gone"}).status_code == 404
    assert client.delete(f"/api/sensors/{sensor_id}").status_code == 404


def test_sensor_errors(client):
    bad_type = client.post("/api/sensors", json={"place_id": 1, "sensor_type": "radar", "name": "X"})
    unknown = client.post("/api/sensors/readings", json={"sensor_id": 42, "count": 1})
    missing_stats = client.get("/api/sensors/42/stats")

    assert bad_type.status_code == 400
    assert unknown.status_code == 404
    assert missing_stats.status_code == 404


def test_orchestrator_endpoints(client, readings):
    refresh = client.post("/api/orchestrator/refresh")
    status = client.get("/api/orchestrator/status")

    assert refresh.status_code == 200
    assert refresh.json()["summary"]["total"] == 4
    assert len(readings.readings) == 4
    assert status.json()["jobs"]["refresh"]["last_summary"]["succeeded"] == 4


def test_health_check(client):
    response = client.get("/api/health/")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_engine_not_available_is_503():
    app.state.engine = None
    client = TestClient(app)

    assert client.get("/api/crowd/places/1").status_code == 503
    assert client.get("/api/orchestrator/status").status_code == 503
