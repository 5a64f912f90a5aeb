"""
End-to-end tests for the Quake Proxy against the mock USGS service.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from mocks.usgs.server import MockUsgsServer
from shared.config import ServiceConfig
from service_quakes.app.adapters import UsgsClient
from service_quakes.app.main import create_app


@pytest.fixture
def usgs_mock():
    return MockUsgsServer()


@pytest.fixture
def client(store, usgs_mock):
    usgs_client = UsgsClient("http://mock-usgs/", transport=httpx.ASGITransport(app=usgs_mock.app))
    config = ServiceConfig(service_name="quakes", port=8000, env="test", log_level="warning")
    return TestClient(create_app(config, store=store, usgs_client=usgs_client))


def test_repeat_query_is_served_from_cache(client, usgs_mock):
    """Test that an identical filter is answered by the cache the second time."""
    params = {"minmagnitude": "5.0", "limit": "10"}

    first = client.get("/api/earthquakes", params=params, headers={"X-Forwarded-For": "198.51.100.20"})
    second = client.get("/api/earthquakes", params=params, headers={"X-Forwarded-For": "198.51.100.20"})

    assert first.status_code == 200
    assert first.json()["source"] == "api"
    assert [f["id"] for f in first.json()["data"]["features"]] == ["us7000n7n8", "us6000m0xl", "nc73827571"]
    assert second.json()["source"] == "cache"
    assert second.json()["data"] == first.json()["data"]
    assert usgs_mock.request_count == 1


def test_lookup_by_id(client, usgs_mock):
    response = client.get("/api/earthquakes/ci40610416", headers={"X-Forwarded-For": "198.51.100.21"})

    assert response.status_code == 200
    assert response.json()["data"]["properties"]["mag"] == 4.1
    assert response.json()["source"] == "api"


def test_unknown_event_is_never_cached(client, usgs_mock, store):
    """Test that each lookup of a missing event reaches the upstream."""
    headers = {"X-Forwarded-For": "198.51.100.22"}

    first = client.get("/api/earthquakes/us7000abcd", headers=headers)
    second = client.get("/api/earthquakes/us7000abcd", headers=headers)

    assert (first.status_code, second.status_code) == (404, 404)
    assert second.json()["error"] == "Earthquake not found"
    assert usgs_mock.request_count == 2
    assert "earthquake:us7000abcd" not in store.data


def test_rate_limit_window_expiry(client, store):
    """Test that a throttled client is admitted again once the window lapses."""
    headers = {"X-Forwarded-For": "198.51.100.23"}

    statuses = [client.get("/api/earthquakes", headers=headers).status_code for _ in range(4)]
    assert statuses == [200, 200, 200, 429]

    store.advance(61)

    response = client.get("/api/earthquakes", headers=headers)
    assert response.status_code == 200
    assert response.headers["X-RateLimit-Remaining"] == "2"


def test_upstream_outage(client, usgs_mock):
    usgs_mock.fail_with = 503

    response = client.get("/api/earthquakes", headers={"X-Forwarded-For": "198.51.100.24"})

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to fetch earthquake data"
    assert usgs_mock.request_count == 1


def test_store_outage_degrades_to_pass_through(client, usgs_mock, store):
    store.fail()
    headers = {"X-Forwarded-For": "198.51.100.25"}

    responses = [client.get("/api/earthquakes/us7000n7n8", headers=headers) for _ in range(5)]

    assert [r.status_code for r in responses] == [200] * 5
    assert {r.json()["source"] for r in responses} == {"api"}
    assert usgs_mock.request_count == 5
