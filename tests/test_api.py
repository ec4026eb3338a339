"""Tests for the HTTP API built on the housing service."""

import threading
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from api import create_app
from conftest import SAMPLE_ROWS, write_csv
from data import HousingDataCache
from services import HousingService
from utils.config import Config
from utils.di_container import DIContainer, ServiceKeys, reset_container
from utils.metrics import get_metrics

PREFIX = "/api/data"


def _container(cache, static_provider) -> DIContainer:
    container = DIContainer()
    container.register(ServiceKeys.HOUSING_CACHE, cache)
    container.register(ServiceKeys.STATIC_DATA, static_provider)
    container.register(ServiceKeys.HOUSING_SERVICE, HousingService(cache, static_provider))
    return container


@pytest.fixture
def config(monkeypatch) -> Config:
    monkeypatch.delenv("SERVER_API_PREFIX", raising=False)
    return Config()


@pytest.fixture
def client(cache, static_provider, config):
    """Client for an app that loaded the sample CSV at startup."""
    app = create_app(_container(cache, static_provider), config, load_on_startup=True)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def unloaded_client(cache, static_provider, config):
    app = create_app(_container(cache, static_provider), config, load_on_startup=False)
    with TestClient(app) as client:
        yield client


class TestSystemEndpoints:
    def test_index_lists_endpoints(self, client):
        response = client.get(f"{PREFIX}/")

        assert response.status_code == 200
        body = response.json()
        paths = {endpoint["path"] for endpoint in body["endpoints"]}
        assert f"{PREFIX}/housing/query" in paths
        assert f"{PREFIX}/housing/reload" in paths

    def test_health_loaded(self, client):
        assert client.get(f"{PREFIX}/health").json()["status"] == "ok"

    def test_health_before_load(self, unloaded_client):
        body = unloaded_client.get(f"{PREFIX}/health").json()

        assert body["status"] == "loading"
        assert body["cache"]["is_loaded"] is False

    def test_unknown_route(self, client):
        response = client.get(f"{PREFIX}/nothing-here")

        assert response.status_code == 404
        assert response.json() == {
            "error": "Not Found",
            "message": f"Cannot GET {PREFIX}/nothing-here",
        }

    def test_startup_load_is_timed(self, client):
        assert get_metrics().get_stats("startup.load_housing_data")["count"] == 1

    def test_default_container_uses_given_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SERVER_API_PREFIX", raising=False)
        monkeypatch.setenv("APP_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("DATA_HOUSING_CSV", "custom.csv")
        monkeypatch.setenv("DATA_LOAD_TIMEOUT", "9")
        write_csv(tmp_path / "custom.csv", SAMPLE_ROWS[:3])
        custom = Config()

        try:
            app = create_app(config=custom, load_on_startup=True)
            cache = app.state.container.resolve(ServiceKeys.HOUSING_CACHE)
            with TestClient(app) as client:
                count = client.get(f"{PREFIX}/housing/query").json()["count"]
        finally:
            reset_container()

        assert app.state.config is custom
        assert cache._default_source == tmp_path / "custom.csv"
        assert cache._load_timeout == 9.0
        assert count == 3

    def test_cors_headers(self, client):
        response = client.get(
            f"{PREFIX}/housing/regions", headers={"Origin": "http://localhost:5173"}
        )

        assert response.headers["access-control-allow-origin"] == "*"


class TestHousingQuery:
    def test_query_all(self, client):
        response = client.get(f"{PREFIX}/housing/query")

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 8
        assert len(body["data"]) == 8
        assert body["queryTime"].endswith("ms")
        assert body["strategy"] == "full_scan"

    def test_query_filters(self, client):
        response = client.get(
            f"{PREFIX}/housing/query",
            params={
                "dateFrom": "2020-01-01",
                "dateTo": "2020-01-01",
                "regions": "Westminster,Camden",
                "fields": "RegionName,AveragePrice",
            },
        )

        body = response.json()
        assert body["strategy"] == "date_region"
        assert body["data"] == [
            {"RegionName": "Westminster", "AveragePrice": "900000"},
            {"RegionName": "Camden", "AveragePrice": "500000"},
        ]
        assert body["query"] == {
            "dateFrom": "2020-01-01",
            "dateTo": "2020-01-01",
            "regions": ["Westminster", "Camden"],
            "fields": ["RegionName", "AveragePrice"],
        }

    def test_query_rows_keep_original_date(self, client):
        body = client.get(
            f"{PREFIX}/housing/query", params={"regions": "City of London"}
        ).json()

        assert body["data"][0]["Date"] == "1995-01-01"
        assert body["data"][0]["_originalDate"] == "01/01/95"

    def test_query_before_load_is_unavailable(self, unloaded_client):
        response = unloaded_client.get(f"{PREFIX}/housing/query")

        assert response.status_code == 503
        assert response.json()["error"] == "Service Unavailable"

    def test_query_after_failed_startup_load(self, tmp_path, static_provider, config):
        cache = HousingDataCache(default_source=tmp_path / "missing.csv")
        app = create_app(_container(cache, static_provider), config, load_on_startup=True)

        with TestClient(app) as client:
            assert client.get(f"{PREFIX}/housing/query").status_code == 503


class TestHousingLookups:
    def test_metadata(self, client):
        body = client.get(f"{PREFIX}/housing/metadata").json()

        assert body["isLoaded"] is True
        assert body["totalRows"] == 8
        assert body["minDate"] == "1995-01-01"
        assert body["maxDate"] == "2020-03-01"
        assert body["columns"] == ["Date", "RegionName", "AreaCode", "AveragePrice"]
        assert body["loadTime"] is not None

    def test_metadata_before_load(self, unloaded_client):
        response = unloaded_client.get(f"{PREFIX}/housing/metadata")

        assert response.status_code == 200
        assert response.json()["isLoaded"] is False
        assert response.json()["dates"] == []

    def test_regions_and_dates(self, client):
        regions = client.get(f"{PREFIX}/housing/regions").json()
        dates = client.get(f"{PREFIX}/housing/dates").json()

        assert regions == {
            "regions": ["Camden", "City of London", "Westminster"],
            "count": 3,
        }
        assert dates["count"] == 4

    def test_borough_timeseries(self, client):
        body = client.get(f"{PREFIX}/housing/borough/Westminster").json()

        assert body["region"] == "Westminster"
        assert body["count"] == 3

    def test_snapshot(self, client):
        body = client.get(
            f"{PREFIX}/housing/snapshot/2020-02-01", params={"fields": "RegionName"}
        ).json()

        assert body["data"] == [{"RegionName": "Camden"}, {"RegionName": "Westminster"}]

    def test_snapshot_bad_date(self, client):
        response = client.get(f"{PREFIX}/housing/snapshot/soon")

        assert response.status_code == 400
        assert response.json()["error"] == "Bad Request"


class TestReload:
    def test_reload(self, client, housing_csv):
        before = client.get(f"{PREFIX}/housing/metadata").json()
        write_csv(housing_csv, SAMPLE_ROWS[:2])

        response = client.post(f"{PREFIX}/housing/reload")

        body = response.json()
        assert response.status_code == 200
        assert body["totalRows"] == 2
        loaded_at = datetime.fromisoformat(body["loadTime"])
        assert loaded_at > datetime.fromisoformat(before["loadTime"])
        assert client.get(f"{PREFIX}/housing/query").json()["count"] == 2

    def test_concurrent_reload_conflicts(self, unloaded_client, cache):
        started = threading.Event()
        release = threading.Event()

        class GatedParser:
            columns = ["Date", "RegionName"]

            def __init__(self, path):
                pass

            def iter_rows(self):
                started.set()
                release.wait(5)
                yield {"Date": "01/01/20", "RegionName": "Camden"}

        cache._parser_factory = GatedParser
        responses = []
        first = threading.Thread(
            target=lambda: responses.append(
                unloaded_client.post(f"{PREFIX}/housing/reload")
            )
        )
        first.start()
        try:
            assert started.wait(5)
            second = unloaded_client.post(f"{PREFIX}/housing/reload")
        finally:
            release.set()
            first.join(5)

        assert second.status_code == 409
        assert second.json() == {
            "error": "Conflict",
            "message": "A housing data load is already in progress",
        }
        assert responses[0].status_code == 200
        assert responses[0].json()["totalRows"] == 1

    def test_failed_reload_leaves_service_unavailable(self, client, housing_csv):
        housing_csv.unlink()

        response = client.post(f"{PREFIX}/housing/reload")

        assert response.status_code == 500
        assert client.get(f"{PREFIX}/housing/query").status_code == 503


class TestStaticEndpoints:
    def test_map(self, client):
        assert client.get(f"{PREFIX}/map/geojson").json()["type"] == "Topology"

    def test_boroughs(self, client):
        assert "Camden" in client.get(f"{PREFIX}/boroughs").json()

    def test_stats(self, client):
        assert "rankings" in client.get(f"{PREFIX}/stats").json()

    def test_static_served_before_housing_load(self, unloaded_client):
        assert unloaded_client.get(f"{PREFIX}/boroughs").status_code == 200

    def test_invalid_static_file(self, client, static_files):
        static_files["stats"].write_text("{", encoding="utf-8")

        response = client.get(f"{PREFIX}/stats")

        assert response.status_code == 500
        assert response.json()["message"] == "Invalid JSON format in stats data"
