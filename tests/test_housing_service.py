"""Tests for the housing application service."""

import pytest
import pytest_asyncio

from models import QueryStrategy
from services import HousingService, parse_list_param
from utils.exceptions import DataNotLoadedError, InvalidQueryError, StaticDataError


class TestParseListParam:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, None),
            ("", None),
            (" , ,", None),
            ("Camden", ["Camden"]),
            ("Camden, Westminster ,", ["Camden", "Westminster"]),
            (["Camden", "Hackney,Islington"], ["Camden", "Hackney", "Islington"]),
            ([], None),
        ],
    )
    def test_parse(self, value, expected):
        assert parse_list_param(value) == expected


@pytest.fixture
def service(cache, static_provider) -> HousingService:
    return HousingService(cache, static_provider)


@pytest_asyncio.fixture
async def loaded_service(service) -> HousingService:
    await service.cache.load()
    return service


class TestBuildQuery:
    def test_empty_strings_are_absent(self, service):
        query = service.build_query(date_from="", date_to="", regions="", fields="")

        assert query.date_from is None
        assert query.date_to is None
        assert query.regions is None
        assert query.fields is None

    def test_comma_separated_lists(self, service):
        query = service.build_query(regions="Camden, Westminster", fields="Date")

        assert query.regions == ["Camden", "Westminster"]
        assert query.fields == ["Date"]


class TestQuery:
    def test_query_before_load(self, service):
        assert not service.is_loaded
        with pytest.raises(DataNotLoadedError):
            service.query()

    @pytest.mark.asyncio
    async def test_query_response(self, loaded_service):
        response = loaded_service.query(
            date_from="2020-02-01", date_to="2020-02-01", regions="Camden"
        )

        assert response.count == 1
        assert response.data[0]["AveragePrice"] == "505000"
        assert response.strategy == QueryStrategy.DATE_REGION
        assert response.query_time.endswith("ms")
        assert response.query.regions == ["Camden"]

    @pytest.mark.asyncio
    async def test_response_serializes_camel_case(self, loaded_service):
        response = loaded_service.query(date_from="2020-03-01", fields="RegionName")

        payload = response.model_dump(by_alias=True)

        assert set(payload) == {"data", "count", "queryTime", "strategy", "query"}
        assert payload["query"]["dateFrom"] == "2020-03-01"
        assert payload["count"] == 2
        assert all(list(row) == ["RegionName"] for row in payload["data"])


class TestLookups:
    @pytest.mark.asyncio
    async def test_regions_and_dates(self, loaded_service):
        assert loaded_service.get_regions() == [
            "Camden",
            "City of London",
            "Westminster",
        ]
        assert loaded_service.get_dates()[0] == "1995-01-01"

    def test_lookups_before_load_are_empty(self, service):
        assert service.get_regions() == []
        assert service.get_dates() == []
        assert service.get_metadata().is_loaded is False

    @pytest.mark.asyncio
    async def test_borough_timeseries_sorted(self, loaded_service):
        rows = loaded_service.get_borough_timeseries("Camden")

        assert [row["Date"] for row in rows] == [
            "2020-01-01",
            "2020-02-01",
            "2020-03-01",
            None,
        ]

    @pytest.mark.asyncio
    async def test_borough_timeseries_unknown_region(self, loaded_service):
        assert loaded_service.get_borough_timeseries("Atlantis") == []

    @pytest.mark.asyncio
    async def test_snapshot(self, loaded_service):
        rows = loaded_service.get_snapshot("2020-01-01")

        assert {row["RegionName"] for row in rows} == {"Camden", "Westminster"}

    @pytest.mark.asyncio
    async def test_snapshot_accepts_source_format(self, loaded_service):
        rows = loaded_service.get_snapshot("01/01/95", fields="AveragePrice")

        assert rows == [{"AveragePrice": "91449"}]

    @pytest.mark.asyncio
    async def test_snapshot_rejects_bad_date(self, loaded_service):
        with pytest.raises(InvalidQueryError):
            loaded_service.get_snapshot("January")


class TestReloadAndStatic:
    @pytest.mark.asyncio
    async def test_reload(self, loaded_service):
        metadata = await loaded_service.reload()

        assert metadata.is_loaded
        assert metadata.total_rows == 8

    def test_static_resources(self, service):
        assert service.get_static("map")["type"] == "Topology"

        with pytest.raises(StaticDataError):
            service.get_static("unknown")
