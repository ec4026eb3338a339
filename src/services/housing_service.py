"""Framework-agnostic application service for housing data queries."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from data import HousingDataCache, StaticDataProvider
from models import DATE_FIELD, DatasetMetadata, HousingQuery, QueryResponse, Row
from utils.dates import normalize_date
from utils.exceptions import InvalidQueryError
from utils.progress_callback import ProgressCallback

logger = logging.getLogger(__name__)


def parse_list_param(value: str | list[str] | None) -> list[str] | None:
    """Split a comma-separated request parameter into trimmed values.

    Repeated parameters arrive as a list; each element may itself be
    comma-separated. Empty entries are dropped, and an empty result is None.
    """
    if value is None:
        return None
    raw_values = [value] if isinstance(value, str) else value
    items = [
        item.strip() for raw in raw_values for item in raw.split(",") if item.strip()
    ]
    return items or None


class HousingService:
    """Business logic for housing price queries and static resources."""

    def __init__(self, cache: HousingDataCache, static_data: StaticDataProvider):
        self._cache = cache
        self._static = static_data

    @property
    def cache(self) -> HousingDataCache:
        return self._cache

    @property
    def is_loaded(self) -> bool:
        return self._cache.is_loaded

    def build_query(
        self,
        date_from: str | None = None,
        date_to: str | None = None,
        regions: str | list[str] | None = None,
        fields: str | list[str] | None = None,
    ) -> HousingQuery:
        """Translate request parameters into cache query options."""
        try:
            return HousingQuery(
                date_from=date_from or None,
                date_to=date_to or None,
                regions=parse_list_param(regions),
                fields=parse_list_param(fields),
            )
        except ValidationError as e:
            raise InvalidQueryError(f"Invalid query parameters: {e}") from e

    def query(
        self,
        date_from: str | None = None,
        date_to: str | None = None,
        regions: str | list[str] | None = None,
        fields: str | list[str] | None = None,
    ) -> QueryResponse:
        """Query the cache and wrap the rows with timing information.

        Raises:
            DataNotLoadedError: If the cache has not been loaded.
            InvalidQueryError: If the parameters cannot form a query.
        """
        options = self.build_query(date_from, date_to, regions, fields)
        result = self._cache.execute(options)
        logger.info(
            "Housing query %s returned %d rows in %.2fms",
            result.strategy.value,
            result.count,
            result.duration_ms,
        )
        return QueryResponse(
            data=result.rows,
            count=result.count,
            query_time=f"{round(result.duration_ms)}ms",
            strategy=result.strategy,
            query=options,
        )

    def get_metadata(self) -> DatasetMetadata:
        return self._cache.get_metadata()

    def get_regions(self) -> list[str]:
        """Sorted region names of the loaded dataset."""
        return self._cache.get_metadata().regions

    def get_dates(self) -> list[str]:
        """Sorted canonical dates of the loaded dataset."""
        return self._cache.get_metadata().dates

    def get_borough_timeseries(
        self, region: str, fields: str | list[str] | None = None
    ) -> list[Row]:
        """All rows for one region, oldest first.

        Rows with an unparseable date sort last.
        """
        options = self.build_query(regions=[region], fields=fields)
        rows = self._cache.query(options)
        return sorted(
            rows,
            key=lambda row: (row.get(DATE_FIELD) is None, row.get(DATE_FIELD) or ""),
        )

    def get_snapshot(
        self, date: str, fields: str | list[str] | None = None
    ) -> list[Row]:
        """Every region's row for a single date.

        Raises:
            InvalidQueryError: If the date is not in a recognised format.
        """
        canonical = normalize_date(date)
        if canonical is None:
            raise InvalidQueryError(f"Unrecognised date: {date!r}")
        # Listing every region routes the lookup through the composite index
        regions = self._cache.get_metadata().regions or None
        options = self.build_query(canonical, canonical, regions, fields)
        return self._cache.query(options)

    async def reload(
        self, progress_callback: ProgressCallback | None = None
    ) -> DatasetMetadata:
        """Reload the housing CSV from its configured location."""
        return await self._cache.reload(progress_callback=progress_callback)

    def get_static(self, resource: str) -> Any:
        """Return a static JSON resource (boroughs, stats or map)."""
        return self._static.get(resource)
