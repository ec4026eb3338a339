"""Housing dataset models: query options, metadata and query results."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# A row is a plain mapping so field projection stays a key filter
Row = dict[str, Any]

DATE_FIELD = "Date"
REGION_FIELD = "RegionName"
ORIGINAL_DATE_FIELD = "_originalDate"


class CacheState(str, Enum):
    """Lifecycle state of the housing data cache."""

    EMPTY = "empty"
    LOADING = "loading"
    LOADED = "loaded"


class QueryStrategy(str, Enum):
    """Index strategy chosen for a query."""

    DATE_REGION = "date_region"  # exact date + regions via composite index
    DATE_RANGE = "date_range"  # date index scan, optional region filter
    REGION = "region"  # region index union
    FULL_SCAN = "full_scan"  # no filters


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HousingQuery(_CamelModel):
    """Filter options for a cache query.

    Dates may be given as YYYY-MM-DD, DD/MM/YY or DD/MM/YYYY; they are
    normalized by the cache before use.
    """

    date_from: str | None = Field(default=None, description="Inclusive lower date")
    date_to: str | None = Field(default=None, description="Inclusive upper date")
    regions: list[str] | None = Field(default=None, description="Region names")
    fields: list[str] | None = Field(default=None, description="Fields to return")

    @field_validator("regions")
    @classmethod
    def strip_regions(cls, v: list[str] | None) -> list[str] | None:
        """Trim surrounding whitespace from region names."""
        if v is None:
            return None
        return [region.strip() for region in v]


class DatasetMetadata(_CamelModel):
    """Snapshot of the loaded dataset.

    Defaults describe an empty cache.
    """

    dates: list[str] = Field(default_factory=list, description="Distinct dates, sorted")
    regions: list[str] = Field(
        default_factory=list, description="Distinct region names, sorted"
    )
    columns: list[str] = Field(default_factory=list, description="CSV header order")
    min_date: str | None = Field(default=None, description="Earliest date")
    max_date: str | None = Field(default=None, description="Latest date")
    total_rows: int = Field(default=0, ge=0, description="Number of rows loaded")
    is_loaded: bool = Field(default=False, description="Whether data is queryable")
    load_time: datetime | None = Field(default=None, description="Load completion time")
    state: CacheState = Field(default=CacheState.EMPTY, description="Cache state")
    source_path: str | None = Field(default=None, description="Loaded CSV path")
    load_duration_ms: float | None = Field(
        default=None, ge=0, description="Time spent loading and indexing"
    )
    duplicate_keys: int = Field(
        default=0,
        ge=0,
        description="Rows that overwrote an existing date+region composite entry",
    )


class QueryResult(BaseModel):
    """Rows returned by the cache along with how they were found."""

    rows: list[Row] = Field(default_factory=list)
    strategy: QueryStrategy
    duration_ms: float = Field(ge=0)

    @property
    def count(self) -> int:
        """Number of rows returned."""
        return len(self.rows)


class QueryResponse(_CamelModel):
    """Payload returned by the housing query endpoint."""

    data: list[Row] = Field(default_factory=list)
    count: int = Field(ge=0)
    query_time: str = Field(description="Query execution time, e.g. '5ms'")
    strategy: QueryStrategy
    query: HousingQuery = Field(description="Echo of the applied filters")
