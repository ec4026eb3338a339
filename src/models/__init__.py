"""Housing data models (domain layer)."""

from .housing import (
    DATE_FIELD,
    ORIGINAL_DATE_FIELD,
    REGION_FIELD,
    CacheState,
    DatasetMetadata,
    HousingQuery,
    QueryResponse,
    QueryResult,
    QueryStrategy,
    Row,
)

__all__ = [
    "DATE_FIELD",
    "ORIGINAL_DATE_FIELD",
    "REGION_FIELD",
    "CacheState",
    "DatasetMetadata",
    "HousingQuery",
    "QueryResponse",
    "QueryResult",
    "QueryStrategy",
    "Row",
]
