"""Housing data API endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Path, Query, Request, status

from models import DatasetMetadata, QueryResponse, Row
from services import HousingService
from utils.di_container import ServiceKeys
from utils.metrics import MetricCategories, timed

logger = logging.getLogger(__name__)

router = APIRouter()


def get_housing_service(request: Request) -> HousingService:
    """Resolve the housing service from the app's DI container."""
    return request.app.state.container.resolve(ServiceKeys.HOUSING_SERVICE)


ENDPOINTS: list[dict[str, str]] = [
    {
        "path": "/housing/query",
        "method": "GET",
        "description": "Query housing prices by date range, regions and fields",
    },
    {
        "path": "/housing/metadata",
        "method": "GET",
        "description": "Available dates, regions and columns of the loaded dataset",
    },
    {
        "path": "/housing/regions",
        "method": "GET",
        "description": "Region names in the loaded dataset",
    },
    {
        "path": "/housing/dates",
        "method": "GET",
        "description": "Dates in the loaded dataset",
    },
    {
        "path": "/housing/borough/{region}",
        "method": "GET",
        "description": "Full price history of one borough",
    },
    {
        "path": "/housing/snapshot/{date}",
        "method": "GET",
        "description": "Every borough's prices at one date",
    },
    {
        "path": "/housing/reload",
        "method": "POST",
        "description": "Reload the housing CSV from disk",
    },
    {
        "path": "/map/geojson",
        "method": "GET",
        "description": "London borough boundaries (TopoJSON)",
    },
    {
        "path": "/boroughs",
        "method": "GET",
        "description": "Borough information and descriptions",
    },
    {
        "path": "/stats",
        "method": "GET",
        "description": "Statistical data and rankings",
    },
]


@router.get("/", tags=["System"], summary="List API endpoints")
def list_endpoints(request: Request) -> dict[str, Any]:
    """Return the API name, version and its endpoints."""
    config = request.app.state.config
    prefix = config.server.api_prefix
    return {
        "message": "London Housing Data API",
        "version": config.app.version,
        "endpoints": [
            {**endpoint, "path": f"{prefix}{endpoint['path']}"}
            for endpoint in ENDPOINTS
        ],
    }


@router.get("/health", tags=["System"], summary="Service health")
def health(service: HousingService = Depends(get_housing_service)) -> dict[str, Any]:
    """Report whether the housing data is loaded."""
    return {
        "status": "ok" if service.is_loaded else "loading",
        "cache": service.cache.get_cache_stats(),
    }


@router.get(
    "/housing/query",
    response_model=QueryResponse,
    tags=["Housing Data"],
    summary="Query housing price data",
)
@timed(f"{MetricCategories.API}.housing_query")
def query_housing(
    date_from: str | None = Query(
        None, alias="dateFrom", description="Start date (YYYY-MM-DD or DD/MM/YY)"
    ),
    date_to: str | None = Query(
        None, alias="dateTo", description="End date (YYYY-MM-DD or DD/MM/YY)"
    ),
    regions: str | None = Query(None, description="Comma-separated region names"),
    fields: str | None = Query(None, description="Comma-separated field names"),
    service: HousingService = Depends(get_housing_service),
) -> QueryResponse:
    """Filter housing rows by inclusive date range, regions and returned fields."""
    return service.query(date_from, date_to, regions, fields)


@router.get(
    "/housing/metadata",
    response_model=DatasetMetadata,
    tags=["Housing Data"],
    summary="Dataset metadata",
)
def housing_metadata(
    service: HousingService = Depends(get_housing_service),
) -> DatasetMetadata:
    """Dates, regions, columns and load status of the dataset."""
    return service.get_metadata()


@router.get("/housing/regions", tags=["Housing Data"], summary="Region names")
def housing_regions(
    service: HousingService = Depends(get_housing_service),
) -> dict[str, Any]:
    regions = service.get_regions()
    return {"regions": regions, "count": len(regions)}


@router.get("/housing/dates", tags=["Housing Data"], summary="Available dates")
def housing_dates(
    service: HousingService = Depends(get_housing_service),
) -> dict[str, Any]:
    dates = service.get_dates()
    return {"dates": dates, "count": len(dates)}


@router.get(
    "/housing/borough/{region}",
    tags=["Housing Data"],
    summary="Price history of one borough",
)
def borough_timeseries(
    region: str = Path(..., description="Region name, e.g. Camden"),
    fields: str | None = Query(None, description="Comma-separated field names"),
    service: HousingService = Depends(get_housing_service),
) -> dict[str, Any]:
    rows: list[Row] = service.get_borough_timeseries(region, fields)
    return {"region": region, "data": rows, "count": len(rows)}


@router.get(
    "/housing/snapshot/{date}",
    tags=["Housing Data"],
    summary="All boroughs at one date",
)
def housing_snapshot(
    date: str = Path(..., description="Date (YYYY-MM-DD)"),
    fields: str | None = Query(None, description="Comma-separated field names"),
    service: HousingService = Depends(get_housing_service),
) -> dict[str, Any]:
    rows = service.get_snapshot(date, fields)
    return {"date": date, "data": rows, "count": len(rows)}


@router.post(
    "/housing/reload",
    response_model=DatasetMetadata,
    status_code=status.HTTP_200_OK,
    tags=["System"],
    summary="Reload housing data",
)
async def reload_housing(
    service: HousingService = Depends(get_housing_service),
) -> DatasetMetadata:
    """Discard the cached dataset and load the CSV again.

    Concurrent reloads are rejected with 409.
    """
    logger.info("Reload requested via API")
    return await service.reload()


@router.get("/map/geojson", tags=["Geographic Data"], summary="Borough boundaries")
def map_geojson(service: HousingService = Depends(get_housing_service)) -> Any:
    return service.get_static("map")


@router.get("/boroughs", tags=["Static Data"], summary="Borough information")
def boroughs(service: HousingService = Depends(get_housing_service)) -> Any:
    return service.get_static("boroughs")


@router.get("/stats", tags=["Static Data"], summary="Statistics and rankings")
def stats(service: HousingService = Depends(get_housing_service)) -> Any:
    return service.get_static("stats")
