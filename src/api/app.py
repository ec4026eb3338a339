"""FastAPI application factory for the housing data API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import router
from utils.config import Config, get_config
from utils.di_container import DIContainer, ServiceKeys, configure_container
from utils.exceptions import (
    DataLoadError,
    DataNotLoadedError,
    HousingDataError,
    InvalidQueryError,
    LoadInProgressError,
)
from utils.metrics import MetricCategories, get_metrics

logger = logging.getLogger(__name__)

# Most specific first; the first matching entry wins
_ERROR_STATUS: list[tuple[type[HousingDataError], int, str]] = [
    (DataNotLoadedError, status.HTTP_503_SERVICE_UNAVAILABLE, "Service Unavailable"),
    (LoadInProgressError, status.HTTP_409_CONFLICT, "Conflict"),
    (InvalidQueryError, status.HTTP_400_BAD_REQUEST, "Bad Request"),
    (HousingDataError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"),
]


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": error, "message": message}
    )


async def housing_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Translate service exceptions into JSON error responses."""
    for exc_type, status_code, error in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            break
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path}: {exc}")
    return _error_response(status_code, error, str(exc))


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for HTTP errors, with a descriptive 404 message."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return _error_response(
            exc.status_code, "Not Found", f"Cannot {request.method} {request.url.path}"
        )
    return _error_response(exc.status_code, str(exc.detail), str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", str(exc)
    )


def create_app(
    container: DIContainer | None = None,
    config: Config | None = None,
    *,
    load_on_startup: bool | None = None,
) -> FastAPI:
    """Build the API application.

    Args:
        container: DI container providing the housing service. A default
            container is configured when omitted.
        config: Configuration; defaults to the global config.
        load_on_startup: Load the housing CSV during startup. Defaults to
            config.data.load_on_startup.
    """
    config = config or get_config()
    container = container or configure_container(config=config)
    if load_on_startup is None:
        load_on_startup = config.data.load_on_startup

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {config.app.name} {config.app.version}")
        if load_on_startup:
            service = container.resolve(ServiceKeys.HOUSING_SERVICE)
            try:
                operation = f"{MetricCategories.STARTUP}.load_housing_data"
                with get_metrics().time_operation(operation):
                    await service.cache.load()
            except DataLoadError as e:
                # Keep serving; housing endpoints answer 503 until a reload succeeds
                logger.error(f"Initial housing data load failed: {e}")
        yield
        logger.info("Shutting down")
        get_metrics().report(logger)

    app = FastAPI(
        title="London Housing Market Data API",
        description=(
            "In-memory indexed London housing price data with date range, "
            "region and field filters, plus borough, statistics and map data."
        ),
        version=config.app.version,
        lifespan=lifespan,
    )
    app.state.container = container
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        with get_metrics().time_operation(f"{MetricCategories.API}.request") as timing:
            response = await call_next(request)
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({timing.duration_ms:.1f}ms)"
        )
        return response

    app.add_exception_handler(HousingDataError, housing_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router, prefix=config.server.api_prefix)
    return app
