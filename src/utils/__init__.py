"""Utility functions and classes for the London housing data service."""

from .config import get_config, reload_config, reset_config
from .dates import (
    compare_dates,
    is_date_in_range,
    normalize_date,
    parse_source_date,
    to_source_date,
)
from .di_container import (
    DIContainer,
    DIContainerError,
    ServiceKeys,
    configure_container,
    get_container,
    reset_container,
)
from .exceptions import (
    ConfigurationError,
    DataLoadError,
    DataNotLoadedError,
    DataParseError,
    DataProviderError,
    HousingDataError,
    InvalidQueryError,
    LoadInProgressError,
    ServiceError,
    StaticDataError,
)
from .logging_setup import setup_logging
from .metrics import (
    MetricCategories,
    MetricsCollector,
    get_metrics,
    reset_metrics,
    timed,
)
from .progress_callback import ProgressCallback, ProgressPhase, ProgressUpdate

__all__ = [
    "ConfigurationError",
    "DIContainer",
    "DIContainerError",
    "DataLoadError",
    "DataNotLoadedError",
    "DataParseError",
    "DataProviderError",
    "HousingDataError",
    "InvalidQueryError",
    "LoadInProgressError",
    "MetricCategories",
    "MetricsCollector",
    "ProgressCallback",
    "ProgressPhase",
    "ProgressUpdate",
    "ServiceError",
    "ServiceKeys",
    "StaticDataError",
    "compare_dates",
    "configure_container",
    "get_config",
    "get_container",
    "get_metrics",
    "is_date_in_range",
    "normalize_date",
    "parse_source_date",
    "reload_config",
    "reset_config",
    "reset_container",
    "reset_metrics",
    "setup_logging",
    "timed",
    "to_source_date",
]
