"""Custom exception hierarchy for the London housing data service.

Provides structured exception classes for different error scenarios.
"""

from __future__ import annotations


class HousingDataError(Exception):
    """Base exception for all housing data service errors."""

    pass


class ConfigurationError(HousingDataError):
    """Exception raised for configuration-related errors."""

    pass


class DataProviderError(HousingDataError):
    """Base exception for data provider errors."""

    pass


class DataLoadError(DataProviderError):
    """Exception raised when the housing dataset cannot be loaded."""

    pass


class DataParseError(DataLoadError):
    """Exception raised when the housing CSV is structurally invalid."""

    pass


class DataNotLoadedError(DataProviderError):
    """Exception raised when the cache is queried before a successful load."""

    pass


class LoadInProgressError(DataProviderError):
    """Exception raised when a load or reload is already running."""

    pass


class StaticDataError(DataProviderError):
    """Exception raised when a static JSON resource cannot be served."""

    pass


class ServiceError(HousingDataError):
    """Base exception for service layer errors."""

    pass


class InvalidQueryError(ServiceError):
    """Exception raised for request parameters that cannot form a query."""

    pass
