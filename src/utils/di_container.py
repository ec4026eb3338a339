"""Dependency injection container for the housing data service.

The housing cache is an explicit object built once at startup and handed to
the service and HTTP layers, rather than a hidden module-level instance.
Tests build their own containers around temporary files.

Usage:
    from utils.di_container import ServiceKeys, configure_container

    container = configure_container()
    service = container.resolve(ServiceKeys.HOUSING_SERVICE)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from utils.config import Config

logger = logging.getLogger(__name__)

T = TypeVar("T")

Factory = Callable[["DIContainer"], Any]


class DIContainerError(Exception):
    """Raised when a requested service has no instance or factory."""


class DIContainer:
    """Registry of service instances and lazy factories.

    A factory runs on first resolve and its result replaces it, so every
    key resolves to one shared instance. All access is under a reentrant
    lock so factories may resolve their own dependencies.
    """

    def __init__(self) -> None:
        self._services: dict[str, Any] = {}
        self._factories: dict[str, Factory] = {}
        self._lock = threading.RLock()

    def register(self, key: str, instance: Any) -> None:
        """Register a ready-made instance, replacing any previous one."""
        with self._lock:
            self._services[key] = instance
        logger.debug("Registered service: %s", key)

    def register_factory(self, key: str, factory: Factory) -> None:
        """Register a factory called with this container on first resolve.

        Any instance already built for key is dropped.
        """
        with self._lock:
            self._services.pop(key, None)
            self._factories[key] = factory
        logger.debug("Registered factory: %s", key)

    def resolve(self, key: str) -> Any:
        """Return the instance for key, building it from its factory if needed.

        Raises:
            DIContainerError: If nothing is registered under key.
        """
        with self._lock:
            if key in self._services:
                return self._services[key]
            factory = self._factories.get(key)
            if factory is None:
                raise DIContainerError(
                    f"Service '{key}' not registered. "
                    f"Available: {sorted(self.get_registered_keys())}"
                )
            logger.debug("Creating service from factory: %s", key)
            instance = self._services[key] = factory(self)
            return instance

    def is_registered(self, key: str) -> bool:
        with self._lock:
            return key in self._services or key in self._factories

    def create(self, cls: type[T], **key_mappings: str) -> T:
        """Instantiate cls with keyword arguments resolved from the container.

        Example:
            service = container.create(
                HousingService,
                cache=ServiceKeys.HOUSING_CACHE,
                static_data=ServiceKeys.STATIC_DATA,
            )
        """
        kwargs = {name: self.resolve(key) for name, key in key_mappings.items()}
        return cls(**kwargs)

    def clear(self) -> None:
        with self._lock:
            self._services.clear()
            self._factories.clear()
        logger.debug("Container cleared")

    def get_registered_keys(self) -> list[str]:
        with self._lock:
            return list(self._services.keys() | self._factories.keys())


class ServiceKeys:
    """Container keys for the housing data services."""

    CONFIG = "config"
    METRICS = "metrics"

    HOUSING_CACHE = "housing_cache"
    STATIC_DATA = "static_data"

    HOUSING_SERVICE = "housing_service"


_container_instance: DIContainer | None = None
_container_lock = threading.Lock()


def get_container() -> DIContainer:
    """Get the process-wide container, creating it on first use."""
    global _container_instance  # noqa: PLW0603
    with _container_lock:
        if _container_instance is None:
            _container_instance = DIContainer()
        return _container_instance


def reset_container() -> None:
    """Drop the process-wide container. Primarily for testing."""
    global _container_instance  # noqa: PLW0603
    with _container_lock:
        if _container_instance is not None:
            _container_instance.clear()
        _container_instance = None


def _housing_cache(c: DIContainer) -> Any:
    from data import HousingDataCache

    data = c.resolve(ServiceKeys.CONFIG).data
    return HousingDataCache(
        default_source=data.housing_csv_path,
        load_timeout=data.load_timeout,
        progress_interval=data.progress_interval,
    )


def _static_data(c: DIContainer) -> Any:
    from data import StaticDataProvider

    data = c.resolve(ServiceKeys.CONFIG).data
    return StaticDataProvider(
        boroughs_path=data.boroughs_json_path,
        stats_path=data.stats_json_path,
        map_path=data.map_json_path,
    )


def _housing_service(c: DIContainer) -> Any:
    from services import HousingService

    return c.create(
        HousingService,
        cache=ServiceKeys.HOUSING_CACHE,
        static_data=ServiceKeys.STATIC_DATA,
    )


def configure_container(
    container: DIContainer | None = None, config: Config | None = None
) -> DIContainer:
    """Register config, metrics and lazy factories for the housing services.

    Args:
        container: Container to configure; the process-wide one if None.
        config: Settings the services are built from; the global config if None.
    """
    from utils.config import get_config
    from utils.metrics import get_metrics

    container = container or get_container()
    container.register(ServiceKeys.CONFIG, config or get_config())
    container.register(ServiceKeys.METRICS, get_metrics())
    container.register_factory(ServiceKeys.HOUSING_CACHE, _housing_cache)
    container.register_factory(ServiceKeys.STATIC_DATA, _static_data)
    container.register_factory(ServiceKeys.HOUSING_SERVICE, _housing_service)

    logger.info("DI container configured with housing data services")
    return container
