"""Tests for the DI container implementation."""

import pytest

from data import HousingDataCache, StaticDataProvider
from services import HousingService
from utils.config import Config
from utils.di_container import (
    DIContainer,
    DIContainerError,
    ServiceKeys,
    configure_container,
    get_container,
    reset_container,
)


class TestDIContainer:
    """Tests for DIContainer class."""

    def setup_method(self):
        """Reset container before each test."""
        reset_container()

    def test_register_and_resolve(self):
        container = DIContainer()
        service = object()
        container.register("test_service", service)

        assert container.resolve("test_service") is service

    def test_register_factory(self):
        """Test factory registration and lazy instantiation."""
        container = DIContainer()
        call_count = 0

        def factory(c):
            nonlocal call_count
            call_count += 1
            return object()

        container.register_factory("lazy_service", factory)
        assert call_count == 0

        first = container.resolve("lazy_service")
        second = container.resolve("lazy_service")

        assert call_count == 1
        assert first is second

    def test_resolve_not_registered_raises(self):
        container = DIContainer()

        with pytest.raises(DIContainerError) as exc_info:
            container.resolve("nonexistent")

        assert "nonexistent" in str(exc_info.value)

    def test_is_registered(self):
        """Test is_registered checks both instances and factories."""
        container = DIContainer()

        assert not container.is_registered("test")

        container.register("test", object())
        container.register_factory("factory_test", lambda c: object())

        assert container.is_registered("test")
        assert container.is_registered("factory_test")

    def test_create_with_key_mappings(self):
        container = DIContainer()
        container.register("dep_a", "value_a")
        container.register("dep_b", 42)

        class Service:
            def __init__(self, param_a, param_b):
                self.a = param_a
                self.b = param_b

        service = container.create(Service, param_a="dep_a", param_b="dep_b")

        assert service.a == "value_a"
        assert service.b == 42

    def test_clear_removes_all(self):
        container = DIContainer()
        container.register("service", object())
        container.register_factory("factory", lambda c: object())

        container.clear()

        assert container.get_registered_keys() == []

    def test_overwrite_service(self):
        container = DIContainer()
        replacement = object()

        container.register("test", object())
        container.register("test", replacement)

        assert container.resolve("test") is replacement

    def test_register_factory_replaces_built_instance(self):
        container = DIContainer()
        container.register_factory("test", lambda c: "old")
        assert container.resolve("test") == "old"

        container.register_factory("test", lambda c: "new")

        assert container.resolve("test") == "new"


class TestGlobalContainer:
    """Tests for global container singleton."""

    def setup_method(self):
        reset_container()

    def teardown_method(self):
        reset_container()

    def test_get_container_returns_singleton(self):
        assert get_container() is get_container()

    def test_reset_container_clears_singleton(self):
        first = get_container()
        first.register("marker", object())

        reset_container()
        second = get_container()

        assert first is not second
        assert not second.is_registered("marker")


class TestConfigureContainer:
    """The configured container wires the housing services together."""

    def test_registers_all_service_keys(self):
        container = configure_container(DIContainer())

        for key in (
            ServiceKeys.CONFIG,
            ServiceKeys.METRICS,
            ServiceKeys.HOUSING_CACHE,
            ServiceKeys.STATIC_DATA,
            ServiceKeys.HOUSING_SERVICE,
        ):
            assert container.is_registered(key)

    def test_service_shares_the_cache(self):
        container = configure_container(DIContainer())

        service = container.resolve(ServiceKeys.HOUSING_SERVICE)
        cache = container.resolve(ServiceKeys.HOUSING_CACHE)

        assert isinstance(service, HousingService)
        assert isinstance(cache, HousingDataCache)
        assert service.cache is cache
        assert isinstance(container.resolve(ServiceKeys.STATIC_DATA), StaticDataProvider)

    def test_factories_use_registered_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATA_HOUSING_CSV", str(tmp_path / "prices.csv"))
        monkeypatch.setenv("DATA_PROGRESS_INTERVAL", "50")
        container = configure_container(DIContainer())
        container.register(ServiceKeys.CONFIG, Config())

        cache = container.resolve(ServiceKeys.HOUSING_CACHE)

        assert cache._default_source == tmp_path / "prices.csv"
        assert cache._progress_interval == 50

    def test_given_config_is_registered(self, tmp_path, monkeypatch):
        monkeypatch.setenv("APP_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("DATA_LOAD_TIMEOUT", "7")
        custom = Config()

        container = configure_container(DIContainer(), config=custom)

        assert container.resolve(ServiceKeys.CONFIG) is custom
        cache = container.resolve(ServiceKeys.HOUSING_CACHE)
        static_data = container.resolve(ServiceKeys.STATIC_DATA)
        assert cache._default_source == tmp_path / "london_house_data.csv"
        assert cache._load_timeout == 7.0
        assert static_data._paths["map"] == tmp_path / "london_topo.json"


class TestServiceKeys:
    def test_service_keys_are_unique_strings(self):
        keys = [
            ServiceKeys.CONFIG,
            ServiceKeys.METRICS,
            ServiceKeys.HOUSING_CACHE,
            ServiceKeys.STATIC_DATA,
            ServiceKeys.HOUSING_SERVICE,
        ]

        assert all(isinstance(key, str) and key for key in keys)
        assert len(set(keys)) == len(keys)
