"""Environment-driven settings for the London housing data service.

Settings come from the process environment and an optional `.env` file, in
three groups with their own prefixes:

    APP_     application name, logging and data directory
    DATA_    dataset file names and load behaviour
    SERVER_  HTTP bind address, route prefix and CORS

File names under DATA_ are resolved against the owning Config's APP_DATA_DIR
unless absolute.

Usage:
    from utils.config import get_config

    config = get_config()
    cache = HousingDataCache(
        default_source=config.data.housing_csv_path,
        load_timeout=config.data.load_timeout,
    )
"""

from __future__ import annotations

import threading
import tomllib
from logging import getLogger
from pathlib import Path
from typing import Literal

from pydantic import Field, PrivateAttr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.exceptions import ConfigurationError

logger = getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_NAME = "london-housing-data"

# Machine-specific paths left out of .env.example
_DERIVED_FIELDS = frozenset({"project_root", "data_dir"})


def _read_project_metadata() -> dict[str, str]:
    """Name and version from pyproject.toml, or placeholders when unreadable."""
    metadata = {"name": _DEFAULT_NAME, "version": "?.?.?"}
    try:
        with open(_PROJECT_ROOT / "pyproject.toml", "rb") as f:
            project = tomllib.load(f).get("project", {})
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Could not read pyproject.toml: {e}")
        return metadata
    for key in metadata:
        if isinstance(project.get(key), str):
            metadata[key] = project[key]
    return metadata


_PROJECT_METADATA = _read_project_metadata()


class AppConfig(BaseSettings):
    """Application-wide configuration."""

    name: str = Field(
        default_factory=lambda: _PROJECT_METADATA["name"],
        description="Application name (from pyproject.toml)",
    )
    version: str = Field(
        default_factory=lambda: _PROJECT_METADATA["version"],
        description="Application version (from pyproject.toml)",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_to_file: bool = Field(
        default=False,
        description="Write rotating log files under <data_dir>/logs",
    )
    log_retention_count: int = Field(
        default=7,
        description="Number of log files to keep",
        ge=1,
    )

    # Project paths
    project_root: Path = Field(
        default_factory=lambda: _PROJECT_ROOT,
        description="Project root directory",
    )
    data_dir: Path = Field(
        default_factory=lambda: _PROJECT_ROOT / "data",
        description="Directory holding the housing CSV and static JSON files",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


class DataConfig(BaseSettings):
    """Dataset locations and loading behaviour."""

    housing_csv: str = Field(
        default="london_house_data.csv",
        description="Housing price CSV (relative to data_dir)",
    )
    boroughs_json: str = Field(
        default="boroughs-data.json",
        description="Borough information JSON (relative to data_dir)",
    )
    stats_json: str = Field(
        default="stats-data.json",
        description="Statistics and rankings JSON (relative to data_dir)",
    )
    map_json: str = Field(
        default="london_topo.json",
        description="London borough boundaries TopoJSON (relative to data_dir)",
    )
    load_timeout: float = Field(
        default=120.0,
        description="Seconds allowed for a full CSV load before it is aborted",
        gt=0,
    )
    progress_interval: int = Field(
        default=1000,
        description="Report load progress every N rows",
        ge=1,
    )
    load_on_startup: bool = Field(
        default=True,
        description="Load the housing CSV when the API starts",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    _data_dir: Path | None = PrivateAttr(default=None)

    def bind_data_dir(self, data_dir: Path) -> None:
        """Resolve relative file names against data_dir from now on."""
        self._data_dir = data_dir

    def _resolve(self, value: str) -> Path:
        path = Path(value)
        if path.is_absolute():
            return path
        base = self._data_dir if self._data_dir is not None else AppConfig().data_dir
        return base / path

    @property
    def housing_csv_path(self) -> Path:
        """Resolved housing CSV path."""
        return self._resolve(self.housing_csv)

    @property
    def boroughs_json_path(self) -> Path:
        """Resolved borough JSON path."""
        return self._resolve(self.boroughs_json)

    @property
    def stats_json_path(self) -> Path:
        """Resolved statistics JSON path."""
        return self._resolve(self.stats_json)

    @property
    def map_json_path(self) -> Path:
        """Resolved TopoJSON path."""
        return self._resolve(self.map_json)


class ServerConfig(BaseSettings):
    """HTTP server configuration."""

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=3000, description="Bind port", ge=1, le=65535)
    api_prefix: str = Field(default="/api/data", description="API route prefix")
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )

    model_config = SettingsConfigDict(
        env_prefix="SERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, v: str) -> str:
        """Ensure the prefix starts with a slash and has no trailing slash."""
        if not v.startswith("/"):
            raise ValueError(f"api_prefix must start with '/', got: {v}")
        return v.rstrip("/")


class Config:
    """Main configuration container with auto-initialization."""

    def __init__(self) -> None:
        """Initialize configuration from environment and defaults.

        Raises:
            ConfigurationError: If any setting fails validation.
        """
        try:
            self.app = AppConfig()
            self.data = DataConfig()
            self.server = ServerConfig()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        self.data.bind_data_dir(self.app.data_dir)

    def update_env_example(self) -> None:
        """Write a commented .env.example listing every setting and its default."""
        target = self.app.project_root / ".env.example"
        lines = [
            "# London Housing Data environment settings",
            "# Copy to .env and uncomment the values to change",
            "",
        ]
        for group in (self.app, self.data, self.server):
            prefix = group.model_config["env_prefix"]
            lines.append(f"# [{type(group).__name__}]")
            for name, field in type(group).model_fields.items():
                if name in _DERIVED_FIELDS:
                    continue
                default = field.get_default(call_default_factory=True)
                value = "" if default is None else default
                lines.append(f"# {field.description or name}")
                lines.append(f"# {prefix}{name.upper()}={value}")
            lines.append("")

        try:
            target.write_text("\n".join(lines), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write {target}: {e}")

    def reload(self) -> None:
        """Reload configuration from environment variables."""
        self.__init__()

    def __repr__(self) -> str:
        """String representation of config."""
        return (
            f"Config(\n  app={self.app},\n  data={self.data},\n"
            f"  server={self.server}\n)"
        )


# Global configuration instance (singleton)
_config_instance: Config | None = None
_config_lock = threading.Lock()


def get_config(config: Config | None = None) -> Config:
    """Get the global configuration instance (lazy initialization).

    Args:
        config: Optional config instance to use instead of singleton.
                If provided, replaces the singleton.
                Useful for dependency injection.

    Returns:
        Global Config instance
    """
    global _config_instance  # noqa: PLW0603

    if config is not None:
        with _config_lock:
            _config_instance = config
        return _config_instance

    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = Config()

    # Type checker needs assurance - will always be set at this point
    assert _config_instance is not None
    return _config_instance


def reload_config() -> Config:
    """Reload configuration from environment.

    Returns:
        Reloaded Config instance
    """
    global _config_instance  # noqa: PLW0603
    with _config_lock:
        _config_instance = Config()
    return _config_instance


def reset_config() -> None:
    """Reset the global config instance.

    Primarily for testing.
    """
    global _config_instance  # noqa: PLW0603
    with _config_lock:
        _config_instance = None

