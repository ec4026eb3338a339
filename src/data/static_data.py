"""Pass-through access to the static borough, statistics and map JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from utils.exceptions import StaticDataError

logger = logging.getLogger(__name__)


class StaticDataProvider:
    """Serves static JSON resources without interpreting their contents.

    Files are read on every call so edits on disk are picked up without a
    restart.
    """

    def __init__(
        self,
        boroughs_path: str | Path,
        stats_path: str | Path,
        map_path: str | Path,
    ):
        self._paths: dict[str, Path] = {
            "boroughs": Path(boroughs_path),
            "stats": Path(stats_path),
            "map": Path(map_path),
        }

    @property
    def resources(self) -> list[str]:
        """Names of the available resources."""
        return list(self._paths)

    def get_boroughs(self) -> Any:
        """Borough information and descriptions."""
        return self.get("boroughs")

    def get_stats(self) -> Any:
        """Statistical data and rankings."""
        return self.get("stats")

    def get_map(self) -> Any:
        """London borough boundaries (TopoJSON)."""
        return self.get("map")

    def get(self, resource: str) -> Any:
        """Read and parse a named resource.

        Raises:
            StaticDataError: If the resource is unknown, missing or not valid JSON.
        """
        path = self._paths.get(resource)
        if path is None:
            raise StaticDataError(f"Unknown static resource: {resource}")

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Error reading {path.name}: {e}")
            raise StaticDataError(f"Failed to load {resource} data") from e

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing {path.name}: {e}")
            raise StaticDataError(f"Invalid JSON format in {resource} data") from e
