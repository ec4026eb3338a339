"""Pytest configuration and shared fixtures."""

import csv
import json
import sys
from pathlib import Path

import pytest

# Add src to Python path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from data import HousingDataCache, StaticDataProvider  # noqa: E402
from utils.metrics import reset_metrics  # noqa: E402

HEADER = ["Date", "RegionName", "AreaCode", "AveragePrice"]

# 8 rows: Camden x4 (one with a malformed date), Westminster x3, City of London x1
SAMPLE_ROWS = [
    ["01/01/20", "Camden", "E09000007", "500000"],
    ["01/01/20", "Westminster", "E09000033", "900000"],
    ["01/02/20", "Camden", "E09000007", "505000"],
    ["01/02/20", "Westminster", "E09000033", "905000"],
    ["01/03/20", "Camden", "E09000007", "510000"],
    ["not-a-date", "Camden", "E09000007", "1"],
    ["01/03/20", "  Westminster ", "E09000033", "910000"],
    ["01/01/95", "City of London", "E09000001", "91449"],
]


def write_csv(path: Path, rows: list[list[str]], header: list[str] | None = None) -> Path:
    """Write a housing CSV with the given rows."""
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header or HEADER)
        writer.writerows(rows)
    return path


@pytest.fixture(autouse=True)
def _fresh_metrics():
    """Give each test its own metrics collector."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def housing_csv(tmp_path) -> Path:
    """Sample housing CSV on disk."""
    return write_csv(tmp_path / "london_house_data.csv", SAMPLE_ROWS)


@pytest.fixture
def static_files(tmp_path) -> dict[str, Path]:
    """Borough, stats and map JSON files on disk."""
    files = {
        "boroughs": tmp_path / "boroughs-data.json",
        "stats": tmp_path / "stats-data.json",
        "map": tmp_path / "london_topo.json",
    }
    files["boroughs"].write_text(
        json.dumps({"Camden": {"description": "North London borough"}}),
        encoding="utf-8",
    )
    files["stats"].write_text(
        json.dumps({"rankings": [{"region": "Westminster", "rank": 1}]}),
        encoding="utf-8",
    )
    files["map"].write_text(
        json.dumps({"type": "Topology", "objects": {}}), encoding="utf-8"
    )
    return files


@pytest.fixture
def static_provider(static_files) -> StaticDataProvider:
    return StaticDataProvider(
        boroughs_path=static_files["boroughs"],
        stats_path=static_files["stats"],
        map_path=static_files["map"],
    )


@pytest.fixture
def cache(housing_csv) -> HousingDataCache:
    """Unloaded cache pointed at the sample CSV."""
    return HousingDataCache(default_source=housing_csv, load_timeout=30)
