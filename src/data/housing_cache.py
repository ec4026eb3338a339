"""In-memory housing price cache with indexed filter queries."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from data.parsers import HousingCSVParser
from models import (
    DATE_FIELD,
    ORIGINAL_DATE_FIELD,
    REGION_FIELD,
    CacheState,
    DatasetMetadata,
    HousingQuery,
    QueryResult,
    QueryStrategy,
    Row,
)
from utils.dates import is_date_in_range, normalize_date, parse_source_date
from utils.exceptions import (
    DataLoadError,
    DataNotLoadedError,
    LoadInProgressError,
)
from utils.metrics import MetricCategories, get_metrics
from utils.progress_callback import ProgressCallback, ProgressPhase, ProgressUpdate

logger = logging.getLogger(__name__)

LOAD_METRIC = f"{MetricCategories.LOAD}.housing_csv"
QUERY_METRIC = f"{MetricCategories.QUERY}.housing"

DEFAULT_PROGRESS_INTERVAL = 1000


def composite_key(date: str, region: str) -> str:
    """Key of the date+region composite index."""
    return f"{date}_{region}"


@dataclass(frozen=True)
class _Generation:
    """One complete load: row store, indexes and metadata.

    Never mutated after construction. Queries hold a reference to a single
    generation, so a reload cannot change data underneath them.
    """

    rows: list[Row]
    by_date: dict[str, list[int]]
    by_region: dict[str, list[int]]
    by_date_region: dict[str, int]
    metadata: DatasetMetadata


class _GenerationBuilder:
    """Accumulates rows and indexes while the CSV streams in."""

    def __init__(self) -> None:
        self.rows: list[Row] = []
        self.by_date: dict[str, list[int]] = defaultdict(list)
        self.by_region: dict[str, list[int]] = defaultdict(list)
        self.by_date_region: dict[str, int] = {}
        self.duplicate_keys = 0

    def add_row(self, raw: dict[str, str]) -> None:
        original_date = raw.get(DATE_FIELD) or ""
        date = parse_source_date(original_date)

        row: Row = dict(raw)
        row[DATE_FIELD] = date
        row[ORIGINAL_DATE_FIELD] = original_date

        row_index = len(self.rows)
        self.rows.append(row)

        # Malformed dates keep the row but leave it out of the date index
        region = (raw.get(REGION_FIELD) or "").strip()
        if date:
            self.by_date[date].append(row_index)
        if region:
            self.by_region[region].append(row_index)
        if date and region:
            key = composite_key(date, region)
            if key in self.by_date_region:
                self.duplicate_keys += 1
            self.by_date_region[key] = row_index

    def build(self, columns: list[str], source_path: Path) -> _Generation:
        dates = sorted(self.by_date)
        metadata = DatasetMetadata(
            dates=dates,
            regions=sorted(self.by_region),
            columns=list(columns),
            min_date=dates[0] if dates else None,
            max_date=dates[-1] if dates else None,
            total_rows=len(self.rows),
            source_path=str(source_path),
            duplicate_keys=self.duplicate_keys,
        )
        return _Generation(
            rows=self.rows,
            by_date=dict(self.by_date),
            by_region=dict(self.by_region),
            by_date_region=self.by_date_region,
            metadata=metadata,
        )


class HousingDataCache:
    """Cache of the housing price CSV with date, region and composite indexes.

    This cache provides:
    - Row store: every CSV row in file order, addressed by row index
    - Date index: canonical date -> row indexes
    - Region index: region name -> row indexes
    - Composite index: "date_region" -> row index, for O(1) point lookups

    Lifecycle is EMPTY -> LOADING -> LOADED. ``reload`` drops the current
    generation first, so queries issued while it runs raise
    DataNotLoadedError rather than seeing stale or partial data. Loads are
    single-flight: a second load or reload while one is running raises
    LoadInProgressError.
    """

    def __init__(
        self,
        default_source: str | Path | None = None,
        *,
        load_timeout: float | None = None,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
        parser_factory: Callable[[Path], HousingCSVParser] = HousingCSVParser,
    ):
        """Initialize an empty cache.

        Args:
            default_source: CSV path used when load/reload get no path.
            load_timeout: Seconds allowed for one load; None waits forever.
            progress_interval: Rows between PROCESSING progress updates.
            parser_factory: Builds the row source for a path.
        """
        self._default_source = Path(default_source) if default_source else None
        self._load_timeout = load_timeout
        self._progress_interval = max(1, progress_interval)
        self._parser_factory = parser_factory

        self._generation: _Generation | None = None
        self._load_lock = asyncio.Lock()
        self._last_load_time: datetime | None = None

    @property
    def state(self) -> CacheState:
        """Current lifecycle state."""
        if self._load_lock.locked():
            return CacheState.LOADING
        if self._generation is not None:
            return CacheState.LOADED
        return CacheState.EMPTY

    @property
    def is_loaded(self) -> bool:
        """Check if a generation is available for queries."""
        return self._generation is not None

    async def load(
        self,
        source_path: str | Path | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> DatasetMetadata:
        """Load the CSV, build all indexes and publish them as one generation.

        A previously loaded generation keeps serving queries until the new
        one replaces it. If the load fails the cache reverts to EMPTY.

        Args:
            source_path: CSV to load; defaults to the configured source.
            progress_callback: Receives progress updates from the loader thread.

        Returns:
            Metadata of the new generation.

        Raises:
            LoadInProgressError: If another load or reload is running.
            DataLoadError: If the file cannot be read or parsed, or the
                load exceeds the timeout.
        """
        self._ensure_not_loading()
        async with self._load_lock:
            return await self._load_locked(source_path, progress_callback)

    async def reload(
        self,
        source_path: str | Path | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> DatasetMetadata:
        """Discard the current generation and load the source again.

        Raises:
            LoadInProgressError: If another load or reload is running.
            DataLoadError: If the new load fails; the cache stays EMPTY.
        """
        self._ensure_not_loading()
        async with self._load_lock:
            logger.info("Reloading housing data...")
            self.clear_cache()
            return await self._load_locked(source_path, progress_callback)

    def query(self, options: HousingQuery | None = None) -> list[Row]:
        """Return the rows matching the given filters.

        Raises:
            DataNotLoadedError: If no generation has been loaded.
        """
        return self.execute(options).rows

    def execute(self, options: HousingQuery | None = None) -> QueryResult:
        """Run a query and report the index strategy and time it took.

        Exactly one strategy is used, chosen in this order:
        exact date with regions, date range, regions only, everything.

        Raises:
            DataNotLoadedError: If no generation has been loaded.
        """
        generation = self._generation
        if generation is None:
            raise DataNotLoadedError("Housing data is not loaded")

        options = options or HousingQuery()

        with get_metrics().time_operation(QUERY_METRIC) as timing:
            strategy, row_indexes = self._select(generation, options)
            rows = [generation.rows[idx] for idx in row_indexes]
            if options.fields:
                rows = [_project(row, options.fields) for row in rows]
            else:
                rows = [dict(row) for row in rows]

        logger.debug(
            "Query %s matched %d rows in %.2fms",
            strategy.value,
            len(rows),
            timing.duration_ms,
        )
        return QueryResult.model_construct(
            rows=rows, strategy=strategy, duration_ms=timing.duration_ms
        )

    def get_metadata(self) -> DatasetMetadata:
        """Get a snapshot of the loaded dataset's metadata.

        Always succeeds; an unloaded cache reports empty defaults.
        """
        generation = self._generation
        if generation is None:
            return DatasetMetadata(state=self.state)
        return generation.metadata.model_copy(
            update={"state": self.state}, deep=True
        )

    def clear_cache(self) -> None:
        """Drop the current generation to free memory."""
        logger.info("Clearing housing data cache...")
        self._generation = None

    def get_cache_stats(self) -> dict[str, Any]:
        """Get statistics about the cached generation."""
        generation = self._generation
        if generation is None:
            return {
                "rows": 0,
                "dates": 0,
                "regions": 0,
                "date_region_keys": 0,
                "is_loaded": False,
                "state": self.state.value,
            }
        return {
            "rows": len(generation.rows),
            "dates": len(generation.by_date),
            "regions": len(generation.by_region),
            "date_region_keys": len(generation.by_date_region),
            "is_loaded": True,
            "state": self.state.value,
        }

    def _ensure_not_loading(self) -> None:
        if self._load_lock.locked():
            raise LoadInProgressError("A housing data load is already in progress")

    async def _load_locked(
        self,
        source_path: str | Path | None,
        progress_callback: ProgressCallback | None,
    ) -> DatasetMetadata:
        path = Path(source_path) if source_path else self._default_source
        if path is None:
            raise DataLoadError("No housing CSV path configured")

        logger.info(f"Loading housing data from {path}...")
        abort = threading.Event()

        try:
            with get_metrics().time_operation(LOAD_METRIC) as timing:
                generation = await asyncio.wait_for(
                    asyncio.to_thread(
                        self._build_generation, path, progress_callback, abort
                    ),
                    timeout=self._load_timeout,
                )
        except TimeoutError as e:
            abort.set()
            self._fail(progress_callback, path, "timed out")
            raise DataLoadError(
                f"Loading {path} timed out after {self._load_timeout}s"
            ) from e
        except DataLoadError as e:
            self._fail(progress_callback, path, str(e))
            raise
        except (OSError, UnicodeDecodeError) as e:
            self._fail(progress_callback, path, str(e))
            raise DataLoadError(f"Failed to load {path}: {e}") from e

        load_time = datetime.now(UTC)
        # Keep load timestamps strictly increasing across generations
        if self._last_load_time is not None and load_time <= self._last_load_time:
            load_time = self._last_load_time + timedelta(microseconds=1)
        self._last_load_time = load_time

        metadata = generation.metadata.model_copy(
            update={
                "is_loaded": True,
                "load_time": load_time,
                "load_duration_ms": timing.duration_ms,
            }
        )
        self._generation = replace(generation, metadata=metadata)

        if metadata.duplicate_keys:
            logger.warning(
                f"{metadata.duplicate_keys} rows share a date and region with an "
                "earlier row; point lookups return the last one"
            )
        logger.info(
            f"Loaded {metadata.total_rows:,} rows, {len(metadata.regions)} regions, "
            f"dates {metadata.min_date} to {metadata.max_date} "
            f"in {timing.duration_ms:.0f}ms"
        )
        return self.get_metadata()

    def _build_generation(
        self,
        path: Path,
        progress_callback: ProgressCallback | None,
        abort: threading.Event,
    ) -> _Generation:
        """Stream the CSV into a new generation (runs in a worker thread)."""
        parser = self._parser_factory(path)
        builder = _GenerationBuilder()

        _notify(progress_callback, ProgressPhase.STARTING, 0, f"Loading {path.name}")

        for raw in parser.iter_rows():
            if abort.is_set():
                raise DataLoadError(f"Loading {path} was aborted")
            builder.add_row(raw)
            count = len(builder.rows)
            if count % self._progress_interval == 0:
                _notify(
                    progress_callback,
                    ProgressPhase.PROCESSING,
                    count,
                    f"Indexed {count:,} rows",
                )

        generation = builder.build(parser.columns, path)
        _notify(
            progress_callback,
            ProgressPhase.COMPLETE,
            len(builder.rows),
            f"Loaded {len(builder.rows):,} rows",
        )
        return generation

    def _fail(
        self, progress_callback: ProgressCallback | None, path: Path, reason: str
    ) -> None:
        self._generation = None
        logger.error(f"Housing data load from {path} failed: {reason}")
        _notify(progress_callback, ProgressPhase.ERROR, 0, "Load failed", reason)

    @staticmethod
    def _select(
        generation: _Generation, options: HousingQuery
    ) -> tuple[QueryStrategy, Iterable[int]]:
        date_from = normalize_date(options.date_from)
        date_to = normalize_date(options.date_to)
        regions = options.regions or []

        # Insertion-ordered set of row indexes
        selected: dict[int, None] = {}

        if date_from and date_to and date_from == date_to and regions:
            for region in regions:
                idx = generation.by_date_region.get(composite_key(date_from, region))
                if idx is not None:
                    selected[idx] = None
            return QueryStrategy.DATE_REGION, selected

        if date_from or date_to:
            for date, indexes in generation.by_date.items():
                if is_date_in_range(date, date_from, date_to):
                    selected.update(dict.fromkeys(indexes))
            if regions:
                wanted = set(regions)
                selected = {
                    idx: None
                    for idx in selected
                    if (generation.rows[idx].get(REGION_FIELD) or "").strip() in wanted
                }
            return QueryStrategy.DATE_RANGE, selected

        if regions:
            for region in regions:
                selected.update(dict.fromkeys(generation.by_region.get(region, ())))
            return QueryStrategy.REGION, selected

        return QueryStrategy.FULL_SCAN, range(len(generation.rows))


def _project(row: Row, fields: list[str]) -> Row:
    """Keep only the requested fields present on the row."""
    return {field: row[field] for field in dict.fromkeys(fields) if field in row}


def _notify(
    callback: ProgressCallback | None,
    phase: ProgressPhase,
    current: int,
    message: str,
    detail: str | None = None,
) -> None:
    if callback is None:
        return
    callback(
        ProgressUpdate(
            operation="load_housing_data",
            phase=phase,
            current=current,
            total=0,
            message=message,
            detail=detail,
        )
    )
