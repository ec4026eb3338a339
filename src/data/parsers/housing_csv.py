"""Parser for the London housing price CSV.

Expected CSV layout (comma-separated, first line is the header):

Header example:
    Date,RegionName,AreaCode,AveragePrice,Index,1m%Change,12m%Change,...

Row example:
    01/01/95,City of London,E09000001,91448.98,3.32,,,...

Rows are yielded as plain ``dict[str, str]`` keyed by header name. Values are
left untouched; date normalization and indexing belong to the cache.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import ClassVar

from models import DATE_FIELD, REGION_FIELD
from utils.exceptions import DataParseError

logger = logging.getLogger(__name__)

# Sentinel key csv.DictReader uses for surplus fields
_OVERFLOW_KEY = "__overflow__"


class HousingCSVParser:
    """Sequential row source for the housing CSV file.

    The file is streamed line by line, so only the caller decides how much
    of it is kept in memory. ``columns`` is populated once iteration has
    read the header.
    """

    REQUIRED_COLUMNS: ClassVar[tuple[str, ...]] = (DATE_FIELD, REGION_FIELD)

    def __init__(self, csv_path: str | Path, encoding: str = "utf-8-sig"):
        self.csv_path = Path(csv_path)
        self.encoding = encoding
        self.columns: list[str] = []

    def iter_rows(self) -> Iterator[dict[str, str]]:
        """Yield each data row as a field-name to value mapping.

        Raises:
            FileNotFoundError: If the CSV file does not exist.
            DataParseError: If the header lacks a required column, a row has
                more fields than the header, or the CSV is malformed.
        """
        if not self.csv_path.exists():
            logger.error(f"File not found: {self.csv_path}")
            raise FileNotFoundError(f"File not found: {self.csv_path}")

        with open(self.csv_path, encoding=self.encoding, newline="") as f:
            reader = csv.DictReader(f, restkey=_OVERFLOW_KEY, restval="", strict=True)
            try:
                header = reader.fieldnames or []
                self.columns = [name.strip() for name in header]
                reader.fieldnames = self.columns
                self._check_header()

                for row in reader:
                    if _OVERFLOW_KEY in row:
                        raise DataParseError(
                            f"{self.csv_path.name} line {reader.line_num}: "
                            f"expected {len(self.columns)} fields, "
                            f"got {len(self.columns) + len(row[_OVERFLOW_KEY])}"
                        )
                    yield row
            except csv.Error as e:
                raise DataParseError(
                    f"{self.csv_path.name} line {reader.line_num}: {e}"
                ) from e

    def _check_header(self) -> None:
        if not self.columns:
            raise DataParseError(f"{self.csv_path.name} has no header row")
        missing = [col for col in self.REQUIRED_COLUMNS if col not in self.columns]
        if missing:
            raise DataParseError(
                f"{self.csv_path.name} is missing required columns: {', '.join(missing)}"
            )
