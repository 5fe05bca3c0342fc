# ========================
# src/speedtrends/ingestion.py
# ========================

"""
Data Ingestion Module

Acquires CSV text (file, URL or in-memory) and splits it into field rows.
"""

import csv
import io
import re
import logging
from itertools import chain
from typing import Dict, Iterator, List, Optional, Union

import requests

from ..utils.config import DEFAULT_YEAR_LABELS

logger = logging.getLogger(__name__)

RawRow = Union[List[str], Dict[str, str]]

LINE_BREAK = re.compile(r'\r?\n')


class DataAcquisitionError(Exception):
    """Raised when CSV text cannot be fetched from a remote source."""


def read_csv_file(file_path: str) -> str:
    """
    Read a CSV file as text. A leading byte-order mark is dropped.

    Raises:
        FileNotFoundError: if the file does not exist
    """
    try:
        with open(file_path, 'r', encoding='utf-8-sig', newline='') as f:
            return f.read()
    except FileNotFoundError:
        logger.error(f"File '{file_path}' was not found")
        raise
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading CSV file '{file_path}': {e}")
        raise


def fetch_csv_text(url: str, timeout: float = 10.0) -> str:
    """
    Fetch CSV text over HTTP.

    Raises:
        DataAcquisitionError: on connection errors, timeouts or non-2xx responses
    """
    logger.info(f"Fetching CSV from {url}")
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Fetching '{url}' failed: {e}")
        raise DataAcquisitionError(f"Could not fetch '{url}': {e}") from e

    logger.info(f"Fetched {len(response.content):,} bytes from {url}")
    return response.text


class CSVReader:
    """
    Splits CSV text into rows of trimmed fields.

    When the first row names a ``country`` column it is treated as a header
    and rows are yielded as dicts keyed by ``country``, ``major_area``,
    ``region`` and the year labels. Without a header every row is data and
    is yielded as a positional list.

    Rows with fewer than ``3 + len(year_labels)`` fields are dropped and
    counted, never raised.

    With ``naive_split=True`` lines are split on bare commas, so a quoted
    field containing a comma is split in two. The default uses the
    ``csv`` module and honours quoting.
    """

    COLUMN_ALIASES = {
        'country': 'country',
        'country_name': 'country',
        'major_area': 'major_area',
        'majorarea': 'major_area',
        'continent': 'major_area',
        'region': 'region',
        'sub_region': 'region',
        'subregion': 'region',
    }

    def __init__(self,
                 text: str,
                 year_labels: Optional[List[str]] = None,
                 naive_split: bool = False,
                 source: str = "<text>"):
        """
        Initialize the CSV reader.

        Args:
            text (str): Raw CSV text
            year_labels (list): Year labels in chronological order
            naive_split (bool): Split on bare commas instead of using csv
            source (str): Description of where the text came from, for logs
        """
        self.text = text
        self.year_labels = list(year_labels or DEFAULT_YEAR_LABELS)
        self.naive_split = naive_split
        self.source = source
        self.header: List[str] = []
        self.column_map: Optional[Dict[str, int]] = None
        self.rows_read = 0
        self.rows_dropped = 0
        logger.debug(f"Initialized CSVReader for {source} (naive_split={naive_split})")

    @classmethod
    def from_file(cls, file_path: str, **kwargs) -> 'CSVReader':
        return cls(read_csv_file(file_path), source=str(file_path), **kwargs)

    @classmethod
    def from_url(cls, url: str, timeout: float = 10.0, **kwargs) -> 'CSVReader':
        return cls(fetch_csv_text(url, timeout=timeout), source=url, **kwargs)

    @property
    def min_columns(self) -> int:
        return 3 + len(self.year_labels)

    def split_rows(self) -> Iterator[List[str]]:
        """Yield every non-blank line as a list of trimmed fields."""
        if self.naive_split:
            lines = (line.split(',') for line in LINE_BREAK.split(self.text))
        else:
            lines = csv.reader(io.StringIO(self.text, newline=''))

        for fields in lines:
            fields = [field.strip() for field in fields]
            if any(fields):
                yield fields

    def read_rows(self) -> Iterator[RawRow]:
        """
        Yield data rows, keyed by column name when a header is present.

        Yields:
            list[str] | dict[str, str]: one raw row per accepted line
        """
        self.rows_read = 0
        self.rows_dropped = 0
        self.header = []
        self.column_map = None

        rows = self.split_rows()
        first = next(rows, None)
        if first is None:
            logger.warning(f"No rows found in {self.source}")
            return

        if self._looks_like_header(first):
            self.header = first
            self.column_map = self._build_column_map(first)
            logger.info(f"CSV header: {self.header}")
        else:
            logger.info(f"No header row in {self.source}; reading columns by position")
            rows = chain([first], rows)

        for fields in rows:
            self.rows_read += 1
            if len(fields) < self.min_columns:
                self.rows_dropped += 1
                logger.debug(f"Dropping row with {len(fields)} fields (need {self.min_columns}): {fields}")
                continue

            if self.column_map is None:
                yield fields
            else:
                yield {
                    key: fields[index] if index < len(fields) else ''
                    for key, index in self.column_map.items()
                }

        logger.info(
            f"Read {self.rows_read} rows from {self.source}, "
            f"dropped {self.rows_dropped} short rows"
        )

    def read_in_chunks(self, chunk_size: int) -> Iterator[List[RawRow]]:
        """
        Group ``read_rows`` output into lists of at most ``chunk_size`` rows.

        Args:
            chunk_size (int): The number of rows to yield per chunk.
        """
        chunk = []
        for row in self.read_rows():
            chunk.append(row)
            if len(chunk) == chunk_size:
                yield chunk
                chunk = []

        if chunk:
            yield chunk

    def _looks_like_header(self, fields: List[str]) -> bool:
        return any(self.COLUMN_ALIASES.get(self._canonical_name(field)) == 'country' for field in fields)

    @staticmethod
    def _canonical_name(name: str) -> str:
        return re.sub(r'[\s\-]+', '_', name.strip().lower())

    def _build_column_map(self, header: List[str]) -> Dict[str, int]:
        """
        Map field keys to column indexes from header names.
        Keys the header does not name fall back to their position.
        """
        column_map: Dict[str, int] = {}

        for index, name in enumerate(header):
            canonical = self._canonical_name(name)
            key = self.COLUMN_ALIASES.get(canonical)
            if key is None:
                key = next((label for label in self.year_labels if label in canonical), None)
            if key is not None and key not in column_map:
                column_map[key] = index

        positional = ['country', 'major_area', 'region'] + self.year_labels
        for index, key in enumerate(positional):
            if key not in column_map:
                logger.warning(f"Header has no '{key}' column; using column {index}")
                column_map[key] = index

        return column_map

    def get_statistics(self) -> Dict[str, int]:
        return {
            'rows_read': self.rows_read,
            'rows_dropped': self.rows_dropped,
            'rows_accepted': self.rows_read - self.rows_dropped
        }
