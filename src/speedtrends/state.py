# ========================
# src/speedtrends/state.py
# ========================

"""
Application State Module

Holds the working record set and serializes every change to it.
"""

import threading
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .ingestion import CSVReader, fetch_csv_text, read_csv_file
from .normalization import MissingValuePolicy, RecordNormalizer
from ..utils.config import Config
from ..utils.sample_data import SAMPLE_CSV

logger = logging.getLogger(__name__)


class DatasetController:
    """
    Owner of the in-memory record set.

    Loads replace the set wholesale. Each load takes a ticket from
    ``begin_load`` before acquiring data; ``commit_load`` only applies the
    result if no newer ticket has been issued meanwhile, so a slow fetch
    that finishes late cannot overwrite a newer dataset. All writes happen
    under one lock.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.policy = MissingValuePolicy.from_value(self.config.MISSING_VALUE_POLICY)
        self.year_labels = list(self.config.YEAR_LABELS)

        self._lock = threading.Lock()
        self._records: List[Dict[str, Any]] = []
        self._issued_generation = 0
        self._generation = 0
        self.source: Optional[str] = None
        self.loaded_at: Optional[str] = None
        self.manual_entries = 0

        logger.info(f"DatasetController initialized (policy={self.policy.value})")

    @property
    def generation(self) -> int:
        """Ticket of the load currently held."""
        return self._generation

    def snapshot(self) -> List[Dict[str, Any]]:
        """Copy of the current record list, safe to filter and sort."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def begin_load(self) -> int:
        """Issue a ticket for a new load. Later tickets supersede earlier ones."""
        with self._lock:
            self._issued_generation += 1
            return self._issued_generation

    def commit_load(self, ticket: int, records: List[Dict[str, Any]], source: str) -> bool:
        """
        Replace the record set if ``ticket`` is still the newest load.

        Returns:
            bool: False when a newer load was started after this one
        """
        with self._lock:
            if ticket != self._issued_generation:
                logger.warning(
                    f"Discarding stale load #{ticket} from {source}; "
                    f"load #{self._issued_generation} is newer"
                )
                return False

            self._records = list(records)
            self._generation = ticket
            self.source = source
            self.loaded_at = datetime.now().isoformat()
            self.manual_entries = 0

        logger.info(f"Load #{ticket} committed: {len(records)} records from {source}")
        return True

    def parse_text(self, text: str, source: str = "<text>") -> Dict[str, Any]:
        """
        Parse and normalize CSV text without touching the current record set.

        Returns:
            dict: ``records`` plus reader and normalizer statistics
        """
        reader = CSVReader(
            text,
            year_labels=self.year_labels,
            naive_split=self.config.NAIVE_CSV_SPLIT,
            source=source
        )
        normalizer = RecordNormalizer(self.policy, self.year_labels)

        records = []
        for chunk_num, chunk in enumerate(reader.read_in_chunks(self.config.DEFAULT_CHUNK_SIZE), 1):
            for row in chunk:
                record = normalizer.normalize_row(row)
                if record is not None:
                    records.append(record)
            logger.debug(f"Normalized chunk {chunk_num} from {source}: {len(records)} records so far")

        return {
            'records': records,
            'reader_stats': reader.get_statistics(),
            'normalizer_stats': normalizer.get_statistics()
        }

    def load_text(self, text: str, source: str = "<text>", ticket: Optional[int] = None) -> Dict[str, Any]:
        """
        Replace the record set with the records parsed from ``text``.

        Args:
            text (str): CSV text
            source (str): Description of the data source
            ticket (int): Ticket from ``begin_load`` if acquisition already started
        """
        if ticket is None:
            ticket = self.begin_load()

        parsed = self.parse_text(text, source)
        accepted = self.commit_load(ticket, parsed['records'], source)

        return {
            'accepted': accepted,
            'generation': ticket,
            'source': source,
            'records_loaded': len(parsed['records']),
            'rows_dropped': parsed['reader_stats']['rows_dropped'] + parsed['normalizer_stats']['records_dropped'],
            'reader_stats': parsed['reader_stats'],
            'normalizer_stats': parsed['normalizer_stats']
        }

    def load_file(self, file_path: str) -> Dict[str, Any]:
        """Load a CSV file. Raises FileNotFoundError if it is missing."""
        ticket = self.begin_load()
        text = read_csv_file(file_path)
        return self.load_text(text, source=str(file_path), ticket=ticket)

    def load_url(self, url: str) -> Dict[str, Any]:
        """Fetch and load a remote CSV. Raises DataAcquisitionError on failure."""
        ticket = self.begin_load()
        text = fetch_csv_text(url, timeout=self.config.FETCH_TIMEOUT_SECONDS)
        return self.load_text(text, source=url, ticket=ticket)

    def load_sample(self) -> Dict[str, Any]:
        return self.load_text(SAMPLE_CSV, source="sample")

    def add_record(self,
                   country: Any,
                   major_area: Any = '',
                   region: Any = '',
                   speeds: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Normalize one manually entered country and put it first.
        Duplicate countries are kept side by side.

        Returns:
            dict or None: The new record, or None if the country is blank
        """
        normalizer = RecordNormalizer(self.policy, self.year_labels)
        record = normalizer.build_record(country, major_area, region, speeds)
        if record is None:
            logger.warning("Manual record rejected: country is empty")
            return None

        with self._lock:
            self._records.insert(0, record)
            self.manual_entries += 1

        logger.info(f"Manual record added for {record['country']}")
        return record

    def clear(self) -> None:
        """Drop all records; any load already in flight is superseded."""
        with self._lock:
            self._issued_generation += 1
            self._generation = self._issued_generation
            self._records = []
            self.source = None
            self.loaded_at = None
            self.manual_entries = 0
        logger.info("Record set cleared")

    def describe(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'record_count': len(self._records),
                'generation': self._generation,
                'source': self.source,
                'loaded_at': self.loaded_at,
                'manual_entries': self.manual_entries,
                'missing_value_policy': self.policy.value,
                'year_labels': list(self.year_labels)
            }
