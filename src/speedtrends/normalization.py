# ========================
# src/speedtrends/normalization.py
# ========================

"""
Record Normalization Module

Turns raw CSV rows into speed records with numeric per-year values.
"""

import math
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from ..utils.config import DEFAULT_YEAR_LABELS

logger = logging.getLogger(__name__)

MISSING_TOKEN = 'null'


class MissingValuePolicy(Enum):
    """
    How an absent reading is stored.

    ZERO_AS_MISSING stores 0.0, so a missing reading is indistinguishable
    from a measured zero and pulls averages down. NULL_AS_MISSING stores
    None and every aggregate skips it.
    """
    ZERO_AS_MISSING = 'zero'
    NULL_AS_MISSING = 'null'

    @classmethod
    def from_value(cls, value: Union[str, 'MissingValuePolicy']) -> 'MissingValuePolicy':
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class RecordNormalizer:
    """
    Maps one raw row (positional list or header-keyed dict) to a record dict:

        {'country', 'major_area', 'region', 'speeds': {year: value}, 'growth'}

    Bad values never raise; they become the policy's missing value.
    """

    def __init__(self,
                 policy: Union[str, MissingValuePolicy] = MissingValuePolicy.ZERO_AS_MISSING,
                 year_labels: Optional[List[str]] = None):
        """
        Initialize the normalizer.

        Args:
            policy: Missing-value policy applied to every speed field
            year_labels (list): Year labels in chronological order
        """
        self.policy = MissingValuePolicy.from_value(policy)
        self.year_labels = list(year_labels or DEFAULT_YEAR_LABELS)
        self.records_processed = 0
        self.records_dropped = 0
        self.values_missing = 0
        logger.info(f"RecordNormalizer initialized with policy={self.policy.value}")

    @property
    def latest_year(self) -> str:
        return self.year_labels[-1]

    @property
    def prior_year(self) -> str:
        return self.year_labels[-2]

    def normalize_row(self, row: Union[List[str], Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Normalize a single raw row.

        Args:
            row: Positional field list or dict keyed by column name

        Returns:
            dict or None: The record, or None if the row has no country.
        """
        self.records_processed += 1

        if isinstance(row, Mapping):
            country = row.get('country')
            major_area = row.get('major_area')
            region = row.get('region')
            raw_speeds = {label: row.get(label) for label in self.year_labels}
        else:
            fields = list(row) + [None] * (3 + len(self.year_labels) - len(row))
            country, major_area, region = fields[0], fields[1], fields[2]
            raw_speeds = {label: fields[3 + i] for i, label in enumerate(self.year_labels)}

        record = self.build_record(country, major_area, region, raw_speeds)
        if record is None:
            self.records_dropped += 1
            logger.debug(f"Record dropped, empty country: {row}")
        return record

    def build_record(self,
                     country: Any,
                     major_area: Any = '',
                     region: Any = '',
                     speeds: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Build a record from loose values, as for a manually entered country.
        Year labels absent from ``speeds`` are treated as missing.
        """
        country = self._clean_label(country)
        if not country:
            return None

        speeds = speeds or {}
        cleaned = {label: self.clean_speed(speeds.get(label)) for label in self.year_labels}

        return {
            'country': country,
            'major_area': self._clean_label(major_area),
            'region': self._clean_label(region),
            'speeds': cleaned,
            'growth': self.derive_growth(cleaned)
        }

    def clean_speed(self, value: Any) -> Optional[float]:
        """
        Coerce one speed field to a float.
        ``null`` in any case, blanks, unparseable text and non-finite
        numbers are missing.
        """
        number = self._parse_number(value)
        if number is None:
            self.values_missing += 1
            return 0.0 if self.policy is MissingValuePolicy.ZERO_AS_MISSING else None
        return number

    @staticmethod
    def _parse_number(value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        text = str(value).strip()
        if not text or text.lower() == MISSING_TOKEN:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None

    @staticmethod
    def _clean_label(value: Any) -> str:
        if value is None:
            return ''
        return str(value).strip()

    def derive_growth(self, speeds: Mapping[str, Optional[float]]) -> Optional[float]:
        """Latest year minus prior year, or None if either is missing."""
        latest = speeds.get(self.latest_year)
        prior = speeds.get(self.prior_year)
        if latest is None or prior is None:
            return None
        return latest - prior

    def get_statistics(self) -> Dict[str, Any]:
        """Get normalization statistics."""
        accepted = self.records_processed - self.records_dropped
        return {
            'records_processed': self.records_processed,
            'records_dropped': self.records_dropped,
            'records_accepted': accepted,
            'values_missing': self.values_missing,
            'success_rate': accepted / self.records_processed * 100 if self.records_processed > 0 else 0
        }
