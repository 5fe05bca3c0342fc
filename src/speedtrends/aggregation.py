# ========================
# src/speedtrends/aggregation.py
# ========================

"""
Data Aggregation Module

Summary statistics over a set of speed records: group averages, outliers,
rankings and the headline KPIs.
"""

import math
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .normalization import MissingValuePolicy
from ..utils.config import DEFAULT_YEAR_LABELS

logger = logging.getLogger(__name__)

UNKNOWN_GROUP = 'Unknown'

# Lower bounds of the choropleth colour bins, highest first
SPEED_BANDS = [(100.0, '100+'), (50.0, '50-100'), (20.0, '20-50')]
LOWEST_BAND = '0-20'
NO_DATA_BAND = 'no data'


def speed_band(value: Optional[float]) -> str:
    """Classify a speed into the map bins 0-20 / 20-50 / 50-100 / 100+ Mbps."""
    if value is None:
        return NO_DATA_BAND
    for lower_bound, label in SPEED_BANDS:
        if value > lower_bound:
            return label
    return LOWEST_BAND


class SpeedAggregator:
    """
    Stateless aggregations over a record subset for one year label.

    Every method accepts an empty sequence and returns zeros or empty
    collections for it. Under NULL_AS_MISSING, records without a value for
    the year are left out of means, deviations and group denominators.
    """

    def __init__(self,
                 policy: Union[str, MissingValuePolicy] = MissingValuePolicy.ZERO_AS_MISSING,
                 year_labels: Optional[List[str]] = None,
                 outlier_sigma: float = 2.0):
        """
        Initialize the aggregator.

        Args:
            policy: Missing-value policy the records were normalized with
            year_labels (list): Year labels in chronological order
            outlier_sigma (float): Standard deviations beyond the mean for an outlier
        """
        self.policy = MissingValuePolicy.from_value(policy)
        self.year_labels = list(year_labels or DEFAULT_YEAR_LABELS)
        self.outlier_sigma = outlier_sigma
        logger.debug(f"SpeedAggregator initialized with policy={self.policy.value}, sigma={outlier_sigma}")

    @property
    def latest_year(self) -> str:
        return self.year_labels[-1]

    @property
    def prior_year(self) -> str:
        return self.year_labels[-2]

    def speed_value(self, record: Dict[str, Any], year: str) -> Optional[float]:
        """The record's speed for ``year`` under the active policy."""
        value = record.get('speeds', {}).get(year)
        if value is None and self.policy is MissingValuePolicy.ZERO_AS_MISSING:
            return 0.0
        return value

    @staticmethod
    def group_key(record: Dict[str, Any]) -> str:
        return record.get('region') or record.get('major_area') or UNKNOWN_GROUP

    def group_averages(self, records: Sequence[Dict[str, Any]], year: str) -> List[Dict[str, Any]]:
        """
        Average speed per region (falling back to major area, then "Unknown").

        Returns:
            list[dict]: ``{'group', 'average', 'count', 'total'}`` sorted by
            average descending; equal averages keep first-seen order.
        """
        totals: Dict[str, float] = {}
        counts: Dict[str, int] = {}

        for record in records:
            key = self.group_key(record)
            totals.setdefault(key, 0.0)
            counts.setdefault(key, 0)

            value = self.speed_value(record, year)
            if value is None:
                continue
            totals[key] += value
            counts[key] += 1

        groups = [
            {'group': key, 'average': totals[key] / counts[key], 'count': counts[key], 'total': totals[key]}
            for key in totals
            if counts[key] > 0
        ]
        groups.sort(key=lambda item: item['average'], reverse=True)
        return groups

    def find_outliers(self, records: Sequence[Dict[str, Any]], year: str) -> Dict[str, Any]:
        """
        Flag records more than ``outlier_sigma`` population standard deviations
        from the mean.

        Returns:
            dict: ``mean``, ``std``, ``count`` and the ``high`` / ``low`` record lists
        """
        scored = [(record, self.speed_value(record, year)) for record in records]
        scored = [(record, value) for record, value in scored if value is not None]

        if not scored:
            return {'mean': 0.0, 'std': 0.0, 'count': 0, 'high': [], 'low': []}

        values = [value for _, value in scored]
        mean = sum(values) / len(values)

        if min(values) == max(values):
            # Identical values: no spread, so nothing can be an outlier
            return {'mean': mean, 'std': 0.0, 'count': len(values), 'high': [], 'low': []}

        std = math.sqrt(sum((value - mean) ** 2 for value in values) / len(values))
        upper = mean + self.outlier_sigma * std
        lower = mean - self.outlier_sigma * std

        return {
            'mean': mean,
            'std': std,
            'count': len(values),
            'high': [record for record, value in scored if value > upper],
            'low': [record for record, value in scored if value < lower]
        }

    def top_n(self, records: Sequence[Dict[str, Any]], year: str, n: int) -> List[Dict[str, Any]]:
        """
        The ``n`` fastest records for ``year``, ties in input order.
        Missing values (NULL_AS_MISSING) rank after every present value.
        """
        if n <= 0:
            return []
        return self.rank(records, year)[:n]

    def rank(self, records: Sequence[Dict[str, Any]], year: str) -> List[Dict[str, Any]]:
        """All records sorted by speed descending; the sort is stable."""
        def sort_key(record):
            value = self.speed_value(record, year)
            return (value is not None, value if value is not None else 0.0)

        return sorted(records, key=sort_key, reverse=True)

    def extremes(self, records: Sequence[Dict[str, Any]], year: str) -> Dict[str, Optional[Dict[str, Any]]]:
        """Highest and lowest country for ``year``, or None for an empty scope."""
        ranked = [record for record in self.rank(records, year) if self.speed_value(record, year) is not None]
        if not ranked:
            return {'highest': None, 'lowest': None}

        highest, lowest = ranked[0], ranked[-1]
        return {
            'highest': {'country': highest['country'], 'value': self.speed_value(highest, year)},
            'lowest': {'country': lowest['country'], 'value': self.speed_value(lowest, year)}
        }

    def to_series(self, records: Sequence[Dict[str, Any]], year: str) -> Tuple[List[str], List[Optional[float]]]:
        """Parallel label and value lists for a chart, in input order."""
        labels = [record['country'] for record in records]
        values = [self.speed_value(record, year) for record in records]
        return labels, values

    def country_speed_map(self, records: Sequence[Dict[str, Any]], year: str) -> Dict[str, Optional[float]]:
        """Lower-cased country name to speed; a later duplicate wins."""
        return {record['country'].lower(): self.speed_value(record, year) for record in records}

    def kpi_summary(self, records: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Headline figures for the whole record set.

        Returns:
            dict: ``average_speed`` for the latest year, ``improved_count``
            (strictly faster than the prior year), ``mean_growth`` across
            records with both years, and ``impact_score`` =
            max(0, mean_growth / average * 100) with a zero average read as 1.
        """
        latest_values = [self.speed_value(record, self.latest_year) for record in records]
        latest_values = [value for value in latest_values if value is not None]
        average = sum(latest_values) / len(latest_values) if latest_values else 0.0

        growths = []
        for record in records:
            latest = self.speed_value(record, self.latest_year)
            prior = self.speed_value(record, self.prior_year)
            if latest is not None and prior is not None:
                growths.append(latest - prior)

        improved = sum(1 for growth in growths if growth > 0)
        mean_growth = sum(growths) / len(growths) if growths else 0.0
        impact_score = max(0.0, (mean_growth / (average or 1)) * 100)

        return {
            'year': self.latest_year,
            'prior_year': self.prior_year,
            'record_count': len(records),
            'average_speed': average,
            'improved_count': improved,
            'mean_growth': mean_growth,
            'impact_score': impact_score
        }

    def outlier_summary(self, records: Sequence[Dict[str, Any]], year: str) -> Dict[str, Any]:
        """``find_outliers`` with country names in place of records, for display."""
        outliers = self.find_outliers(records, year)
        return {
            'year': year,
            'mean': outliers['mean'],
            'std': outliers['std'],
            'count': outliers['count'],
            'high': [record['country'] for record in outliers['high']],
            'low': [record['country'] for record in outliers['low']]
        }
