# ========================
# src/speedtrends/query.py
# ========================

"""
Query Module

Record filters (continent, region, country list, free-text search) and the
continent report built on top of them.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .aggregation import SpeedAggregator

logger = logging.getLogger(__name__)

Predicate = Callable[[Dict[str, Any]], bool]

BOTH_YEARS = 'both'


def match_all(record: Dict[str, Any]) -> bool:
    return True


def continent_predicate(continent: Optional[str]) -> Predicate:
    """Case-insensitive substring match on the major area."""
    needle = (continent or '').strip().lower()
    if not needle:
        return match_all
    return lambda record: needle in (record.get('major_area') or '').lower()


def region_predicate(value: Optional[str], all_sentinel: str = 'all') -> Predicate:
    """Exact case-insensitive match on major area or region; the sentinel disables it."""
    wanted = (value or '').strip().lower()
    if not wanted or wanted == all_sentinel.lower():
        return match_all
    return lambda record: wanted in (
        (record.get('major_area') or '').lower(),
        (record.get('region') or '').lower()
    )


def countries_predicate(countries: Optional[str]) -> Predicate:
    """Membership in a comma-separated country list, ignoring case and blanks."""
    wanted = {name.strip().lower() for name in (countries or '').split(',') if name.strip()}
    if not wanted:
        return match_all
    return lambda record: record.get('country', '').lower() in wanted


def search_predicate(term: Optional[str]) -> Predicate:
    """Case-insensitive substring match on country or region."""
    needle = (term or '').strip().lower()
    if not needle:
        return match_all
    return lambda record: (
        needle in record.get('country', '').lower()
        or needle in (record.get('region') or '').lower()
    )


class QueryEngine:
    """
    Filters a record set and hands the subset to the aggregator.
    An empty subset is a normal result, never an error.
    """

    def __init__(self,
                 aggregator: Optional[SpeedAggregator] = None,
                 top_list_limit: int = 10,
                 region_chart_limit: int = 12,
                 all_sentinel: str = 'all'):
        self.aggregator = aggregator or SpeedAggregator()
        self.top_list_limit = top_list_limit
        self.region_chart_limit = region_chart_limit
        self.all_sentinel = all_sentinel

    @property
    def year_labels(self) -> List[str]:
        return self.aggregator.year_labels

    def resolve_year(self, year: Optional[str]) -> str:
        """
        Map a requested year to a label. ``None`` and ``"both"`` mean the
        latest year.

        Raises:
            ValueError: for a label outside the configured years
        """
        if year is None or str(year).strip().lower() in ('', BOTH_YEARS):
            return self.aggregator.latest_year
        label = str(year).strip()
        if label not in self.year_labels:
            raise ValueError(f"Unknown year '{year}', expected one of {', '.join(self.year_labels)}")
        return label

    @staticmethod
    def filter_by_predicate(records: Iterable[Dict[str, Any]], predicate: Predicate) -> List[Dict[str, Any]]:
        return [record for record in records if predicate(record)]

    @staticmethod
    def filter_records(records: Iterable[Dict[str, Any]], *predicates: Predicate) -> List[Dict[str, Any]]:
        """Records matching every predicate; each one sees the same base set."""
        return [record for record in records if all(predicate(record) for predicate in predicates)]

    def select(self,
               records: Sequence[Dict[str, Any]],
               continent: Optional[str] = None,
               region: Optional[str] = None,
               countries: Optional[str] = None,
               search: Optional[str] = None) -> List[Dict[str, Any]]:
        """Apply whichever filters are given, combined with AND."""
        subset = self.filter_records(
            records,
            continent_predicate(continent),
            region_predicate(region, self.all_sentinel),
            countries_predicate(countries),
            search_predicate(search)
        )
        logger.debug(
            f"Query continent={continent!r} region={region!r} countries={countries!r} "
            f"search={search!r}: {len(subset)}/{len(records)} records"
        )
        return subset

    def continent_report(self,
                         records: Sequence[Dict[str, Any]],
                         continent: str,
                         year: Optional[str] = None) -> Dict[str, Any]:
        """
        Everything the continent view shows, as data.

        Returns:
            dict: ``count``, ``highest``, ``lowest``, chart ``labels`` and
            ``values`` sorted fastest first, ``group_averages``, ``top``
            list and ``outliers``. With no matches ``count`` is 0 and the
            collections are empty.
        """
        year = self.resolve_year(year)
        matched = self.filter_by_predicate(records, continent_predicate(continent))

        if not matched:
            logger.info(f"No countries found for continent '{continent}'")

        ranked = self.aggregator.rank(matched, year)
        labels, values = self.aggregator.to_series(ranked, year)
        extremes = self.aggregator.extremes(matched, year)

        return {
            'continent': continent,
            'year': year,
            'count': len(matched),
            'highest': extremes['highest'],
            'lowest': extremes['lowest'],
            'labels': labels,
            'values': values,
            'group_averages': self.aggregator.group_averages(matched, year)[:self.region_chart_limit],
            'top': [
                {'rank': index + 1, 'country': country, 'value': value}
                for index, (country, value) in enumerate(zip(labels[:self.top_list_limit],
                                                             values[:self.top_list_limit]))
            ],
            'outliers': self.aggregator.outlier_summary(matched, year)
        }

    def top_series(self, records: Sequence[Dict[str, Any]], n: int, year: Optional[str] = None) -> Dict[str, Any]:
        """Top-N chart series for a year."""
        year = self.resolve_year(year)
        top = self.aggregator.top_n(records, year, n)
        labels, values = self.aggregator.to_series(top, year)
        return {'year': year, 'n': n, 'labels': labels, 'values': values}
