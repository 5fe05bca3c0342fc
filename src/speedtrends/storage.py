# ========================
# src/speedtrends/storage.py
# ========================

"""
Data Storage Module

Serializes records and reports to CSV / JSON text and output files.
"""

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..utils.config import DEFAULT_YEAR_LABELS

logger = logging.getLogger(__name__)

MISSING_OUTPUT = 'null'


def _format_speed(value: Optional[float]) -> str:
    return MISSING_OUTPUT if value is None else repr(float(value))


def records_to_csv_text(records: Sequence[Dict[str, Any]],
                        year_labels: Optional[List[str]] = None) -> str:
    """
    Write records in the input schema: country, major_area, region and one
    ``year NNNN`` column per label. Missing speeds are written as ``null``,
    so the text loads back into the same records.
    """
    year_labels = list(year_labels or DEFAULT_YEAR_LABELS)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')

    writer.writerow(['country', 'major_area', 'region'] + [f"year {label}" for label in year_labels])
    for record in records:
        speeds = record.get('speeds', {})
        writer.writerow(
            [record['country'], record.get('major_area', ''), record.get('region', '')]
            + [_format_speed(speeds.get(label)) for label in year_labels]
        )

    return buffer.getvalue()


def records_to_json_text(records: Sequence[Dict[str, Any]]) -> str:
    """Records as a JSON array; missing speeds become null."""
    return json.dumps(list(records), indent=2, ensure_ascii=False)


class ReportSaver:
    """
    Saves records and the dashboard report built by the pipeline.
    """

    def __init__(self, output_dir: str = "data/processed", year_labels: Optional[List[str]] = None):
        """
        Initialize the report saver.

        Args:
            output_dir (str): Directory to save output files
            year_labels (list): Year columns for record exports
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.year_labels = list(year_labels or DEFAULT_YEAR_LABELS)
        logger.info(f"ReportSaver initialized with output directory: {self.output_dir}")

    def save_all(self, records: Sequence[Dict[str, Any]], report: Dict[str, Any]) -> Dict[str, str]:
        """
        Save the record set and every report section.

        Args:
            records: The record set the report was computed from
            report (dict): Output of ``SpeedPipeline.build_report``

        Returns:
            dict: Mapping of output type to saved file path
        """
        saved_files = {
            'records_csv': self.save_records_csv(records),
            'records_json': self.save_records_json(records),
            'region_averages': self.save_group_averages(report['group_averages']),
            'top_countries': self.save_top_countries(report['top']),
            'outliers': self.save_outliers(report['outliers']),
            'kpi_summary': self._save_json('kpi_summary.json', {
                'kpis': report['kpis'],
                'continents': {
                    name: {key: section[key] for key in ('count', 'highest', 'lowest')}
                    for name, section in report['continents'].items()
                }
            })
        }

        logger.info(f"All data saved successfully to {len(saved_files)} files")
        return saved_files

    def save_records_csv(self, records: Sequence[Dict[str, Any]]) -> str:
        file_path = self.output_dir / "records.csv"
        with open(file_path, 'w', newline='', encoding='utf-8') as f:
            f.write(records_to_csv_text(records, self.year_labels))
        logger.info(f"Saved {len(records)} records to {file_path}")
        return str(file_path)

    def save_records_json(self, records: Sequence[Dict[str, Any]]) -> str:
        file_path = self.output_dir / "records.json"
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(records_to_json_text(records))
        logger.info(f"Saved {len(records)} records to {file_path}")
        return str(file_path)

    def save_group_averages(self, groups: List[Dict[str, Any]]) -> str:
        file_path = self.output_dir / "region_averages.csv"
        self._write_csv(file_path, ['group', 'average', 'count'], groups)
        return str(file_path)

    def save_top_countries(self, top: Dict[str, Any]) -> str:
        file_path = self.output_dir / "top_countries.csv"
        rows = [
            {'rank': index + 1, 'country': country, 'value': value}
            for index, (country, value) in enumerate(zip(top['labels'], top['values']))
        ]
        self._write_csv(file_path, ['rank', 'country', 'value'], rows)
        return str(file_path)

    def save_outliers(self, outliers: Dict[str, Any]) -> str:
        file_path = self.output_dir / "outliers.csv"
        rows = (
            [{'country': country, 'direction': 'high'} for country in outliers['high']]
            + [{'country': country, 'direction': 'low'} for country in outliers['low']]
        )
        if not rows:
            logger.warning("No outliers to save")
        self._write_csv(file_path, ['country', 'direction'], rows)
        return str(file_path)

    def _save_json(self, file_name: str, payload: Dict[str, Any]) -> str:
        file_path = self.output_dir / file_name
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        logger.info(f"Saved {file_path}")
        return str(file_path)

    def _write_csv(self, file_path: Path, headers: List[str], data_items: List[Dict[str, Any]]) -> None:
        """Write dict rows to a CSV file, ignoring keys outside ``headers``."""
        try:
            with open(file_path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=headers, extrasaction='ignore')
                writer.writeheader()
                writer.writerows(data_items)
            logger.info(f"Saved {len(data_items)} rows to {file_path}")
        except OSError as e:
            logger.error(f"Error writing CSV file {file_path}: {e}")
            raise

    def create_data_dictionary(self) -> str:
        """Create a data dictionary explaining all output files."""
        file_path = self.output_dir / "DATA_DICTIONARY.md"
        first, last = self.year_labels[0], self.year_labels[-1]

        content = f"""# Data Dictionary

Files written by the speed insights pipeline. Speeds are in Mbps.

### records.csv
The normalized record set in the input schema.

| Column | Type | Description |
|--------|------|-------------|
| country | string | Country name |
| major_area | string | Continent-level grouping |
| region | string | Sub-continental grouping |
| year {first} .. year {last} | float or `null` | Speed for the year |

### records.json
The same records as a JSON array, with a derived `growth` field
(latest year minus prior year, `null` when either is missing).

### region_averages.csv
Average speed for the latest year per region (major area when the region is
blank, `Unknown` when both are), fastest first.

| Column | Type | Description |
|--------|------|-------------|
| group | string | Region name |
| average | float | Mean speed of the group |
| count | integer | Records in the average |

### top_countries.csv
Fastest countries for the latest year. Ties keep input order.

### outliers.csv
Countries more than the configured number of standard deviations above
(`high`) or below (`low`) the mean for the latest year.

### kpi_summary.json
Average latest-year speed, number of countries that improved on the prior
year, mean growth, impact score, and per-continent highest/lowest.

## Data Quality Notes

- Rows with too few columns or a blank country are dropped
- `null`, blank and non-numeric speeds are missing; under the `zero` policy
  they are stored as 0 and count in averages
"""

        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(content)

        logger.info(f"Data dictionary created at {file_path}")
        return str(file_path)
