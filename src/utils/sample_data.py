# ========================
# src/utils/sample_data.py
# ========================

"""
Sample Data Utilities

The bundled sample dataset and a generator for synthetic speed datasets
with controlled defect injection.
"""

import csv
import random
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from .config import DEFAULT_YEAR_LABELS

logger = logging.getLogger(__name__)

SAMPLE_CSV = """country,major_area,region,year 2017,year 2018,year 2019,year 2020,year 2021,year 2022,year 2023,year 2024
Afghanistan,Asia,Southern Asia,null,null,6.49,8.2,9.23,1.9,2.84,3.63
Albania,Europe,Southern Europe,11.48,14.71,28.61,37.11,41.47,33.67,46.47,62.71
Algeria,Africa,Northern Africa,3.98,3.52,4.06,3.92,9.95,10.84,11.3,14.26
Andorra,Europe,Southern Europe,null,null,110.34,129.69,145.18,85.92,93.94,110.00
Australia,Oceania,Australia and New Zealand,45.1,52.3,63.1,71.2,75.3,80.4,90.1,105.7
Brazil,Americas,South America,12.2,15.8,21.3,25.9,28.1,30.2,32.5,55.1
Canada,Americas,Northern America,30.1,40.5,50.2,62.3,70.1,72.0,75.9,88.0
China,Asia,Eastern Asia,70.2,75.1,80.5,85.7,90.2,92.5,95.3,120.4
Egypt,Africa,Northern Africa,7.5,8.2,9.1,10.0,11.5,12.2,13.4,14.6"""


class SampleDataGenerator:
    """
    Generates synthetic country speed datasets for load testing.
    A share of rows carries the defects seen in real exports.
    """

    AREAS = {
        "Africa": ["Northern Africa", "Western Africa", "Eastern Africa", "Southern Africa"],
        "Americas": ["Northern America", "South America", "Central America", "Caribbean"],
        "Asia": ["Eastern Asia", "Southern Asia", "South-eastern Asia", "Western Asia"],
        "Europe": ["Northern Europe", "Southern Europe", "Western Europe", "Eastern Europe"],
        "Oceania": ["Australia and New Zealand", "Melanesia", "Polynesia"],
    }

    ERROR_TYPES = ['null_token', 'blank_value', 'non_numeric', 'short_row', 'blank_region']

    def __init__(self, seed: Optional[int] = None, year_labels: Optional[List[str]] = None):
        """
        Initialize data generator.

        Args:
            seed (int): Random seed for reproducible data generation
            year_labels (list): Year columns to emit, oldest first
        """
        self._random = random.Random(seed)
        self.year_labels = list(year_labels or DEFAULT_YEAR_LABELS)
        logger.info(f"SampleDataGenerator initialized with seed: {seed}")

    def generate_dataset(self,
                         file_path: str,
                         num_countries: int,
                         error_rate: float = 0.1) -> Dict[str, Any]:
        """
        Write a synthetic dataset to ``file_path``.

        Args:
            file_path (str): Output CSV file path
            num_countries (int): Number of country rows to generate
            error_rate (float): Fraction of rows with an injected defect

        Returns:
            dict: Generation statistics
        """
        logger.info(f"Generating {num_countries:,} rows with {error_rate:.1%} error rate...")

        stats = {
            'total_rows': num_countries,
            'error_rate': error_rate,
            'records_with_errors': 0,
            'error_types': {}
        }

        Path(file_path).parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(
                ['country', 'major_area', 'region'] + [f"year {label}" for label in self.year_labels]
            )

            for index in range(num_countries):
                row = self._generate_row(index)
                if self._random.random() < error_rate:
                    error_type = self._random.choice(self.ERROR_TYPES)
                    row = self._inject_error(row, error_type)
                    stats['records_with_errors'] += 1
                    stats['error_types'][error_type] = stats['error_types'].get(error_type, 0) + 1
                writer.writerow(row)

        logger.info(f"Dataset written to {file_path}: {stats['records_with_errors']} rows with defects")
        return stats

    def _generate_row(self, index: int) -> List[str]:
        """One clean row with a noisy upward speed trend."""
        major_area = self._random.choice(sorted(self.AREAS))
        region = self._random.choice(self.AREAS[major_area])

        speed = self._random.uniform(1.0, 60.0)
        speeds = []
        for _ in self.year_labels:
            speed = max(0.5, speed * self._random.uniform(0.85, 1.35))
            speeds.append(f"{speed:.2f}")

        return [f"Country {index + 1:04d}", major_area, region] + speeds

    def _inject_error(self, row: List[str], error_type: str) -> List[str]:
        row = list(row)
        year_index = 3 + self._random.randrange(len(self.year_labels))

        if error_type == 'null_token':
            row[year_index] = self._random.choice(['null', 'NULL', 'Null'])
        elif error_type == 'blank_value':
            row[year_index] = ''
        elif error_type == 'non_numeric':
            row[year_index] = self._random.choice(['n/a', 'fast', '--'])
        elif error_type == 'short_row':
            row = row[:self._random.randint(1, len(row) - 1)]
        elif error_type == 'blank_region':
            row[2] = ''

        return row
