# ========================
# src/utils/config.py
# ========================

"""
Configuration Management

Centralized configuration for the speed insights pipeline with environment support.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, List, Optional

DEFAULT_YEAR_LABELS = ['2017', '2018', '2019', '2020', '2021', '2022', '2023', '2024']


class Config:
    """
    Configuration class for the pipeline.
    Supports environment variables and default values.
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            config_dict (dict): Optional configuration overrides
        """
        # Dataset layout
        self.YEAR_LABELS = self._parse_year_labels(os.getenv('SPEED_YEAR_LABELS', ''))
        self.MISSING_VALUE_POLICY = os.getenv('SPEED_MISSING_POLICY', 'zero').lower()
        self.NAIVE_CSV_SPLIT = os.getenv('SPEED_NAIVE_CSV_SPLIT', 'false').lower() == 'true'

        # File Paths
        self.DEFAULT_INPUT_FILE = os.getenv('SPEED_INPUT_FILE', '')
        self.DEFAULT_OUTPUT_DIR = os.getenv('SPEED_OUTPUT_DIR', 'data/processed')
        self.LOG_DIR = os.getenv('SPEED_LOG_DIR', 'logs')

        # Acquisition
        self.FETCH_TIMEOUT_SECONDS = float(os.getenv('SPEED_FETCH_TIMEOUT', '10'))
        self.DEFAULT_CHUNK_SIZE = int(os.getenv('SPEED_CHUNK_SIZE', '100'))

        # Analysis thresholds
        self.OUTLIER_SIGMA = float(os.getenv('SPEED_OUTLIER_SIGMA', '2.0'))
        self.TOP_N_DEFAULT = int(os.getenv('SPEED_TOP_N', '5'))
        self.TOP_LIST_LIMIT = int(os.getenv('SPEED_TOP_LIST_LIMIT', '10'))
        self.REGION_CHART_LIMIT = int(os.getenv('SPEED_REGION_CHART_LIMIT', '12'))
        self.REGION_ALL_SENTINEL = os.getenv('SPEED_REGION_ALL', 'all')

        # API Settings
        self.API_PORT = int(os.getenv('SPEED_API_PORT', '8000'))

        # Logging Configuration
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

        # Override with provided config
        if config_dict:
            self._update_from_dict(config_dict)

    @staticmethod
    def _parse_year_labels(raw: str) -> List[str]:
        """Parse a comma-separated list of year labels, falling back to 2017-2024."""
        labels = [label.strip() for label in raw.split(',') if label.strip()]
        return labels or list(DEFAULT_YEAR_LABELS)

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """Update configuration from dictionary."""
        for key, value in config_dict.items():
            if hasattr(self, key.upper()):
                setattr(self, key.upper(), value)

    @property
    def latest_year(self) -> str:
        return self.YEAR_LABELS[-1]

    @property
    def prior_year(self) -> str:
        return self.YEAR_LABELS[-2]

    @property
    def min_columns(self) -> int:
        """country, major_area, region plus one column per year."""
        return 3 + len(self.YEAR_LABELS)

    def get_data_paths(self) -> Dict[str, Path]:
        """Get all configured data paths as Path objects."""
        return {
            'output_dir': Path(self.DEFAULT_OUTPUT_DIR),
            'raw_data_dir': Path('data/raw'),
            'logs_dir': Path(self.LOG_DIR)
        }

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        for path in self.get_data_paths().values():
            path.mkdir(parents=True, exist_ok=True)

    def validate_config(self) -> Dict[str, bool]:
        """
        Validate configuration values.

        Returns:
            dict: Validation results for each setting
        """
        validations = {}

        validations['year_labels'] = (
            len(self.YEAR_LABELS) >= 2 and len(set(self.YEAR_LABELS)) == len(self.YEAR_LABELS)
        )
        validations['missing_value_policy'] = self.MISSING_VALUE_POLICY in ('zero', 'null')
        validations['fetch_timeout'] = self.FETCH_TIMEOUT_SECONDS > 0
        validations['chunk_size'] = self.DEFAULT_CHUNK_SIZE > 0
        validations['outlier_sigma'] = self.OUTLIER_SIGMA > 0
        validations['top_n_default'] = self.TOP_N_DEFAULT > 0
        validations['top_list_limit'] = self.TOP_LIST_LIMIT > 0
        validations['region_chart_limit'] = self.REGION_CHART_LIMIT > 0
        validations['api_port'] = 1000 <= self.API_PORT <= 65535

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        validations['log_level'] = self.LOG_LEVEL.upper() in valid_log_levels

        return validations

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            attr: getattr(self, attr)
            for attr in dir(self)
            if attr.isupper() and not callable(getattr(self, attr))
        }

    def save_to_file(self, file_path: str) -> None:
        """Save configuration to JSON file."""
        with open(file_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load_from_file(cls, file_path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(file_path, 'r') as f:
            config_dict = json.load(f)
        return cls(config_dict)

    def __str__(self) -> str:
        lines = ["Configuration Settings:"]
        for key, value in sorted(self.to_dict().items()):
            lines.append(f"  {key}: {value}")
        return "\n".join(lines)
