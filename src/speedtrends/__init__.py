# ========================
# src/speedtrends/__init__.py
# ========================

"""
Speed Trends Package

Core components of the internet speed insights pipeline:
- ingestion: CSV acquisition and row splitting
- normalization: Typed records and the missing-value policy
- aggregation: Group averages, outliers, rankings, KPIs
- query: Record filters and continent reports
- state: The shared record set
- storage: CSV / JSON exports and report files
- orchestrator: End-to-end pipeline runs
"""

from .ingestion import CSVReader, DataAcquisitionError
from .normalization import MissingValuePolicy, RecordNormalizer
from .aggregation import SpeedAggregator, speed_band
from .query import QueryEngine
from .state import DatasetController
from .storage import ReportSaver, records_to_csv_text, records_to_json_text
from .orchestrator import SpeedPipeline

__all__ = [
    'CSVReader',
    'DataAcquisitionError',
    'MissingValuePolicy',
    'RecordNormalizer',
    'SpeedAggregator',
    'speed_band',
    'QueryEngine',
    'DatasetController',
    'ReportSaver',
    'records_to_csv_text',
    'records_to_json_text',
    'SpeedPipeline'
]

__version__ = "1.0.0"
