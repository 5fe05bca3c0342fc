# ========================
# src/utils/__init__.py
# ========================

"""
Utilities Package

Configuration, logging, performance monitoring and sample data for the pipeline.
"""

from .config import Config, DEFAULT_YEAR_LABELS
from .performance_monitor import monitor_performance, PerformanceMonitor
from .logging_setup import setup_logging
from .sample_data import SampleDataGenerator, SAMPLE_CSV

__all__ = [
    'Config',
    'DEFAULT_YEAR_LABELS',
    'monitor_performance',
    'PerformanceMonitor',
    'setup_logging',
    'SampleDataGenerator',
    'SAMPLE_CSV'
]
