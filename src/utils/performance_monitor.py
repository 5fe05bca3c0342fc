# ========================
# src/utils/performance_monitor.py
# ========================

"""
Performance Monitoring Utilities

Tracks elapsed time, throughput and process memory for pipeline runs.
"""

import os
import time
import logging
from contextlib import contextmanager
from typing import Dict, Any, Optional

import psutil

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """
    Performance monitor for a single pipeline run.
    Records processed rows, named checkpoints and peak resident memory.
    """

    def __init__(self, name: str = "Pipeline"):
        self.name = name
        self.start_time = None
        self.end_time = None
        self.peak_memory_mb = 0.0
        self.records_processed = 0
        self.checkpoints = []
        self._process = psutil.Process(os.getpid())

        logger.debug(f"PerformanceMonitor initialized: {name}")

    def start_monitoring(self) -> None:
        """Start performance monitoring."""
        self.start_time = time.time()
        self.peak_memory_mb = self._get_memory_usage_mb()
        logger.info(f"{self.name} - monitoring started (memory: {self.peak_memory_mb:.2f} MB)")

    def update_progress(self, records: int) -> None:
        """
        Add processed records to the running total.

        Args:
            records (int): Number of records handled since the last update
        """
        self.records_processed += records
        self.peak_memory_mb = max(self.peak_memory_mb, self._get_memory_usage_mb())

    def add_checkpoint(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        Add a performance checkpoint.

        Args:
            name (str): Checkpoint name
            metadata (dict): Optional metadata to store
        """
        checkpoint = {
            'name': name,
            'elapsed_seconds': time.time() - self.start_time if self.start_time else 0.0,
            'memory_mb': self._get_memory_usage_mb(),
            'records_processed': self.records_processed,
            'metadata': metadata or {}
        }
        self.checkpoints.append(checkpoint)
        logger.debug(f"Checkpoint '{name}': {checkpoint}")

    def stop_monitoring(self) -> Dict[str, Any]:
        """
        Stop monitoring and return performance summary.

        Returns:
            dict: Performance statistics
        """
        self.end_time = time.time()
        total_time = self.end_time - self.start_time if self.start_time else 0.0
        throughput = self.records_processed / total_time if total_time > 0 else 0.0

        summary = {
            'name': self.name,
            'total_processing_time_seconds': total_time,
            'records_processed': self.records_processed,
            'average_throughput_records_per_second': throughput,
            'peak_memory_usage_mb': self.peak_memory_mb,
            'checkpoints': self.checkpoints
        }

        logger.info(
            f"{self.name} - finished in {total_time:.3f}s, "
            f"{self.records_processed:,} records, "
            f"{throughput:.0f} records/sec, "
            f"peak memory {self.peak_memory_mb:.2f} MB"
        )
        return summary

    def _get_memory_usage_mb(self) -> float:
        """Current resident set size in MB."""
        return self._process.memory_info().rss / (1024 * 1024)


@contextmanager
def monitor_performance(name: str = "Pipeline"):
    """
    Context manager for easy performance monitoring.

    Args:
        name (str): Name for this monitoring session

    Yields:
        PerformanceMonitor: Monitor instance; ``monitor.summary`` holds the
        statistics once the block exits.
    """
    monitor = PerformanceMonitor(name)
    monitor.start_monitoring()
    try:
        yield monitor
    finally:
        monitor.summary = monitor.stop_monitoring()
