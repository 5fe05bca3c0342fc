# ========================
# src/speedtrends/orchestrator.py
# ========================

"""
Pipeline Orchestrator Module

Coordinates loading, analysis and saving for one dataset.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .aggregation import SpeedAggregator
from .query import QueryEngine
from .state import DatasetController
from .storage import ReportSaver
from ..utils.config import Config
from ..utils.performance_monitor import monitor_performance

logger = logging.getLogger(__name__)


class SpeedPipeline:
    """
    Runs the whole flow: load CSV, normalize, build the dashboard report,
    save outputs.
    """

    def __init__(self,
                 input_file: Optional[str],
                 output_dir: str,
                 config: Optional[Config] = None,
                 controller: Optional[DatasetController] = None):
        """
        Initialize the pipeline.

        Args:
            input_file (str): Path to input CSV file, or None for the bundled sample
            output_dir (str): Directory for output files
            config (Config): Configuration object
            controller (DatasetController): Shared record store, created if omitted
        """
        self.input_file = input_file
        self.output_dir = output_dir
        self.config = config or Config()

        self.controller = controller or DatasetController(self.config)
        self.aggregator = SpeedAggregator(
            policy=self.controller.policy,
            year_labels=self.config.YEAR_LABELS,
            outlier_sigma=self.config.OUTLIER_SIGMA
        )
        self.query_engine = QueryEngine(
            self.aggregator,
            top_list_limit=self.config.TOP_LIST_LIMIT,
            region_chart_limit=self.config.REGION_CHART_LIMIT,
            all_sentinel=self.config.REGION_ALL_SENTINEL
        )
        self.saver = ReportSaver(self.output_dir, year_labels=self.config.YEAR_LABELS)

        logger.info("SpeedPipeline initialized:")
        logger.info(f"  Input: {self.input_file or 'bundled sample'}")
        logger.info(f"  Output: {self.output_dir}")
        logger.info(f"  Missing value policy: {self.controller.policy.value}")

    def run(self) -> Dict[str, Any]:
        """
        Execute the complete pipeline from start to finish.

        Returns:
            dict: Load statistics, the report and the saved file paths
        """
        logger.info(f"Starting speed pipeline for '{self.input_file or 'sample'}'...")

        with monitor_performance("SpeedPipeline") as monitor:
            if self.input_file:
                load_stats = self.controller.load_file(self.input_file)
            else:
                load_stats = self.controller.load_sample()

            records = self.controller.snapshot()
            monitor.update_progress(load_stats['reader_stats']['rows_read'])
            monitor.add_checkpoint('loaded', {'records': len(records)})

            report = self.build_report(records)
            monitor.add_checkpoint('analysed')

            saved_files = self.saver.save_all(records, report)
            saved_files['data_dictionary'] = self.saver.create_data_dictionary()

        results = {
            'pipeline_status': 'completed',
            'input_file': self.input_file or 'sample',
            'output_directory': self.output_dir,
            'load_stats': load_stats,
            'report': report,
            'saved_files': saved_files,
            'performance': monitor.summary
        }

        logger.info("Pipeline finished successfully.")
        self._log_final_summary(results)
        return results

    def build_report(self, records: Sequence[Dict[str, Any]], year: Optional[str] = None) -> Dict[str, Any]:
        """
        Compute every dashboard section for ``records``.

        Args:
            records: Record set to summarize
            year (str): Year label for rankings and averages; latest by default
        """
        year = self.query_engine.resolve_year(year)
        continents = self._continent_names(records)

        return {
            'year': year,
            'kpis': self.aggregator.kpi_summary(records),
            'group_averages': self.aggregator.group_averages(records, year)[:self.config.REGION_CHART_LIMIT],
            'top': self.query_engine.top_series(records, self.config.TOP_N_DEFAULT, year),
            'outliers': self.aggregator.outlier_summary(records, year),
            'continents': {
                name: self.query_engine.continent_report(records, name, year)
                for name in continents
            }
        }

    @staticmethod
    def _continent_names(records: Sequence[Dict[str, Any]]) -> List[str]:
        """Distinct non-empty major areas in first-seen order."""
        seen = {}
        for record in records:
            name = record.get('major_area')
            if name and name.lower() not in seen:
                seen[name.lower()] = name
        return list(seen.values())

    def _log_final_summary(self, results: Dict[str, Any]) -> None:
        load_stats = results['load_stats']
        kpis = results['report']['kpis']

        logger.info("=" * 60)
        logger.info("PIPELINE EXECUTION SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Input: {results['input_file']}")
        logger.info(f"Records loaded: {load_stats['records_loaded']:,}")
        logger.info(f"Rows dropped: {load_stats['rows_dropped']:,}")
        logger.info(f"Average {kpis['year']} speed: {kpis['average_speed']:.2f} Mbps")
        logger.info(f"Improved since {kpis['prior_year']}: {kpis['improved_count']}")
        logger.info(f"Impact score: {kpis['impact_score']:.1f}")
        logger.info(f"Output files generated: {len(results['saved_files'])}")
        for output_type, file_path in results['saved_files'].items():
            logger.info(f"  - {output_type}: {file_path}")
        logger.info("=" * 60)

    def validate_input(self) -> bool:
        """
        Validate input file exists and is readable. The bundled sample is
        always valid.
        """
        if not self.input_file:
            return True

        input_path = Path(self.input_file)
        if not input_path.exists():
            logger.error(f"Input file does not exist: {self.input_file}")
            return False

        if not input_path.is_file():
            logger.error(f"Input path is not a file: {self.input_file}")
            return False

        try:
            with open(input_path, 'r', encoding='utf-8-sig') as f:
                f.readline()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read input file: {e}")
            return False

        logger.info(f"Input validation passed: {self.input_file}")
        return True
