#!/usr/bin/env python3
# ========================
# main.py
# ========================

"""
Main Entry Point for the Internet Speed Insights Pipeline

Usage:
    python main.py [input.csv]

Without an argument the bundled 2017-2024 sample dataset is used.
"""

import sys
import logging
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from src.speedtrends import SpeedPipeline, DataAcquisitionError
from src.utils import Config, setup_logging


def main(argv=None):
    """Main execution function."""
    argv = sys.argv[1:] if argv is None else argv
    config = Config()

    setup_logging(
        log_level=config.LOG_LEVEL,
        log_file="pipeline.log",
        log_dir=config.LOG_DIR
    )

    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info("INTERNET SPEED INSIGHTS PIPELINE - MAIN EXECUTION")
    logger.info("=" * 60)

    invalid = [name for name, ok in config.validate_config().items() if not ok]
    if invalid:
        logger.error(f"Invalid configuration: {', '.join(invalid)}")
        return 1

    input_file = argv[0] if argv else (config.DEFAULT_INPUT_FILE or None)

    try:
        config.ensure_directories()

        pipeline = SpeedPipeline(
            input_file=input_file,
            output_dir=config.DEFAULT_OUTPUT_DIR,
            config=config
        )

        if not pipeline.validate_input():
            logger.error("Input validation failed. Exiting.")
            return 1

        results = pipeline.run()
        _print_execution_summary(results)
        return 0

    except (OSError, DataAcquisitionError) as e:
        logger.error(f"Pipeline execution failed: {e}", exc_info=True)
        return 1


def _print_execution_summary(results: dict) -> None:
    """Print final execution summary."""
    load_stats = results['load_stats']
    report = results['report']
    kpis = report['kpis']

    print("\n" + "=" * 70)
    print("PIPELINE EXECUTION SUMMARY")
    print("=" * 70)

    print("Data Loading:")
    print(f"   - Source: {results['input_file']}")
    print(f"   - Records loaded: {load_stats['records_loaded']:,}")
    print(f"   - Rows dropped: {load_stats['rows_dropped']:,}")

    print(f"\nKey Figures ({kpis['year']}):")
    print(f"   - Average speed: {kpis['average_speed']:.2f} Mbps")
    print(f"   - Improved since {kpis['prior_year']}: {kpis['improved_count']}")
    print(f"   - Mean growth: {kpis['mean_growth']:.2f} Mbps")
    print(f"   - Impact score: {kpis['impact_score']:.1f}")

    print(f"\nTop {len(report['top']['labels'])}:")
    for rank, (country, value) in enumerate(zip(report['top']['labels'], report['top']['values']), start=1):
        print(f"   {rank}. {country} - {value} Mbps")

    outliers = report['outliers']
    print(f"\nOutliers (mean {outliers['mean']:.2f}, std {outliers['std']:.2f}):")
    print(f"   - High: {', '.join(outliers['high']) or 'none'}")
    print(f"   - Low: {', '.join(outliers['low']) or 'none'}")

    print("\nGenerated Outputs:")
    for output_type, file_path in results['saved_files'].items():
        print(f"   - {output_type.replace('_', ' ').title()}: {Path(file_path).name}")

    print("=" * 70)


if __name__ == '__main__':
    sys.exit(main())
