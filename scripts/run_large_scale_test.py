#!/usr/bin/env python3
# ========================
# scripts/run_large_scale_test.py
# ========================

"""
Run the pipeline on a synthetic dataset with injected defects.

Usage:
    python scripts/run_large_scale_test.py [num_countries]
"""

import sys
import os

# Add project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.speedtrends.orchestrator import SpeedPipeline
from src.utils.config import Config
from src.utils.logging_setup import setup_logging
from src.utils.sample_data import SampleDataGenerator


def main():
    """Generate a synthetic dataset and run the pipeline on it."""
    if len(sys.argv) > 1:
        try:
            num_countries = int(sys.argv[1])
        except ValueError:
            print("Usage: python run_large_scale_test.py [num_countries]")
            print("Example: python run_large_scale_test.py 50000")
            sys.exit(1)
    else:
        num_countries = 10_000

    config = Config()
    setup_logging(log_level=config.LOG_LEVEL)

    input_file = 'data/raw/synthetic_speeds.csv'
    output_dir = 'data/processed/synthetic'

    print("=" * 60)
    print("SYNTHETIC DATASET PIPELINE TEST")
    print("=" * 60)
    print(f"Rows: {num_countries:,}")
    print(f"Input file: {input_file}")
    print(f"Output directory: {output_dir}")
    print("=" * 60)

    generator = SampleDataGenerator(seed=42, year_labels=config.YEAR_LABELS)
    generation_stats = generator.generate_dataset(input_file, num_countries, error_rate=0.1)
    print(f"Injected defects: {generation_stats['error_types']}")

    pipeline = SpeedPipeline(input_file=input_file, output_dir=output_dir, config=config)
    results = pipeline.run()

    performance = results['performance']
    load_stats = results['load_stats']
    print("\nResults:")
    print(f"   Records loaded: {load_stats['records_loaded']:,}")
    print(f"   Rows dropped: {load_stats['rows_dropped']:,}")
    print(f"   Processing time: {performance['total_processing_time_seconds']:.2f}s")
    print(f"   Peak memory: {performance['peak_memory_usage_mb']:.2f} MB")


if __name__ == "__main__":
    main()
