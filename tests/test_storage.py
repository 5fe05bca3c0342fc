# ========================
# tests/test_storage.py
# ========================

import unittest
import tempfile
import json
import csv
import os
import sys
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.speedtrends.state import DatasetController
from src.speedtrends.storage import records_to_csv_text, records_to_json_text
from src.utils.config import Config


class TestExports(unittest.TestCase):

    def test_csv_export_reloads_to_same_records(self):
        """Normalizing the exported text again gives back the same records."""
        for policy in ('zero', 'null'):
            controller = DatasetController(Config({'missing_value_policy': policy}))
            controller.load_sample()
            controller.add_record('Narnia', '', '', {'2024': '1.5'})
            original = controller.snapshot()

            text = records_to_csv_text(original)
            reloaded = controller.parse_text(text)['records']

            self.assertEqual(reloaded, original, f"Failed for policy: {policy}")
            self.assertEqual(records_to_csv_text(reloaded), text)

    def test_csv_export_layout(self):
        controller = DatasetController(Config({'missing_value_policy': 'null'}))
        controller.load_sample()

        lines = records_to_csv_text(controller.snapshot()).splitlines()
        self.assertEqual(lines[0].split(',')[:4], ['country', 'major_area', 'region', 'year 2017'])
        self.assertEqual(lines[1], 'Afghanistan,Asia,Southern Asia,null,null,6.49,8.2,9.23,1.9,2.84,3.63')

    def test_csv_export_quotes_commas(self):
        controller = DatasetController()
        controller.add_record('Korea, Republic of', 'Asia', 'Eastern Asia', {'2024': '100'})

        text = records_to_csv_text(controller.snapshot())
        self.assertIn('"Korea, Republic of"', text)
        self.assertEqual(controller.parse_text(text)['records'][0]['country'], 'Korea, Republic of')

    def test_json_export(self):
        controller = DatasetController(Config({'missing_value_policy': 'null'}))
        controller.load_sample()

        payload = json.loads(records_to_json_text(controller.snapshot()))
        self.assertEqual(len(payload), 9)
        self.assertIsNone(payload[0]['speeds']['2017'])
        self.assertEqual(payload[1]['country'], 'Albania')

    def test_empty_exports(self):
        self.assertEqual(json.loads(records_to_json_text([])), [])
        self.assertEqual(len(records_to_csv_text([]).splitlines()), 1)


class TestReportSaver(unittest.TestCase):

    def test_save_all(self):
        from src.speedtrends.orchestrator import SpeedPipeline

        with tempfile.TemporaryDirectory() as output_dir:
            pipeline = SpeedPipeline(input_file=None, output_dir=output_dir)
            pipeline.controller.load_sample()
            records = pipeline.controller.snapshot()
            report = pipeline.build_report(records)

            saved_files = pipeline.saver.save_all(records, report)

            self.assertEqual(
                set(saved_files),
                {'records_csv', 'records_json', 'region_averages', 'top_countries', 'outliers', 'kpi_summary'}
            )
            for file_path in saved_files.values():
                self.assertTrue(Path(file_path).exists(), file_path)

            with open(saved_files['top_countries'], newline='', encoding='utf-8') as f:
                rows = list(csv.DictReader(f))
            self.assertEqual(rows[0]['country'], 'China')
            self.assertEqual(rows[0]['rank'], '1')

            with open(saved_files['kpi_summary'], encoding='utf-8') as f:
                summary = json.load(f)
            self.assertEqual(summary['kpis']['record_count'], 9)
            self.assertEqual(summary['continents']['Asia']['highest']['country'], 'China')

            dictionary = pipeline.saver.create_data_dictionary()
            self.assertIn('year 2017 .. year 2024', Path(dictionary).read_text(encoding='utf-8'))


if __name__ == '__main__':
    unittest.main()
