# ========================
# tests/test_state.py
# ========================

import unittest
import tempfile
import os
import sys
from unittest import mock

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.speedtrends.ingestion import DataAcquisitionError
from src.speedtrends.state import DatasetController
from src.utils.config import Config
from src.utils.sample_data import SAMPLE_CSV

SMALL_CSV = (
    "country,major_area,region,year 2017,year 2018,year 2019,year 2020,year 2021,year 2022,year 2023,year 2024\n"
    "Chad,Africa,Middle Africa,1,1,1,1,1,1,1,2\n"
    "Short,Africa\n"
    ",Africa,Middle Africa,1,1,1,1,1,1,1,1\n"
)


class TestDatasetController(unittest.TestCase):

    def setUp(self):
        self.controller = DatasetController(Config())

    def test_load_sample(self):
        load_stats = self.controller.load_sample()

        self.assertTrue(load_stats['accepted'])
        self.assertEqual(load_stats['records_loaded'], 9)
        self.assertEqual(len(self.controller), 9)
        self.assertEqual(self.controller.source, 'sample')
        self.assertEqual(self.controller.generation, load_stats['generation'])

    def test_load_replaces_wholesale(self):
        self.controller.load_sample()
        load_stats = self.controller.load_text(SMALL_CSV, source='small.csv')

        self.assertEqual([record['country'] for record in self.controller.snapshot()], ['Chad'])
        # One short row dropped by the reader, one blank country by the normalizer
        self.assertEqual(load_stats['rows_dropped'], 2)
        self.assertEqual(self.controller.source, 'small.csv')

    def test_stale_commit_is_discarded(self):
        self.controller.load_sample()
        slow_ticket = self.controller.begin_load()
        fast_ticket = self.controller.begin_load()

        self.assertTrue(self.controller.load_text(SMALL_CSV, source='fast', ticket=fast_ticket)['accepted'])
        late = self.controller.load_text(SAMPLE_CSV, source='slow', ticket=slow_ticket)

        self.assertFalse(late['accepted'])
        self.assertEqual(len(self.controller), 1)
        self.assertEqual(self.controller.source, 'fast')
        self.assertEqual(self.controller.generation, fast_ticket)

    def test_snapshot_is_a_copy(self):
        self.controller.load_sample()
        snapshot = self.controller.snapshot()
        snapshot.clear()
        self.assertEqual(len(self.controller), 9)

    def test_add_record_prepends_and_keeps_duplicates(self):
        self.controller.load_sample()
        record = self.controller.add_record('China', 'Asia', 'Eastern Asia', {'2024': '130.5', '2023': '95.3'})

        records = self.controller.snapshot()
        self.assertIs(records[0], record)
        self.assertEqual(len(records), 10)
        self.assertEqual([r['country'] for r in records].count('China'), 2)
        self.assertEqual(record['speeds']['2024'], 130.5)
        self.assertEqual(record['speeds']['2017'], 0.0)
        self.assertAlmostEqual(record['growth'], 35.2)
        self.assertEqual(self.controller.manual_entries, 1)

    def test_add_record_blank_country(self):
        self.controller.load_sample()
        self.assertIsNone(self.controller.add_record('   '))
        self.assertEqual(len(self.controller), 9)

    def test_reload_discards_manual_entries(self):
        self.controller.load_sample()
        self.controller.add_record('Narnia', 'Fiction')
        self.controller.load_sample()

        self.assertEqual(len(self.controller), 9)
        self.assertEqual(self.controller.manual_entries, 0)

    def test_load_file(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.csv', delete=False, encoding='utf-8') as f:
            f.write(SAMPLE_CSV)
            temp_file_path = f.name

        try:
            load_stats = self.controller.load_file(temp_file_path)
            self.assertEqual(load_stats['records_loaded'], 9)
            self.assertEqual(self.controller.source, temp_file_path)
        finally:
            os.unlink(temp_file_path)

    def test_load_file_missing_keeps_records(self):
        self.controller.load_sample()
        with self.assertRaises(FileNotFoundError):
            self.controller.load_file('does_not_exist.csv')
        self.assertEqual(len(self.controller), 9)

    @mock.patch('src.speedtrends.state.fetch_csv_text')
    def test_load_url(self, mock_fetch):
        mock_fetch.return_value = SMALL_CSV
        load_stats = self.controller.load_url('https://example.com/speeds.csv')

        mock_fetch.assert_called_once_with('https://example.com/speeds.csv',
                                           timeout=self.controller.config.FETCH_TIMEOUT_SECONDS)
        self.assertTrue(load_stats['accepted'])
        self.assertEqual(self.controller.source, 'https://example.com/speeds.csv')

    @mock.patch('src.speedtrends.state.fetch_csv_text')
    def test_load_url_failure_propagates(self, mock_fetch):
        self.controller.load_sample()
        mock_fetch.side_effect = DataAcquisitionError("timed out")

        with self.assertRaises(DataAcquisitionError):
            self.controller.load_url('https://example.com/speeds.csv')
        self.assertEqual(len(self.controller), 9)

    def test_null_policy(self):
        controller = DatasetController(Config({'missing_value_policy': 'null'}))
        controller.load_sample()

        afghanistan = controller.snapshot()[0]
        self.assertIsNone(afghanistan['speeds']['2017'])
        self.assertEqual(controller.describe()['missing_value_policy'], 'null')

    def test_naive_split_config(self):
        text = SMALL_CSV + '"Korea, Republic of",Asia,Eastern Asia,1,2,3,4,5,6,7,8\n'
        controller = DatasetController(Config({'naive_csv_split': True}))
        controller.load_text(text)

        self.assertEqual(controller.snapshot()[-1]['country'], '"Korea')

    def test_alias_header_adds_no_record(self):
        text = (
            "Country Name,Continent,Subregion,2017,2018,2019,2020,2021,2022,2023,2024\n"
            "Chad,Africa,Middle Africa,1,1,1,1,1,1,1,2\n"
        )
        self.controller.load_text(text)
        self.assertEqual([record['country'] for record in self.controller.snapshot()], ['Chad'])

    def test_chunk_size_does_not_change_result(self):
        expected = self.controller.parse_text(SAMPLE_CSV)['records']

        for chunk_size in (1, 2, 4, 1000):
            controller = DatasetController(Config({'default_chunk_size': chunk_size}))
            parsed = controller.parse_text(SAMPLE_CSV)

            self.assertEqual(parsed['records'], expected, f"Failed for chunk size: {chunk_size}")
            self.assertEqual(parsed['normalizer_stats']['records_accepted'], 9)

    def test_clear(self):
        self.controller.load_sample()
        ticket = self.controller.begin_load()
        self.controller.clear()

        self.assertEqual(len(self.controller), 0)
        self.assertFalse(self.controller.commit_load(ticket, [], 'late'))
        self.assertIsNone(self.controller.describe()['source'])


if __name__ == '__main__':
    unittest.main()
