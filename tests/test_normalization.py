# ========================
# tests/test_normalization.py
# ========================

import unittest
import os
import sys

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.speedtrends.normalization import MissingValuePolicy, RecordNormalizer

AFGHANISTAN = "Afghanistan,Asia,Southern Asia,null,null,6.49,8.2,9.23,1.9,2.84,3.63".split(',')


class TestRecordNormalizer(unittest.TestCase):

    def setUp(self):
        self.zero_normalizer = RecordNormalizer(MissingValuePolicy.ZERO_AS_MISSING)
        self.null_normalizer = RecordNormalizer(MissingValuePolicy.NULL_AS_MISSING)

    def test_positional_row_zero_policy(self):
        """Missing readings become 0.0 under the zero policy."""
        record = self.zero_normalizer.normalize_row(AFGHANISTAN)

        self.assertEqual(record['country'], 'Afghanistan')
        self.assertEqual(record['major_area'], 'Asia')
        self.assertEqual(record['region'], 'Southern Asia')
        self.assertEqual(record['speeds']['2017'], 0.0)
        self.assertEqual(record['speeds']['2018'], 0.0)
        self.assertEqual(record['speeds']['2019'], 6.49)
        self.assertEqual(record['speeds']['2024'], 3.63)
        self.assertAlmostEqual(record['growth'], 0.79)

    def test_positional_row_null_policy(self):
        """Missing readings stay None under the null policy."""
        record = self.null_normalizer.normalize_row(AFGHANISTAN)

        self.assertIsNone(record['speeds']['2017'])
        self.assertEqual(record['speeds']['2019'], 6.49)
        self.assertAlmostEqual(record['growth'], 0.79)
        self.assertEqual(sorted(record['speeds']), ['2017', '2018', '2019', '2020', '2021', '2022', '2023', '2024'])

    def test_keyed_row(self):
        row = {
            'country': ' Peru ', 'major_area': 'Americas', 'region': 'South America',
            '2017': '1', '2018': '2', '2019': '3', '2020': '4',
            '2021': '5', '2022': '6', '2023': '10', '2024': '7.5'
        }
        record = self.zero_normalizer.normalize_row(row)

        self.assertEqual(record['country'], 'Peru')
        self.assertEqual(record['speeds']['2023'], 10.0)
        self.assertAlmostEqual(record['growth'], -2.5)

    def test_clean_speed_tokens(self):
        """Bad values become missing and never raise."""
        cases = [
            ('12.5', 12.5),
            (' 7 ', 7.0),
            ('0', 0.0),
            ('-3.5', -3.5),
            ('null', None),
            (' NULL ', None),
            ('Null', None),
            ('', None),
            ('   ', None),
            ('fast', None),
            ('12abc', None),
            ('inf', None),
            ('nan', None),
            (None, None),
            (42, 42.0),
        ]

        for value, expected in cases:
            self.assertEqual(self.null_normalizer.clean_speed(value), expected, f"Failed for: {value!r}")
            zero_expected = 0.0 if expected is None else expected
            self.assertEqual(self.zero_normalizer.clean_speed(value), zero_expected, f"Failed for: {value!r}")

    def test_growth_requires_both_years_under_null_policy(self):
        row = AFGHANISTAN[:9] + ['null', '3.63']
        record = self.null_normalizer.normalize_row(row)
        self.assertIsNone(record['growth'])

        # The zero policy treats the missing prior year as 0
        record = self.zero_normalizer.normalize_row(row)
        self.assertAlmostEqual(record['growth'], 3.63)

    def test_blank_country_is_dropped(self):
        record = self.zero_normalizer.normalize_row(['  '] + AFGHANISTAN[1:])

        self.assertIsNone(record)
        stats = self.zero_normalizer.get_statistics()
        self.assertEqual(stats['records_processed'], 1)
        self.assertEqual(stats['records_dropped'], 1)
        self.assertEqual(stats['records_accepted'], 0)

    def test_statistics(self):
        self.null_normalizer.normalize_row(AFGHANISTAN)
        self.null_normalizer.normalize_row(['Chad', 'Africa', 'Middle Africa'] + ['1'] * 8)

        stats = self.null_normalizer.get_statistics()
        self.assertEqual(stats['records_accepted'], 2)
        self.assertEqual(stats['values_missing'], 2)
        self.assertEqual(stats['success_rate'], 100.0)

    def test_build_record_fills_absent_years(self):
        record = self.null_normalizer.build_record('Nauru', 'Oceania', '', {'2024': '15'})

        self.assertEqual(record['region'], '')
        self.assertEqual(record['speeds']['2024'], 15.0)
        self.assertIsNone(record['speeds']['2023'])
        self.assertIsNone(record['growth'])

    def test_policy_from_value(self):
        self.assertIs(MissingValuePolicy.from_value('zero'), MissingValuePolicy.ZERO_AS_MISSING)
        self.assertIs(MissingValuePolicy.from_value(' NULL '), MissingValuePolicy.NULL_AS_MISSING)
        self.assertIs(MissingValuePolicy.from_value(MissingValuePolicy.NULL_AS_MISSING),
                      MissingValuePolicy.NULL_AS_MISSING)
        with self.assertRaises(ValueError):
            MissingValuePolicy.from_value('average')

    def test_custom_year_labels(self):
        normalizer = RecordNormalizer('null', year_labels=['2022', '2023'])
        record = normalizer.normalize_row(['Peru', 'Americas', 'South America', '20', '25'])

        self.assertEqual(record['speeds'], {'2022': 20.0, '2023': 25.0})
        self.assertEqual(record['growth'], 5.0)


if __name__ == '__main__':
    unittest.main()
