# -*- coding: utf-8 -*-
# test_check_helpers.py: Unit tests for percentage and formatting helpers

import unittest
from decimal import Decimal

from plugins.common.check_helpers import (
    floor_percentage,
    hr_bytes,
    hr_bytes_rnd,
    hr_num,
    pretty_uptime,
    round_half_up,
)


class TestPercentages(unittest.TestCase):
    def test_floor_percentage(self):
        self.assertEqual(floor_percentage(29, 100), 29)
        self.assertEqual(floor_percentage(1, 3), 33)
        self.assertEqual(floor_percentage(2, 3), 66)
        self.assertIsNone(floor_percentage(5, 0))

    def test_floor_percentage_is_exact_for_large_counters(self):
        self.assertEqual(floor_percentage(10 ** 18 - 1, 10 ** 18), 99)

    def test_round_half_up(self):
        self.assertEqual(round_half_up(94.45), Decimal('94.5'))
        self.assertEqual(round_half_up(Decimal('0.05')), Decimal('0.1'))
        self.assertEqual(round_half_up(Decimal('1.1574'), 3), Decimal('1.157'))


class TestFormatting(unittest.TestCase):
    def test_hr_bytes(self):
        self.assertEqual(hr_bytes(16 * 1024 ** 2), "16.0M")
        self.assertEqual(hr_bytes(3 * 1024 ** 3 // 2), "1.5G")
        self.assertEqual(hr_bytes(2048), "2.0K")
        self.assertEqual(hr_bytes(512), "512B")

    def test_hr_bytes_rnd(self):
        self.assertEqual(hr_bytes_rnd(64 * 1024 ** 2), "64M")
        self.assertEqual(hr_bytes_rnd(64 * 1024 ** 2 + 1000), "64M")
        self.assertEqual(hr_bytes_rnd(2 * 1024 ** 3), "2G")
        self.assertEqual(hr_bytes_rnd(0), "0B")

    def test_hr_num(self):
        self.assertEqual(hr_num(999), "999")
        self.assertEqual(hr_num(60000), "60K")
        self.assertEqual(hr_num(1500000), "1M")
        self.assertEqual(hr_num(2 * 10 ** 9), "2B")

    def test_pretty_uptime(self):
        self.assertEqual(pretty_uptime(93784), "1d 2h 3m 4s")
        self.assertEqual(pretty_uptime(3600), "1h 0m 0s")
        self.assertEqual(pretty_uptime(61), "1m 1s")
        self.assertEqual(pretty_uptime(59), "59s")


if __name__ == '__main__':
    unittest.main()
