"""Tests for utility helpers."""

import datetime
import unittest
from unittest.mock import patch

from korban.utils import (
    format_bytes,
    is_valid_email,
    is_valid_month,
    local_today,
    month_key,
    natural_sort_key,
    strip_none,
    to_datetime,
)

UTC = datetime.timezone.utc


class UtilsTestCase(unittest.TestCase):
    def test_format_bytes(self):
        self.assertEqual(format_bytes(0), "0 Bytes")
        self.assertEqual(format_bytes(512), "512 Bytes")
        self.assertEqual(format_bytes(1536), "1.5 KB")
        self.assertEqual(format_bytes(5 * 1024**3), "5 GB")

    def test_natural_sort_key(self):
        names = ["Kumpulan 10", "Kumpulan 9", "kumpulan 1"]
        self.assertEqual(
            sorted(names, key=natural_sort_key),
            ["kumpulan 1", "Kumpulan 9", "Kumpulan 10"],
        )

    def test_to_datetime(self):
        aware = datetime.datetime(2025, 9, 1, 8, tzinfo=UTC)
        self.assertEqual(to_datetime(aware), aware)
        self.assertEqual(to_datetime(datetime.datetime(2025, 9, 1, 8)), aware)
        self.assertEqual(to_datetime("2025-09-01T08:00:00Z"), aware)
        self.assertEqual(
            to_datetime(datetime.date(2025, 9, 1)),
            datetime.datetime(2025, 9, 1, tzinfo=UTC),
        )
        self.assertIsNone(to_datetime("not a date"))
        self.assertIsNone(to_datetime(None))

    @patch("korban.utils.utcnow")
    def test_local_today(self, mock_utcnow):
        mock_utcnow.return_value = datetime.datetime(2025, 9, 30, 17, 30, tzinfo=UTC)
        self.assertEqual(local_today(), datetime.date(2025, 9, 30))
        self.assertEqual(
            local_today("Asia/Kuala_Lumpur"), datetime.date(2025, 10, 1)
        )

    def test_month_key(self):
        moment = datetime.datetime(2025, 9, 30, tzinfo=UTC)
        self.assertEqual(month_key(moment), "2025-09")
        self.assertIsNone(month_key(None))

    def test_validators(self):
        self.assertTrue(is_valid_month("2025-09"))
        self.assertFalse(is_valid_month("2025-13"))
        self.assertTrue(is_valid_email("siti@example.com"))
        self.assertFalse(is_valid_email("siti@"))
        self.assertFalse(is_valid_email(None))

    def test_strip_none(self):
        self.assertEqual(strip_none({"a": 1, "b": None, "c": ""}), {"a": 1, "c": ""})
