import os
import sys
import unittest
from datetime import datetime

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from storekit.listing_format import format_created_at, format_price, format_rows


class TestListingFormat(unittest.TestCase):
    def test_created_at_uses_ordinal_day(self):
        self.assertEqual(format_created_at(datetime(2026, 10, 19)), "October 19th, 2026")
        self.assertEqual(format_created_at("2026-10-01T08:30:00Z"), "October 1st, 2026")
        cases = {2: "2nd", 3: "3rd", 11: "11th", 12: "12th", 13: "13th", 21: "21st", 22: "22nd", 23: "23rd", 31: "31st"}
        for day, text in cases.items():
            self.assertEqual(format_created_at(datetime(2026, 1, day)), f"January {text}, 2026")

    def test_created_at_unparseable(self):
        self.assertEqual(format_created_at(None), "")
        self.assertEqual(format_created_at("yesterday"), "")

    def test_price(self):
        self.assertEqual(format_price(1234.5), "$1,234.50")
        self.assertEqual(format_price("7"), "$7.00")
        self.assertEqual(format_price(None), "")

    def test_category_rows(self):
        rows = format_rows(
            "category",
            [{"id": "c1", "name": "Shoes", "billboard": {"label": "Autumn"}, "createdAt": "2026-10-19T00:00:00+00:00"}],
        )
        self.assertEqual(rows, [{"id": "c1", "name": "Shoes", "billboardLabel": "Autumn", "createdAt": "October 19th, 2026"}])

    def test_product_rows_tolerate_missing_relations(self):
        rows = format_rows("product", [{"id": "p1", "name": "Runner", "price": 10, "createdAt": None}])
        self.assertEqual(rows[0]["category"], None)
        self.assertEqual(rows[0]["price"], "$10.00")
        self.assertIs(rows[0]["isArchived"], False)

    def test_unknown_kind(self):
        with self.assertRaises(KeyError):
            format_rows("store", [])


if __name__ == "__main__":
    unittest.main()
