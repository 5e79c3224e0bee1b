import os
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
for path in (ROOT, SRC):
    if path not in sys.path:
        sys.path.insert(0, path)

from app.stores import REFERENCED_BY, MemoryCatalogStore
from storekit.errors import RecordNotFound, ReferenceConflict


class TestMemoryCatalogStore(unittest.TestCase):
    def setUp(self):
        self.repo = MemoryCatalogStore()
        self.store = self.repo.create_store("u1", "Main")
        self.sid = self.store["id"]

    def test_referenced_by_map(self):
        self.assertEqual(REFERENCED_BY["billboard"], [("category", "billboardId")])
        self.assertIn(("product", "sizeId"), REFERENCED_BY["size"])

    def test_records_are_scoped_to_their_store(self):
        other = self.repo.create_store("u1", "Outlet")
        size = self.repo.create("size", self.sid, {"name": "Small", "value": "S"})
        self.assertTrue(self.repo.exists("size", self.sid, size["id"]))
        self.assertFalse(self.repo.exists("size", other["id"], size["id"]))
        self.assertIsNone(self.repo.get("size", other["id"], size["id"]))
        self.assertEqual(self.repo.list("size", other["id"]), [])

    def test_returned_records_are_copies(self):
        size = self.repo.create("size", self.sid, {"name": "Small", "value": "S"})
        size["name"] = "Changed"
        self.assertEqual(self.repo.get("size", self.sid, size["id"])["name"], "Small")
        self.assertNotIn("_seq", size)

    def test_update_keeps_identity(self):
        size = self.repo.create("size", self.sid, {"name": "Small", "value": "S"})
        updated = self.repo.update("size", self.sid, size["id"], {"name": "Tiny", "value": "XS", "id": "hijack"})
        self.assertEqual(updated["id"], size["id"])
        self.assertEqual(updated["storeId"], self.sid)
        self.assertEqual(updated["createdAt"], size["createdAt"])
        with self.assertRaises(RecordNotFound):
            self.repo.update("size", self.sid, "missing", {"name": "x", "value": "y"})

    def test_delete_blocked_while_referenced(self):
        billboard = self.repo.create("billboard", self.sid, {"label": "Hero", "imageUrl": "u"})
        category = self.repo.create("category", self.sid, {"name": "Shoes", "billboardId": billboard["id"]})
        self.assertEqual(category["billboard"]["label"], "Hero")
        with self.assertRaises(ReferenceConflict) as ctx:
            self.repo.delete("billboard", self.sid, billboard["id"])
        self.assertEqual(ctx.exception.referenced_by, "category")
        self.repo.delete("category", self.sid, category["id"])
        self.repo.delete("billboard", self.sid, billboard["id"])
        self.assertEqual(self.repo.list("billboard", self.sid), [])

    def test_product_listing_filters_and_archive(self):
        refs = {}
        billboard = self.repo.create("billboard", self.sid, {"label": "Hero", "imageUrl": "u"})
        refs["categoryId"] = self.repo.create("category", self.sid, {"name": "Shoes", "billboardId": billboard["id"]})["id"]
        refs["sizeId"] = self.repo.create("size", self.sid, {"name": "L", "value": "L"})["id"]
        refs["colorId"] = self.repo.create("color", self.sid, {"name": "Black", "value": "#000"})["id"]
        base = {"images": [{"url": "u1"}, {"url": "u2"}], "price": 5.0, "isFeatured": False, "isArchived": False, **refs}
        first = self.repo.create("product", self.sid, {**base, "name": "A", "isFeatured": True})
        second = self.repo.create("product", self.sid, {**base, "name": "B", "isArchived": True})

        self.assertEqual([img["url"] for img in first["images"]], ["u1", "u2"])
        self.assertTrue(all(img.get("id") for img in first["images"]))
        self.assertEqual([p["id"] for p in self.repo.list("product", self.sid)], [second["id"], first["id"]])
        self.assertEqual([p["id"] for p in self.repo.list("product", self.sid, include_archived=False)], [first["id"]])
        featured = self.repo.list("product", self.sid, filters={"isFeatured": True})
        self.assertEqual([p["id"] for p in featured], [first["id"]])

    def test_store_delete_requires_empty_catalog(self):
        size = self.repo.create("size", self.sid, {"name": "Small", "value": "S"})
        with self.assertRaises(ReferenceConflict):
            self.repo.delete_store(self.sid)
        self.repo.delete("size", self.sid, size["id"])
        self.assertEqual(self.repo.delete_store(self.sid)["id"], self.sid)
        self.assertIsNone(self.repo.get_store(self.sid))


if __name__ == "__main__":
    unittest.main()
