import os
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fastapi.testclient import TestClient
from jose import jwt

os.environ["USE_DB"] = "0"
os.environ["STOREFRONT_DISABLE_AUTH"] = "0"
os.environ["SUPABASE_URL"] = "http://localhost"
os.environ["SUPABASE_JWT_SECRET"] = "test-secret"
os.environ.pop("SUPABASE_JWT_AUD", None)

import app.main as main
from app.stores import MemoryCatalogStore


def _auth(user_id):
    token = jwt.encode({"sub": user_id, "iss": "http://localhost/auth/v1"}, "test-secret", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


class TestStoresApi(unittest.TestCase):
    def setUp(self):
        main.catalog = MemoryCatalogStore()
        self.client = TestClient(main.app)
        self.owner = _auth("user_owner")
        self.stranger = _auth("user_stranger")

    def _create_store(self, name, headers=None):
        res = self.client.post("/api/stores", json={"name": name}, headers=headers or self.owner)
        self.assertEqual(res.status_code, 200, res.text)
        return res.json()["record"]

    def test_health_is_public(self):
        res = self.client.get("/health")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.json()["ok"])

    def test_create_store_requires_name(self):
        res = self.client.post("/api/stores", json={"name": ""}, headers=self.owner)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["message"], "Name is required")

    def test_create_store_requires_user(self):
        res = self.client.post("/api/stores", json={"name": "Main"})
        self.assertEqual(res.status_code, 401)

    def test_stores_are_listed_per_user(self):
        mine = self._create_store("Main")
        self._create_store("Theirs", headers=self.stranger)
        res = self.client.get("/api/stores", headers=self.owner)
        self.assertEqual([s["id"] for s in res.json()["records"]], [mine["id"]])
        self.assertEqual(mine["userId"], "user_owner")

    def test_rename_store(self):
        store = self._create_store("Main")
        res = self.client.patch(f"/api/stores/{store['id']}", json={"name": "Flagship"}, headers=self.owner)
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json()["record"]["name"], "Flagship")

    def test_other_users_store_is_forbidden(self):
        store = self._create_store("Main")
        res = self.client.get(f"/api/stores/{store['id']}", headers=self.stranger)
        self.assertEqual(res.status_code, 403)
        res = self.client.patch(f"/api/stores/{store['id']}", json={"name": "Mine now"}, headers=self.stranger)
        self.assertEqual(res.status_code, 403)
        res = self.client.get(f"/api/stores/{store['id']}", headers=self.owner)
        self.assertEqual(res.json()["record"]["name"], "Main")

    def test_store_with_catalog_cannot_be_deleted(self):
        store = self._create_store("Main")
        self.client.post(
            f"/api/{store['id']}/billboards",
            json={"label": "Hero", "imageUrl": "https://img.example/hero.png"},
            headers=self.owner,
        )
        res = self.client.delete(f"/api/stores/{store['id']}", headers=self.owner)
        self.assertEqual(res.status_code, 409)
        self.assertEqual(
            res.json()["errors"][0]["message"],
            "Make sure you removed all products and categories using this store first.",
        )

    def test_delete_empty_store(self):
        store = self._create_store("Main")
        res = self.client.delete(f"/api/stores/{store['id']}", headers=self.owner)
        self.assertEqual(res.status_code, 200, res.text)
        res = self.client.get("/api/stores", headers=self.owner)
        self.assertEqual(res.json()["records"], [])

    def test_root_without_stores_opens_setup_modal(self):
        res = self.client.get("/", headers=self.owner)
        self.assertEqual(res.status_code, 200)
        self.assertIn('data-modal="store-setup"', res.text)
        self.assertIn('data-endpoint="/api/stores"', res.text)

    def test_root_redirects_to_first_store(self):
        first = self._create_store("Main")
        self._create_store("Outlet")
        res = self.client.get("/", headers=self.owner, follow_redirects=False)
        self.assertEqual(res.status_code, 307)
        self.assertEqual(res.headers["location"], f"/dashboard/{first['id']}/products")

    def test_root_requires_user(self):
        res = self.client.get("/")
        self.assertEqual(res.status_code, 401)


if __name__ == "__main__":
    unittest.main()
