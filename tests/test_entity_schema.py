import os
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from storekit.entity_schema import (
    BILLBOARD,
    CATEGORY,
    COLOR,
    PRODUCT,
    SIZE,
    conflict_message,
    kind_for_segment,
    validate_payload,
)


def _product(**overrides):
    payload = {
        "name": "Runner",
        "images": [{"url": "https://img.example/a.png"}],
        "price": "12.50",
        "categoryId": "c1",
        "sizeId": "s1",
        "colorId": "k1",
    }
    payload.update(overrides)
    return payload


class TestEntitySchema(unittest.TestCase):
    def test_color_value_rules(self):
        errors, clean = validate_payload(COLOR, {"name": "White", "value": "#fff"})
        self.assertEqual(errors, [])
        self.assertEqual(clean, {"name": "White", "value": "#fff"})

        errors, _ = validate_payload(COLOR, {"name": "White", "value": "ffff"})
        self.assertEqual(errors[0]["message"], "Value must be a valid hex code")

        for short in ("fff", "#f"):
            errors, _ = validate_payload(COLOR, {"name": "White", "value": short})
            self.assertEqual(errors[0]["code"], "INVALID_FIELD", short)
            self.assertEqual(errors[0]["path"], "value")

    def test_required_fields_in_declared_order(self):
        errors, _ = validate_payload(PRODUCT, {})
        self.assertEqual(
            [e["path"] for e in errors],
            ["name", "images", "price", "categoryId", "sizeId", "colorId"],
        )
        self.assertEqual(errors[0]["message"], "Name is required")
        self.assertTrue(all(e["code"] == "REQUIRED_FIELD" for e in errors))

    def test_product_normalisation(self):
        errors, clean = validate_payload(
            PRODUCT,
            _product(images=[{"url": "https://img.example/a.png", "id": "img1"}], id="p1", storeId="x"),
        )
        self.assertEqual(errors, [])
        self.assertEqual(clean["price"], 12.5)
        self.assertEqual(clean["images"], [{"url": "https://img.example/a.png"}])
        self.assertIs(clean["isFeatured"], False)
        self.assertIs(clean["isArchived"], False)
        self.assertNotIn("id", clean)
        self.assertNotIn("storeId", clean)

    def test_price_rules(self):
        errors, _ = validate_payload(PRODUCT, _product(price=0))
        self.assertEqual(errors[0]["message"], "Price is required")
        errors, _ = validate_payload(PRODUCT, _product(price=-3))
        self.assertEqual(errors[0]["code"], "INVALID_FIELD")
        errors, _ = validate_payload(PRODUCT, _product(price="cheap"))
        self.assertEqual(errors[0]["path"], "price")
        errors, _ = validate_payload(PRODUCT, _product(price=True))
        self.assertEqual(errors[0]["path"], "price")

    def test_price_must_be_finite_and_bounded(self):
        for price in (float("nan"), float("inf"), float("-inf"), "nan", "1e400", 10**400, 10**10, 9999999999.999):
            errors, _ = validate_payload(PRODUCT, _product(price=price))
            self.assertEqual(len(errors), 1, price)
            self.assertEqual(errors[0]["code"], "INVALID_FIELD", price)
            self.assertEqual(errors[0]["path"], "price", price)
        errors, clean = validate_payload(PRODUCT, _product(price=9999999999.99))
        self.assertEqual(errors, [])
        self.assertEqual(clean["price"], 9999999999.99)

    def test_images_need_urls(self):
        errors, _ = validate_payload(PRODUCT, _product(images=[]))
        self.assertEqual(errors[0]["message"], "Images are required")
        errors, _ = validate_payload(PRODUCT, _product(images=[{"alt": "x"}]))
        self.assertEqual(errors[0]["path"], "images.0.url")

    def test_boolean_flags_are_checked(self):
        errors, _ = validate_payload(PRODUCT, _product(isFeatured="yes"))
        self.assertEqual(errors[0]["path"], "isFeatured")

    def test_non_object_payload(self):
        errors, clean = validate_payload(SIZE, ["S"])
        self.assertEqual(errors[0]["code"], "INVALID_BODY")
        self.assertEqual(clean, {})

    def test_kind_lookup(self):
        self.assertIs(kind_for_segment("categories"), CATEGORY)
        self.assertIs(kind_for_segment("/Sizes/"), SIZE)
        self.assertIsNone(kind_for_segment("stores"))
        self.assertIsNone(kind_for_segment(""))
        self.assertEqual(CATEGORY.references, {"billboardId": "billboard"})

    def test_conflict_message_names_dependents(self):
        self.assertEqual(conflict_message(SIZE), "Make sure you removed all products using this size first.")
        self.assertEqual(conflict_message(BILLBOARD), "Make sure you removed all categories using this billboard first.")


if __name__ == "__main__":
    unittest.main()
