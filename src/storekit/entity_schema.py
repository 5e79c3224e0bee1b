"""Field schemas for catalog entities.

The same schema is used by the API handlers and by the client-side form
controller so that both sides accept and reject exactly the same payloads.
Each entity kind declares its editable fields in submission order; a payload
is checked field by field and reduced to the declared fields only.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List


Issue = Dict[str, Any]

HEX_PREFIX_RE = re.compile(r"^#")
# numeric(12, 2) upper bound
MAX_PRICE = 10**10


@dataclass(frozen=True)
class EntityKind:
    key: str
    segment: str
    label: str
    fields: List[dict]
    # field id -> key of the entity kind it must resolve to in the same store
    references: Dict[str, str] = field(default_factory=dict)

    @property
    def field_ids(self) -> list[str]:
        return [f["id"] for f in self.fields]


STORE = EntityKind(
    key="store",
    segment="stores",
    label="Store",
    fields=[
        {"id": "name", "type": "string", "required": True, "message": "Name is required"},
    ],
)

BILLBOARD = EntityKind(
    key="billboard",
    segment="billboards",
    label="Billboard",
    fields=[
        {"id": "label", "type": "string", "required": True, "message": "Label is required"},
        {"id": "imageUrl", "type": "string", "required": True, "message": "Image URL is required"},
    ],
)

CATEGORY = EntityKind(
    key="category",
    segment="categories",
    label="Category",
    fields=[
        {"id": "name", "type": "string", "required": True, "message": "Name is required"},
        {"id": "billboardId", "type": "string", "required": True, "message": "Billboard id is required"},
    ],
    references={"billboardId": "billboard"},
)

COLOR = EntityKind(
    key="color",
    segment="colors",
    label="Color",
    fields=[
        {"id": "name", "type": "string", "required": True, "message": "Name is required"},
        {
            "id": "value",
            "type": "string",
            "required": True,
            "message": "Value is required",
            "min_length": 4,
            "pattern": HEX_PREFIX_RE,
            "pattern_message": "Value must be a valid hex code",
        },
    ],
)

SIZE = EntityKind(
    key="size",
    segment="sizes",
    label="Size",
    fields=[
        {"id": "name", "type": "string", "required": True, "message": "Name is required"},
        {"id": "value", "type": "string", "required": True, "message": "Value is required"},
    ],
)

PRODUCT = EntityKind(
    key="product",
    segment="products",
    label="Product",
    fields=[
        {"id": "name", "type": "string", "required": True, "message": "Name is required"},
        {"id": "images", "type": "images", "required": True, "message": "Images are required"},
        {"id": "price", "type": "price", "required": True, "message": "Price is required"},
        {"id": "categoryId", "type": "string", "required": True, "message": "Category is required"},
        {"id": "sizeId", "type": "string", "required": True, "message": "Size is required"},
        {"id": "colorId", "type": "string", "required": True, "message": "Color is required"},
        {"id": "isFeatured", "type": "boolean", "default": False},
        {"id": "isArchived", "type": "boolean", "default": False},
    ],
    references={"categoryId": "category", "sizeId": "size", "colorId": "color"},
)

ENTITY_KINDS: Dict[str, EntityKind] = {
    kind.segment: kind for kind in (BILLBOARD, CATEGORY, COLOR, SIZE, PRODUCT)
}

# what has to be removed before a row of this kind can be deleted
_DEPENDENT_WORDING = {
    "billboard": "categories",
    "category": "products",
    "color": "products",
    "size": "products",
    "store": "products and categories",
}


def kind_for_segment(segment: str) -> EntityKind | None:
    return ENTITY_KINDS.get((segment or "").strip("/").strip().lower())


def conflict_message(kind: EntityKind) -> str:
    dependents = _DEPENDENT_WORDING.get(kind.key, "dependent records")
    return f"Make sure you removed all {dependents} using this {kind.label.lower()} first."


def _issue(code: str, message: str, path: str | None = None, detail: dict | None = None) -> Issue:
    return {"code": code, "message": message, "path": path, "detail": detail}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)) and len(value) == 0:
        return True
    return False


def _clean_price(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (int, float)):
        return None
    try:
        return float(value)
    except (OverflowError, ValueError):
        return None


def _check_string(spec: dict, value: Any, errors: list[Issue]) -> Any:
    field_id = spec["id"]
    if not isinstance(value, str):
        errors.append(_issue("INVALID_FIELD", f"{field_id} must be a string", field_id))
        return value
    min_length = spec.get("min_length")
    if isinstance(min_length, int) and len(value) < min_length:
        errors.append(
            _issue(
                "INVALID_FIELD",
                f"{field_id} must contain at least {min_length} characters",
                field_id,
                {"min_length": min_length},
            )
        )
        return value
    pattern = spec.get("pattern")
    if pattern is not None and not pattern.search(value):
        errors.append(_issue("INVALID_FIELD", spec.get("pattern_message") or f"{field_id} is invalid", field_id))
    return value


def _check_images(spec: dict, value: Any, errors: list[Issue]) -> Any:
    field_id = spec["id"]
    if not isinstance(value, list):
        errors.append(_issue("INVALID_FIELD", f"{field_id} must be a list", field_id))
        return value
    cleaned = []
    for idx, image in enumerate(value):
        url = image.get("url") if isinstance(image, dict) else None
        if not isinstance(url, str) or not url:
            errors.append(_issue("INVALID_FIELD", "Each image needs a url", f"{field_id}.{idx}.url"))
            continue
        cleaned.append({"url": url})
    return cleaned


def _check_price(spec: dict, value: Any, errors: list[Issue]) -> Any:
    field_id = spec["id"]
    price = _clean_price(value)
    if price is None:
        errors.append(_issue("INVALID_FIELD", f"{field_id} must be a number", field_id))
        return value
    if not math.isfinite(price) or abs(round(price, 2)) >= MAX_PRICE:
        errors.append(_issue("INVALID_FIELD", f"{field_id} must be a finite amount below {MAX_PRICE}", field_id))
        return value
    if price == 0:
        errors.append(_issue("REQUIRED_FIELD", spec.get("message") or f"{field_id} is required", field_id))
        return price
    if price < 0:
        errors.append(_issue("INVALID_FIELD", f"{field_id} must be greater than 0", field_id))
    return price


def _check_boolean(spec: dict, value: Any, errors: list[Issue]) -> Any:
    if not isinstance(value, bool):
        errors.append(_issue("INVALID_FIELD", f"{spec['id']} must be a boolean", spec["id"]))
    return value


_CHECKS = {
    "string": _check_string,
    "images": _check_images,
    "price": _check_price,
    "boolean": _check_boolean,
}


def validate_payload(kind: EntityKind, data: Any) -> tuple[list[Issue], dict]:
    """Validate ``data`` against ``kind`` and return ``(errors, clean)``.

    ``clean`` only carries the declared fields, with defaults applied and
    values normalised (prices as floats, images as ``[{"url": ...}]``).
    Undeclared keys such as ``id`` or ``createdAt`` are dropped silently, which
    lets an edit form resubmit the record it was loaded with.
    """
    if not isinstance(data, dict):
        return [_issue("INVALID_BODY", f"{kind.label} payload must be an object")], {}
    errors: list[Issue] = []
    clean: dict = {}
    for spec in kind.fields:
        field_id = spec["id"]
        value = data.get(field_id)
        if _is_blank(value):
            if spec.get("required"):
                errors.append(_issue("REQUIRED_FIELD", spec.get("message") or f"{field_id} is required", field_id))
                continue
            if "default" in spec:
                clean[field_id] = spec["default"]
            continue
        check = _CHECKS.get(spec.get("type"))
        clean[field_id] = check(spec, value, errors) if check else value
    return errors, clean

