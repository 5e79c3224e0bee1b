"""In-memory catalog store used when USE_DB is off and in tests."""

from __future__ import annotations

import copy
import itertools
import uuid
from datetime import datetime, timezone
from typing import Dict, List

from storekit.entity_schema import ENTITY_KINDS
from storekit.errors import RecordNotFound, ReferenceConflict


def _now() -> datetime:
    return datetime.now(timezone.utc)


# (child kind, field) pairs that point at each parent kind
REFERENCED_BY: Dict[str, List[tuple[str, str]]] = {}
for _kind in ENTITY_KINDS.values():
    for _field_id, _target in _kind.references.items():
        REFERENCED_BY.setdefault(_target, []).append((_kind.key, _field_id))

ENTITY_KEYS = [kind.key for kind in ENTITY_KINDS.values()]


def _public(record: dict) -> dict:
    return {k: copy.deepcopy(v) for k, v in record.items() if not k.startswith("_")}


def _matches(record: dict, filters: dict | None) -> bool:
    for key, value in (filters or {}).items():
        if value is None:
            continue
        if record.get(key) != value:
            return False
    return True


class MemoryCatalogStore:
    def __init__(self) -> None:
        self._stores: Dict[str, dict] = {}
        self._records: Dict[str, Dict[str, dict]] = {key: {} for key in ENTITY_KEYS}
        self._seq = itertools.count()

    def _stamp(self, record: dict) -> dict:
        now = _now()
        record["createdAt"] = now
        record["updatedAt"] = now
        record["_seq"] = next(self._seq)
        return record

    # stores

    def create_store(self, user_id: str, name: str) -> dict:
        store = self._stamp({"id": str(uuid.uuid4()), "name": name, "userId": user_id})
        self._stores[store["id"]] = store
        return _public(store)

    def list_stores(self, user_id: str) -> list[dict]:
        items = [s for s in self._stores.values() if s.get("userId") == user_id]
        items.sort(key=lambda s: s["_seq"])
        return [_public(s) for s in items]

    def get_store(self, store_id: str) -> dict | None:
        store = self._stores.get(store_id)
        return _public(store) if store else None

    def update_store(self, store_id: str, name: str) -> dict:
        store = self._stores.get(store_id)
        if store is None:
            raise RecordNotFound("store not found", "store", store_id)
        store["name"] = name
        store["updatedAt"] = _now()
        return _public(store)

    def delete_store(self, store_id: str) -> dict:
        store = self._stores.get(store_id)
        if store is None:
            raise RecordNotFound("store not found", "store", store_id)
        for key in ENTITY_KEYS:
            if any(r.get("storeId") == store_id for r in self._records[key].values()):
                raise ReferenceConflict("store still has catalog records", "store", store_id, key)
        del self._stores[store_id]
        return _public(store)

    # catalog records

    def _bucket(self, kind_key: str) -> Dict[str, dict]:
        return self._records[kind_key]

    def _find(self, kind_key: str, store_id: str, record_id: str) -> dict | None:
        record = self._bucket(kind_key).get(record_id)
        if record is None or record.get("storeId") != store_id:
            return None
        return record

    def _expand(self, kind_key: str, record: dict) -> dict:
        out = _public(record)
        if kind_key == "category":
            billboard = self._bucket("billboard").get(record.get("billboardId"))
            out["billboard"] = _public(billboard) if billboard else None
        elif kind_key == "product":
            for rel_key, field_id in (("category", "categoryId"), ("size", "sizeId"), ("color", "colorId")):
                related = self._bucket(rel_key).get(record.get(field_id))
                out[rel_key] = _public(related) if related else None
        return out

    def _with_images(self, images: List[dict]) -> List[dict]:
        now = _now()
        return [{"id": str(uuid.uuid4()), "url": img["url"], "createdAt": now} for img in images]

    def create(self, kind_key: str, store_id: str, data: dict) -> dict:
        values = copy.deepcopy(data)
        if kind_key == "product":
            values["images"] = self._with_images(values.get("images") or [])
        record = self._stamp({"id": str(uuid.uuid4()), **values, "storeId": store_id})
        self._bucket(kind_key)[record["id"]] = record
        return self._expand(kind_key, record)

    def update(self, kind_key: str, store_id: str, record_id: str, data: dict) -> dict:
        record = self._find(kind_key, store_id, record_id)
        if record is None:
            raise RecordNotFound(f"{kind_key} not found", kind_key, record_id)
        values = copy.deepcopy(data)
        if kind_key == "product":
            values["images"] = self._with_images(values.get("images") or [])
        values.pop("id", None)
        values.pop("storeId", None)
        record.update(values)
        record["updatedAt"] = _now()
        return self._expand(kind_key, record)

    def delete(self, kind_key: str, store_id: str, record_id: str) -> dict:
        record = self._find(kind_key, store_id, record_id)
        if record is None:
            raise RecordNotFound(f"{kind_key} not found", kind_key, record_id)
        for child_key, field_id in REFERENCED_BY.get(kind_key, []):
            if any(child.get(field_id) == record_id for child in self._bucket(child_key).values()):
                raise ReferenceConflict(f"{kind_key} is still referenced", kind_key, record_id, child_key)
        del self._bucket(kind_key)[record_id]
        return _public(record)

    def get(self, kind_key: str, store_id: str, record_id: str) -> dict | None:
        record = self._find(kind_key, store_id, record_id)
        return self._expand(kind_key, record) if record else None

    def exists(self, kind_key: str, store_id: str, record_id: str) -> bool:
        return self._find(kind_key, store_id, record_id) is not None

    def list(
        self,
        kind_key: str,
        store_id: str,
        filters: dict | None = None,
        include_archived: bool = True,
    ) -> list[dict]:
        items = [r for r in self._bucket(kind_key).values() if r.get("storeId") == store_id]
        if not include_archived:
            items = [r for r in items if not r.get("isArchived")]
        items = [r for r in items if _matches(r, filters)]
        items.sort(key=lambda r: (r["createdAt"], r["_seq"]), reverse=True)
        return [self._expand(kind_key, r) for r in items]
