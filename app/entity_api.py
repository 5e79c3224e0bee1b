"""Tenant-scoped catalog operations behind the HTTP routes.

Every mutating call runs the same gate, in this order: caller identity,
store id, store ownership, payload schema, same-store references, then
existence of the target row. Only after the gate passes does exactly one
persistence mutation happen. Failures raise ``ApiError``; the routes turn it
into the JSON error envelope.
"""

from __future__ import annotations

import logging
from typing import Any

from storekit.entity_schema import ENTITY_KINDS, STORE, EntityKind, conflict_message, validate_payload
from storekit.errors import (
    ApiError,
    RecordNotFound,
    ReferenceConflict,
    conflict,
    forbidden,
    not_found,
    unauthenticated,
)

logger = logging.getLogger("storefront.api")

_KIND_BY_KEY = {kind.key: kind for kind in ENTITY_KINDS.values()}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def require_user(user: dict | None) -> str:
    user_id = user.get("id") if isinstance(user, dict) else None
    if not user_id:
        raise unauthenticated()
    return user_id


def _require_store_id(store_id: str | None) -> str:
    if not isinstance(store_id, str) or not store_id.strip():
        raise ApiError("STORE_ID_REQUIRED", "Store id is required", "storeId", status=400)
    return store_id.strip()


def require_owned_store(repo, user_id: str, store_id: str | None) -> dict:
    store_id = _require_store_id(store_id)
    store = repo.get_store(store_id)
    if not store or store.get("userId") != user_id:
        logger.warning("store_access_denied store_id=%s user_id=%s", store_id, user_id)
        raise forbidden()
    return store


def _validated(kind: EntityKind, payload: Any) -> dict:
    errors, clean = validate_payload(kind, payload)
    if errors:
        keys = sorted(payload.keys()) if isinstance(payload, dict) else []
        logger.warning(
            "payload_validation_failed kind=%s paths=%s payload_keys=%s",
            kind.key,
            [err.get("path") for err in errors],
            keys,
        )
        first = errors[0]
        raise ApiError(first["code"], first["message"], first.get("path"), status=400, issues=errors)
    return clean


def _check_references(repo, kind: EntityKind, store_id: str, clean: dict) -> None:
    for field_id, target_key in kind.references.items():
        target_id = clean.get(field_id)
        if not repo.exists(target_key, store_id, target_id):
            target = _KIND_BY_KEY[target_key]
            logger.warning("reference_not_found kind=%s field=%s target_id=%s store_id=%s", kind.key, field_id, target_id, store_id)
            raise ApiError("INVALID_REFERENCE", f"{target.label} not found", field_id, status=400)


# catalog entities


def create_entity(repo, user: dict | None, kind: EntityKind, store_id: str | None, payload: Any) -> dict:
    user_id = require_user(user)
    store = require_owned_store(repo, user_id, store_id)
    clean = _validated(kind, payload)
    _check_references(repo, kind, store["id"], clean)
    record = repo.create(kind.key, store["id"], clean)
    logger.info("entity_created kind=%s id=%s store_id=%s", kind.key, record.get("id"), store["id"])
    return record


def update_entity(repo, user: dict | None, kind: EntityKind, store_id: str | None, entity_id: str | None, payload: Any) -> dict:
    user_id = require_user(user)
    store = require_owned_store(repo, user_id, store_id)
    if not entity_id:
        raise ApiError("ID_REQUIRED", f"{kind.label} id is required", "id", status=400)
    clean = _validated(kind, payload)
    _check_references(repo, kind, store["id"], clean)
    try:
        record = repo.update(kind.key, store["id"], entity_id, clean)
    except RecordNotFound:
        raise not_found(kind.label)
    logger.info("entity_updated kind=%s id=%s store_id=%s", kind.key, entity_id, store["id"])
    return record


def delete_entity(repo, user: dict | None, kind: EntityKind, store_id: str | None, entity_id: str | None) -> dict:
    user_id = require_user(user)
    store = require_owned_store(repo, user_id, store_id)
    if not entity_id:
        raise ApiError("ID_REQUIRED", f"{kind.label} id is required", "id", status=400)
    try:
        record = repo.delete(kind.key, store["id"], entity_id)
    except RecordNotFound:
        raise not_found(kind.label)
    except ReferenceConflict as exc:
        logger.warning("entity_delete_conflict kind=%s id=%s referenced_by=%s", kind.key, entity_id, exc.referenced_by)
        raise conflict(conflict_message(kind), detail={"referenced_by": exc.referenced_by})
    logger.info("entity_deleted kind=%s id=%s store_id=%s", kind.key, entity_id, store["id"])
    return record


def get_entity(repo, kind: EntityKind, store_id: str | None, entity_id: str | None) -> dict:
    store_id = _require_store_id(store_id)
    if not entity_id:
        raise ApiError("ID_REQUIRED", f"{kind.label} id is required", "id", status=400)
    record = repo.get(kind.key, store_id, entity_id)
    if record is None:
        raise not_found(kind.label)
    return record


def _parse_flag(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def list_filters(kind: EntityKind, query: dict | None) -> dict:
    """Equality filters taken from query parameters; blank values are no constraint."""
    query = query or {}
    filters: dict = {}
    if kind.key != "product":
        return filters
    for field_id in ("categoryId", "sizeId", "colorId"):
        value = query.get(field_id)
        if isinstance(value, str) and value.strip():
            filters[field_id] = value.strip()
    featured = _parse_flag(query.get("isFeatured"))
    if featured is not None:
        filters["isFeatured"] = featured
    return filters


def list_entities(repo, kind: EntityKind, store_id: str | None, query: dict | None = None) -> list[dict]:
    store_id = _require_store_id(store_id)
    filters = list_filters(kind, query)
    # archived products never reach the public listing
    return repo.list(kind.key, store_id, filters=filters, include_archived=kind.key != "product")


def list_dashboard_entities(repo, user: dict | None, kind: EntityKind, store_id: str | None) -> list[dict]:
    user_id = require_user(user)
    store = require_owned_store(repo, user_id, store_id)
    return repo.list(kind.key, store["id"], include_archived=True)


# stores


def create_store(repo, user: dict | None, payload: Any) -> dict:
    user_id = require_user(user)
    clean = _validated(STORE, payload)
    store = repo.create_store(user_id, clean["name"])
    logger.info("store_created id=%s user_id=%s", store.get("id"), user_id)
    return store


def list_stores(repo, user: dict | None) -> list[dict]:
    return repo.list_stores(require_user(user))


def get_store(repo, user: dict | None, store_id: str | None) -> dict:
    return require_owned_store(repo, require_user(user), store_id)


def update_store(repo, user: dict | None, store_id: str | None, payload: Any) -> dict:
    store = require_owned_store(repo, require_user(user), store_id)
    clean = _validated(STORE, payload)
    return repo.update_store(store["id"], clean["name"])


def delete_store(repo, user: dict | None, store_id: str | None) -> dict:
    store = require_owned_store(repo, require_user(user), store_id)
    try:
        deleted = repo.delete_store(store["id"])
    except ReferenceConflict as exc:
        logger.warning("store_delete_conflict id=%s referenced_by=%s", store["id"], exc.referenced_by)
        raise conflict(conflict_message(STORE), detail={"referenced_by": exc.referenced_by})
    logger.info("store_deleted id=%s", store["id"])
    return deleted
