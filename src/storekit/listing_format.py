"""Display-row projection for the dashboard listing tables."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List


Row = Dict[str, Any]


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def format_created_at(value: Any) -> str:
    """Render a timestamp as ``October 19th, 2026``; unknown input renders empty."""
    parsed = _parse_timestamp(value)
    if parsed is None:
        return ""
    return f"{parsed.strftime('%B')} {_ordinal(parsed.day)}, {parsed.year}"


def format_price(value: Any) -> str:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return ""
    return f"${amount:,.2f}"


def _related(row: Row, key: str, attr: str) -> Any:
    related = row.get(key)
    if isinstance(related, dict):
        return related.get(attr)
    return None


def billboard_rows(items: Iterable[Row]) -> List[Row]:
    return [
        {"id": item.get("id"), "label": item.get("label"), "createdAt": format_created_at(item.get("createdAt"))}
        for item in items
    ]


def category_rows(items: Iterable[Row]) -> List[Row]:
    return [
        {
            "id": item.get("id"),
            "name": item.get("name"),
            "billboardLabel": _related(item, "billboard", "label"),
            "createdAt": format_created_at(item.get("createdAt")),
        }
        for item in items
    ]


def color_rows(items: Iterable[Row]) -> List[Row]:
    return [
        {
            "id": item.get("id"),
            "name": item.get("name"),
            "value": item.get("value"),
            "createdAt": format_created_at(item.get("createdAt")),
        }
        for item in items
    ]


def size_rows(items: Iterable[Row]) -> List[Row]:
    return [
        {
            "id": item.get("id"),
            "name": item.get("name"),
            "value": item.get("value"),
            "createdAt": format_created_at(item.get("createdAt")),
        }
        for item in items
    ]


def product_rows(items: Iterable[Row]) -> List[Row]:
    return [
        {
            "id": item.get("id"),
            "name": item.get("name"),
            "isFeatured": bool(item.get("isFeatured")),
            "isArchived": bool(item.get("isArchived")),
            "price": format_price(item.get("price")),
            "category": _related(item, "category", "name"),
            "size": _related(item, "size", "name"),
            "color": _related(item, "color", "value"),
            "createdAt": format_created_at(item.get("createdAt")),
        }
        for item in items
    ]


_FORMATTERS: Dict[str, Callable[[Iterable[Row]], List[Row]]] = {
    "billboard": billboard_rows,
    "category": category_rows,
    "color": color_rows,
    "size": size_rows,
    "product": product_rows,
}


def format_rows(kind_key: str, items: Iterable[Row]) -> List[Row]:
    formatter = _FORMATTERS.get(kind_key)
    if formatter is None:
        raise KeyError(f"no listing format for {kind_key}")
    return formatter(items)
