"""Server-rendered dashboard pages."""

from __future__ import annotations

from typing import Dict, List

from app.template_render import render_template
from storekit.entity_schema import EntityKind
from storekit.listing_format import format_rows
from storekit.setup_modal import SetupModalState


LISTING_COLUMNS: Dict[str, List[dict]] = {
    "billboard": [
        {"key": "label", "label": "Label"},
        {"key": "createdAt", "label": "Date"},
    ],
    "category": [
        {"key": "name", "label": "Name"},
        {"key": "billboardLabel", "label": "Billboard"},
        {"key": "createdAt", "label": "Date"},
    ],
    "color": [
        {"key": "name", "label": "Name"},
        {"key": "value", "label": "Value"},
        {"key": "createdAt", "label": "Date"},
    ],
    "size": [
        {"key": "name", "label": "Name"},
        {"key": "value", "label": "Value"},
        {"key": "createdAt", "label": "Date"},
    ],
    "product": [
        {"key": "name", "label": "Name"},
        {"key": "isArchived", "label": "Archived"},
        {"key": "isFeatured", "label": "Featured"},
        {"key": "price", "label": "Price"},
        {"key": "category", "label": "Category"},
        {"key": "size", "label": "Size"},
        {"key": "color", "label": "Color"},
        {"key": "createdAt", "label": "Date"},
    ],
}

LISTING_TEMPLATE = """<!doctype html>
<html lang="en">
<head><meta charset="utf-8"><title>Admin | {{ title }}</title></head>
<body>
<main data-store-id="{{ store['id'] }}">
  <h1>{{ title }} ({{ rows | length }})</h1>
  <p>{{ description }}</p>
  <a href="{{ new_path }}">Add New</a>
  <table>
    <thead>
      <tr>{% for col in columns %}<th>{{ col['label'] }}</th>{% endfor %}</tr>
    </thead>
    <tbody>
    {% for row in rows %}
      <tr data-id="{{ row['id'] }}">{% for col in columns %}{% set value = row[col['key']] %}<td>{% if value is not none %}{{ value }}{% endif %}</td>{% endfor %}</tr>
    {% endfor %}
    </tbody>
  </table>
</main>
</body>
</html>
"""

SETUP_TEMPLATE = """<!doctype html>
<html lang="en">
<head><meta charset="utf-8"><title>Admin | Create store</title></head>
<body>
{% if modal['is_open'] %}
<div role="dialog" aria-modal="true" data-modal="store-setup">
  <h2>Create store</h2>
  <p>Add a new store to manage products and categories.</p>
  <form data-endpoint="/api/stores" data-method="POST">
    <label>Name <input name="name" placeholder="E-Commerce"></label>
    <button type="submit">Continue</button>
  </form>
</div>
{% endif %}
</body>
</html>
"""


def _plural_label(kind: EntityKind) -> str:
    return kind.segment.title()


def render_listing(kind: EntityKind, store: dict, items: list[dict]) -> str:
    rows = format_rows(kind.key, items)
    return render_template(
        LISTING_TEMPLATE,
        {
            "title": _plural_label(kind),
            "description": f"Manage {kind.segment} for your store",
            "store": {"id": store.get("id"), "name": store.get("name")},
            "new_path": f"/dashboard/{store.get('id')}/{kind.segment}/new",
            "columns": LISTING_COLUMNS[kind.key],
            "rows": rows,
        },
    )


def render_setup(modal: SetupModalState) -> str:
    return render_template(SETUP_TEMPLATE, {"modal": {"is_open": modal.is_open}})
