"""Create/edit/delete lifecycle for a dashboard entity form.

One controller serves every entity kind; the kind descriptor supplies the
field schema, the API path segment and the display label.

States::

    idle --submit(valid)--> submitting --ok/fail--> idle
    idle --request_delete--> confirming_delete --cancel--> idle
    confirming_delete --confirm--> deleting --ok/fail--> idle

Only one mutation may be in flight per controller instance.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Protocol

from .entity_schema import EntityKind, conflict_message, validate_payload
from .errors import RequestFailed


IDLE = "idle"
SUBMITTING = "submitting"
CONFIRMING_DELETE = "confirming_delete"
DELETING = "deleting"

GENERIC_FAILURE = "Something went wrong."

_logger = logging.getLogger("storefront.forms")

Notify = Callable[[str, str], None]


class EntityApi(Protocol):
    def create(self, store_id: str, segment: str, payload: dict) -> dict: ...

    def update(self, store_id: str, segment: str, entity_id: str, payload: dict) -> dict: ...

    def delete(self, store_id: str, segment: str, entity_id: str) -> dict: ...


class Navigator(Protocol):
    def push(self, path: str) -> None: ...

    def refresh(self) -> None: ...


def _blank_value(spec: dict) -> Any:
    if "default" in spec:
        return copy.deepcopy(spec["default"])
    if spec.get("type") == "images":
        return []
    return ""


def _initial_values(kind: EntityKind, initial_data: dict | None) -> dict:
    values = {}
    for spec in kind.fields:
        field_id = spec["id"]
        if initial_data is not None and initial_data.get(field_id) is not None:
            value = initial_data[field_id]
            if spec.get("type") == "images" and isinstance(value, list):
                value = [{"url": img.get("url")} for img in value if isinstance(img, dict)]
            values[field_id] = copy.deepcopy(value)
        else:
            values[field_id] = _blank_value(spec)
    return values


class EntityFormController:
    def __init__(
        self,
        kind: EntityKind,
        store_id: str,
        api: EntityApi,
        notify: Notify,
        navigator: Navigator,
        initial_data: dict | None = None,
    ) -> None:
        self.kind = kind
        self.store_id = store_id
        self._api = api
        self._notify = notify
        self._navigator = navigator
        self.initial_data = copy.deepcopy(initial_data) if initial_data else None
        self.entity_id = self.initial_data.get("id") if self.initial_data else None
        self.values = _initial_values(kind, self.initial_data)
        self.errors: list[dict] = []
        self.state = IDLE

    @property
    def is_edit(self) -> bool:
        return self.initial_data is not None

    @property
    def title(self) -> str:
        return f"Edit {self.kind.label}" if self.is_edit else f"Create {self.kind.label}"

    @property
    def description(self) -> str:
        return f"Edit a {self.kind.label}" if self.is_edit else f"Create a {self.kind.label}"

    @property
    def action_label(self) -> str:
        return "Save Changes" if self.is_edit else "Create"

    @property
    def success_message(self) -> str:
        return f"{self.kind.label} updated." if self.is_edit else f"{self.kind.label} created."

    @property
    def delete_failure_message(self) -> str:
        return conflict_message(self.kind)

    @property
    def listing_path(self) -> str:
        return f"/dashboard/{self.store_id}/{self.kind.segment}"

    @property
    def disabled(self) -> bool:
        return self.state in (SUBMITTING, DELETING)

    @property
    def can_delete(self) -> bool:
        return self.is_edit and not self.disabled

    @property
    def delete_dialog_open(self) -> bool:
        return self.state in (CONFIRMING_DELETE, DELETING)

    def field_errors(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for err in self.errors:
            path = err.get("path")
            if path and path not in out:
                out[path] = err.get("message")
        return out

    def set_value(self, field_id: str, value: Any) -> bool:
        if self.disabled or field_id not in self.kind.field_ids:
            return False
        self.values[field_id] = value
        return True

    def validate(self) -> dict | None:
        """Check the current values; returns the payload to send, or None if any field is invalid."""
        errors, clean = validate_payload(self.kind, self.values)
        self.errors = errors
        return None if errors else clean

    def submit(self, values: dict | None = None) -> bool:
        if self.state != IDLE:
            return False
        if values:
            for field_id, value in values.items():
                self.set_value(field_id, value)
        clean = self.validate()
        if clean is None:
            return False
        self.state = SUBMITTING
        try:
            if self.is_edit:
                self._api.update(self.store_id, self.kind.segment, self.entity_id, clean)
            else:
                self._api.create(self.store_id, self.kind.segment, clean)
        except RequestFailed as exc:
            _logger.warning("form_submit_failed kind=%s store_id=%s error=%s", self.kind.key, self.store_id, exc)
            self._notify("error", GENERIC_FAILURE)
            return False
        finally:
            self.state = IDLE
        self._finish(self.success_message)
        return True

    def request_delete(self) -> bool:
        if not self.is_edit or self.state != IDLE:
            return False
        self.state = CONFIRMING_DELETE
        return True

    def cancel_delete(self) -> bool:
        if self.state != CONFIRMING_DELETE:
            return False
        self.state = IDLE
        return True

    def confirm_delete(self) -> bool:
        if self.state != CONFIRMING_DELETE:
            return False
        self.state = DELETING
        try:
            self._api.delete(self.store_id, self.kind.segment, self.entity_id)
        except RequestFailed as exc:
            _logger.warning("form_delete_failed kind=%s entity_id=%s error=%s", self.kind.key, self.entity_id, exc)
            self._notify("error", self.delete_failure_message)
            return False
        finally:
            self.state = IDLE
        self._finish(f"{self.kind.label} deleted.")
        return True

    def _finish(self, message: str) -> None:
        self._navigator.push(self.listing_path)
        self._navigator.refresh()
        self._notify("success", message)
