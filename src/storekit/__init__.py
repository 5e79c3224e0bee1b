"""Storefront admin kernel: entity schemas, form lifecycle, listing rows."""

from .entity_schema import ENTITY_KINDS, EntityKind, kind_for_segment, validate_payload
from .errors import ApiError, RecordNotFound, ReferenceConflict, RequestFailed
from .form_controller import EntityFormController
from .listing_format import format_created_at, format_rows
from .setup_modal import SetupModalState

__all__ = [
    "ApiError",
    "ENTITY_KINDS",
    "EntityFormController",
    "EntityKind",
    "RecordNotFound",
    "ReferenceConflict",
    "RequestFailed",
    "SetupModalState",
    "format_created_at",
    "format_rows",
    "kind_for_segment",
    "validate_payload",
]
