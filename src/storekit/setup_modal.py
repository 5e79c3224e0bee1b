"""Visibility state for the first-run store setup modal."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class SetupModalState:
    is_open: bool = False

    def open(self) -> "SetupModalState":
        return self if self.is_open else replace(self, is_open=True)

    def close(self) -> "SetupModalState":
        return self if not self.is_open else replace(self, is_open=False)


def initial_modal_state(store_count: int) -> SetupModalState:
    """The modal opens on the root view until the user owns at least one store."""
    state = SetupModalState()
    if store_count <= 0:
        state = state.open()
    return state
