"""
normstate Kernel — Selectors

Read-only access to whatever collection state the surrounding store holds.
The accessor is evaluated on every call, so a selector always reflects the
latest snapshot and never caches.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from normstate.kernel.types import Collection, CollectionState, RecordId


def get_all(state: CollectionState) -> list[Mapping[str, Any]]:
    """All records in order. Empty list if the collection is uninitialized."""
    if not isinstance(state, Collection):
        return []
    return [state.by_id[rid] for rid in state.order]


class Selector:
    """Read-only facade over a zero-argument snapshot accessor."""

    __slots__ = ("_get_state",)

    def __init__(self, get_state: Callable[[], CollectionState]) -> None:
        self._get_state = get_state

    def _current(self) -> Collection | None:
        state = self._get_state()
        return state if isinstance(state, Collection) else None

    def ids(self) -> tuple[RecordId, ...]:
        state = self._current()
        return state.order if state is not None else ()

    def get(self, rid: RecordId) -> Mapping[str, Any] | None:
        state = self._current()
        if state is None:
            return None
        try:
            return state.by_id.get(rid)
        except TypeError:
            return None

    def length(self) -> int:
        state = self._current()
        return len(state.order) if state is not None else 0

    def has(self, rid: RecordId) -> bool:
        state = self._current()
        return state is not None and rid in state

    def all(self) -> list[Mapping[str, Any]]:
        return get_all(self._get_state())

    def __repr__(self) -> str:  # pragma: no cover
        return f"Selector(length={self.length()})"


def make_selector(get_state: Callable[[], CollectionState]) -> Selector:
    """Bind a selector to a deferred "current state" accessor."""
    return Selector(get_state)
