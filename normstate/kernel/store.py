"""
normstate Kernel — Collection Store

Sits between the pure reducer and the callers that hold state.
Keeps one collection state per schema, serializes transitions, and hands
out selectors and bound operations wired to itself.

This is the only stateful piece. The reducer and selectors stay pure.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from normstate.kernel.diagnostics import DiagnosticSink, as_sink
from normstate.kernel.operations import BoundOperations, bind_operations
from normstate.kernel.reducer import apply
from normstate.kernel.selectors import Selector, make_selector
from normstate.kernel.types import (
    UNINITIALIZED,
    UNKNOWN_SCHEMA,
    CollectionState,
    Diagnostic,
    Operation,
)
from normstate.kernel.validation import parse_operation

logger = logging.getLogger(__name__)

Listener = Callable[[str, CollectionState, CollectionState], None]


class CollectionStore:
    """
    Holds the current state of several named collections.
    dispatch() is the single writer; selectors read whatever is current.
    """

    def __init__(
        self,
        schemas: Iterable[str] = (),
        *,
        sink: DiagnosticSink | Callable[[str], Any] | None = None,
    ) -> None:
        self._sink = as_sink(sink)
        self._states: dict[str, CollectionState] = {}
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()
        for schema in schemas:
            self.register(schema)

    # -- schemas --

    def register(self, schema: str) -> None:
        """Add a schema in the UNINITIALIZED state. No-op if already known."""
        if not isinstance(schema, str) or not schema:
            raise ValueError("schema must be a non-empty string")
        with self._lock:
            self._states.setdefault(schema, UNINITIALIZED)

    @property
    def schemas(self) -> tuple[str, ...]:
        return tuple(self._states)

    # -- reads --

    def state(self, schema: str) -> CollectionState:
        """Current state of one schema. KeyError if the schema isn't registered."""
        return self._states[schema]

    def snapshot(self) -> dict[str, CollectionState]:
        """Current state of every schema. The dict is a copy; the states are shared."""
        with self._lock:
            return dict(self._states)

    def selector(self, schema: str) -> Selector:
        if schema not in self._states:
            raise KeyError(schema)
        return make_selector(lambda: self._states[schema])

    # -- writes --

    def operations(self, schema: str) -> BoundOperations[CollectionState]:
        return bind_operations(schema, self.dispatch)

    def dispatch(self, operation: Operation | Mapping[str, Any]) -> CollectionState | None:
        """
        Validate → reduce → install.
        Returns the schema's new state, or None if the schema isn't registered.
        """
        op = parse_operation(operation)

        with self._lock:
            if op.schema not in self._states:
                self._sink.emit(
                    Diagnostic(
                        code=UNKNOWN_SCHEMA,
                        message=f"Operation {op.kind!s} targets unknown schema {op.schema!r}",
                        schema=op.schema,
                    )
                )
                return None

            previous = self._states[op.schema]
            result = apply(previous, op)
            for diagnostic in result.diagnostics:
                self._sink.emit(diagnostic)

            if not result.changed:
                return previous

            self._states[op.schema] = result.state
            listeners = list(self._listeners)

        logger.debug("store: %s applied to %s", op.kind, op.schema)
        for listener in listeners:
            listener(op.schema, previous, result.state)
        return result.state

    # -- subscriptions --

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call listener(schema, previous, current) after every state change.
        Returns a function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
