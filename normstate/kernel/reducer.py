"""
normstate Kernel — Reducer

Pure function: (collection state, operation) → collection state
No side effects. No IO. Deterministic.

The input state is never modified. Every transition that changes something
returns a new Collection; untouched records are shared with the previous one.
Transitions that change nothing (misuse, unknown kinds) return the input
object itself.

Misuse never raises. It is reported as a Diagnostic and the state is left
alone. The only exception that escapes is InvalidRecord, for payloads that
have no usable id.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from normstate.kernel.diagnostics import DiagnosticSink, as_sink
from normstate.kernel.types import (
    DUPLICATE_ID,
    NOT_FOUND,
    UNINITIALIZED,
    UNINITIALIZED_TARGET,
    UNKNOWN_OPERATION,
    Collection,
    CollectionState,
    Diagnostic,
    InvalidRecord,
    Operation,
    OperationKind,
    ReduceResult,
    check_id,
    coerce_kind,
    freeze_record,
    record_id,
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def empty_collection() -> Collection:
    """An initialized collection with no records. Not the same as UNINITIALIZED."""
    return Collection(order=(), by_id=MappingProxyType({}))


def apply(state: CollectionState, operation: Operation) -> ReduceResult:
    """
    Apply one operation to the current state.
    Returns new state + changed flag + diagnostics.

    changed is False exactly when the returned state is the input object.
    """
    kind = coerce_kind(operation.kind)
    if kind is None:
        diag = Diagnostic(
            code=UNKNOWN_OPERATION,
            message=f"Unknown operation {operation.kind!r} on schema {operation.schema!r}",
            schema=operation.schema,
            details={"kind": str(operation.kind)},
        )
        return ReduceResult(state=state, changed=False, diagnostics=[diag])

    diagnostics: list[Diagnostic] = []
    handler = _HANDLERS[kind]
    new_state = handler(state, operation, diagnostics)
    return ReduceResult(state=new_state, changed=new_state is not state, diagnostics=diagnostics)


def reduce(
    state: CollectionState,
    operation: Operation,
    *,
    sink: DiagnosticSink | Callable[[str], Any] | None = None,
) -> CollectionState:
    """
    Apply one operation and return only the new state.
    Diagnostics go to sink (default: a logging sink configured from settings).
    """
    result = apply(state, operation)
    if result.diagnostics:
        out = as_sink(sink)
        for diagnostic in result.diagnostics:
            out.emit(diagnostic)
    return result.state


def reduce_all(
    state: CollectionState,
    operations: Iterable[Operation],
    *,
    sink: DiagnosticSink | Callable[[str], Any] | None = None,
) -> CollectionState:
    """Apply a sequence of operations in order. Returns the final state."""
    out = as_sink(sink)
    for operation in operations:
        state = reduce(state, operation, sink=out)
    return state


def replay(
    operations: Iterable[Operation],
    *,
    sink: DiagnosticSink | Callable[[str], Any] | None = None,
) -> CollectionState:
    """Rebuild state from scratch by reducing over all operations."""
    return reduce_all(UNINITIALIZED, operations, sink=sink)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _warn(
    diagnostics: list[Diagnostic],
    operation: Operation,
    code: str,
    msg: str,
    *,
    severity: str = "warning",
    **details: Any,
) -> None:
    diagnostics.append(
        Diagnostic(code=code, message=msg, severity=severity, schema=operation.schema, details=details or None)
    )


def _with_record(state: Collection, rid: Any, record: Mapping[str, Any], *, append: bool) -> Collection:
    by_id = dict(state.by_id)
    by_id[rid] = record
    order = state.order + (rid,) if append else state.order
    return Collection(order=order, by_id=MappingProxyType(by_id))


def _own(record: Mapping[str, Any]) -> Mapping[str, Any]:
    """Read-only copy so later changes to the caller's payload can't leak into state."""
    return freeze_record(record)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_populate(state: CollectionState, operation: Operation, diagnostics: list[Diagnostic]) -> CollectionState:
    records = operation.payload
    if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
        raise InvalidRecord(
            f"POPULATE payload must be a sequence of records, got {type(records).__name__}"
        )

    by_id: dict[Any, Mapping[str, Any]] = {}
    for record in records:
        rid = record_id(record, kind="POPULATE")
        if rid in by_id:
            _warn(
                diagnostics, operation, DUPLICATE_ID,
                f"Populate with duplicate record id {rid!r} on schema {operation.schema!r}; keeping the last one",
                id=rid,
                severity="info",
            )
            # Last occurrence wins, position included
            del by_id[rid]
        by_id[rid] = _own(record)

    return Collection(order=tuple(by_id), by_id=MappingProxyType(by_id))


def _handle_insert(state: CollectionState, operation: Operation, diagnostics: list[Diagnostic]) -> CollectionState:
    record = operation.payload
    rid = record_id(record, kind="INSERT")

    if state is UNINITIALIZED:
        return Collection(order=(rid,), by_id=MappingProxyType({rid: _own(record)}))

    if rid in state.by_id:
        _warn(
            diagnostics, operation, DUPLICATE_ID,
            f"Insert record with id {rid!r} when it already exists on schema {operation.schema!r}",
            id=rid,
        )
        return _with_record(state, rid, _own(record), append=False)

    return _with_record(state, rid, _own(record), append=True)


def _handle_update(state: CollectionState, operation: Operation, diagnostics: list[Diagnostic]) -> CollectionState:
    patch = operation.payload
    rid = record_id(patch, kind="UPDATE")

    if state is UNINITIALIZED:
        _warn(
            diagnostics, operation, UNINITIALIZED_TARGET,
            f"Trying to update schema {operation.schema!r} with record id {rid!r} before it was populated",
            id=rid,
        )
        return state

    existing = state.by_id.get(rid)
    if existing is None:
        _warn(
            diagnostics, operation, NOT_FOUND,
            f"Trying to update schema {operation.schema!r} with record id {rid!r} which doesn't exist",
            id=rid,
        )
        return state

    merged = dict(existing)
    merged.update(patch)
    return _with_record(state, rid, MappingProxyType(merged), append=False)


def _handle_delete(state: CollectionState, operation: Operation, diagnostics: list[Diagnostic]) -> CollectionState:
    rid = check_id(operation.payload, kind="DELETE")

    if state is UNINITIALIZED:
        _warn(
            diagnostics, operation, UNINITIALIZED_TARGET,
            f"Trying to delete a record from schema {operation.schema!r} with id {rid!r} before it was populated",
            id=rid,
        )
        return state

    if rid not in state.by_id:
        _warn(
            diagnostics, operation, NOT_FOUND,
            f"Trying to delete a record from schema {operation.schema!r} with id {rid!r} which doesn't exist",
            id=rid,
        )
        return state

    by_id = dict(state.by_id)
    del by_id[rid]
    order = tuple(x for x in state.order if x in by_id)
    return Collection(order=order, by_id=MappingProxyType(by_id))


def _handle_replace(state: CollectionState, operation: Operation, diagnostics: list[Diagnostic]) -> CollectionState:
    record = operation.payload
    rid = record_id(record, kind="REPLACE")

    if state is UNINITIALIZED or rid not in state.by_id:
        return _handle_insert(state, operation, diagnostics)

    return _with_record(state, rid, _own(record), append=False)


def _handle_upsert(state: CollectionState, operation: Operation, diagnostics: list[Diagnostic]) -> CollectionState:
    record = operation.payload
    rid = record_id(record, kind="UPSERT")

    if state is UNINITIALIZED or rid not in state.by_id:
        return _handle_insert(state, operation, diagnostics)

    return _handle_update(state, operation, diagnostics)


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

_HANDLERS: Mapping[OperationKind, Callable[[CollectionState, Operation, list[Diagnostic]], CollectionState]] = (
    MappingProxyType(
        {
            OperationKind.POPULATE: _handle_populate,
            OperationKind.INSERT: _handle_insert,
            OperationKind.UPDATE: _handle_update,
            OperationKind.DELETE: _handle_delete,
            OperationKind.REPLACE: _handle_replace,
            OperationKind.UPSERT: _handle_upsert,
        }
    )
)

_missing = set(OperationKind) - set(_HANDLERS)
if _missing:  # pragma: no cover
    raise RuntimeError(f"No reducer handler for: {sorted(k.value for k in _missing)}")
