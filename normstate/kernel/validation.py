"""
normstate Kernel — Operation Validation

Validates raw operations (plain dicts, e.g. decoded JSON) before they reach
the reducer, and checks that a collection's two halves agree.
Validation is structural (well-formed?) not semantic (will it apply?).
The reducer handles semantic checks (does the id exist? etc.).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from normstate.kernel.types import (
    RECORD_KINDS,
    UNINITIALIZED,
    Collection,
    CollectionState,
    InvalidOperation,
    InvalidRecord,
    Operation,
    OperationKind,
    coerce_kind,
)


class OperationEnvelope(BaseModel):
    """Wire shape of an operation: {type, schema, payload}."""

    model_config = {"extra": "forbid"}

    kind: str = Field(min_length=1, validation_alias=AliasChoices("type", "kind"))
    target: str = Field(min_length=1, validation_alias=AliasChoices("schema", "target"))
    payload: Any


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_operation(raw: Any) -> list[str]:
    """
    Validate a raw operation's envelope and payload structure.
    Returns a list of error strings. Empty list = valid.

    This checks structural validity only:
    - Are type, schema and payload present?
    - Does the payload have the shape its kind needs?
    - Do records carry an id?

    Unknown kinds pass: the reducer reports them as UNKNOWN_OPERATION.
    It does NOT check whether ids exist. That's the reducer's job.
    """
    if isinstance(raw, Operation):
        raw = {"type": str(raw.kind), "schema": raw.schema, "payload": raw.payload}

    envelope, errors = _parse_envelope(raw)
    if envelope is None:
        return errors
    return _payload_errors(envelope)


def parse_operation(raw: Any) -> Operation:
    """
    Turn a raw operation into an Operation.
    Raises InvalidOperation for a malformed envelope (type, schema, payload)
    and InvalidRecord for records or ids the reducer couldn't key on.
    """
    if isinstance(raw, Operation):
        return raw

    envelope, errors = _parse_envelope(raw)
    if envelope is None:
        raise InvalidOperation(errors)

    errors = _payload_errors(envelope)
    if errors:
        raise InvalidRecord("; ".join(errors))

    kind: OperationKind | str = coerce_kind(envelope.kind) or envelope.kind
    payload = envelope.payload
    if kind is OperationKind.POPULATE:
        payload = tuple(payload)
    return Operation(kind=kind, schema=envelope.target, payload=payload)


def check_integrity(state: CollectionState) -> list[str]:
    """
    Report every way order and by_id disagree.
    Empty list = consistent. UNINITIALIZED is always consistent.
    """
    if state is UNINITIALIZED:
        return []
    if not isinstance(state, Collection):
        return [f"Not a collection: {type(state).__name__}"]

    problems: list[str] = []
    seen: set[Any] = set()
    for rid in state.order:
        if rid in seen:
            problems.append(f"Duplicate id in order: {rid!r}")
        seen.add(rid)
        if rid not in state.by_id:
            problems.append(f"Id {rid!r} in order has no record")

    for rid, record in state.by_id.items():
        if rid not in seen:
            problems.append(f"Record {rid!r} is missing from order")
        if not isinstance(record, Mapping) or record.get("id") != rid:
            problems.append(f"Record stored under {rid!r} has a different id")

    return problems


# ---------------------------------------------------------------------------
# Payload validators
# ---------------------------------------------------------------------------


def _parse_envelope(raw: Any) -> tuple[OperationEnvelope | None, list[str]]:
    if not isinstance(raw, Mapping):
        return None, ["Operation must be an object"]
    try:
        return OperationEnvelope.model_validate(dict(raw)), []
    except ValidationError as exc:
        return None, [_format_error(err) for err in exc.errors()]


def _payload_errors(envelope: OperationEnvelope) -> list[str]:
    kind = coerce_kind(envelope.kind)
    if kind is None:
        return []
    return _validate_payload(kind, envelope.payload)


def _validate_payload(kind: OperationKind, payload: Any) -> list[str]:
    if kind is OperationKind.POPULATE:
        return _validate_records(payload)
    if kind is OperationKind.DELETE:
        return _validate_id(payload, "DELETE payload")
    if kind in RECORD_KINDS:
        return _validate_record(payload, f"{kind.value} payload")
    return []  # pragma: no cover


def _validate_records(payload: Any) -> list[str]:
    if not isinstance(payload, (list, tuple)):
        return ["POPULATE payload must be a list of records"]
    errors: list[str] = []
    for i, record in enumerate(payload):
        errors.extend(_validate_record(record, f"POPULATE payload[{i}]"))
    return errors


def _validate_record(record: Any, where: str) -> list[str]:
    if not isinstance(record, Mapping):
        return [f"{where} must be an object"]
    if record.get("id") is None:
        return [f"{where} requires 'id'"]
    return _validate_id(record["id"], f"{where} id")


def _validate_id(rid: Any, where: str) -> list[str]:
    if rid is None:
        return [f"{where} requires an id"]
    try:
        hash(rid)
    except TypeError:
        return [f"{where} must be hashable, got {type(rid).__name__}"]
    if rid != rid:
        return [f"{where} must be equal to itself, got {rid!r}"]
    return []


def _format_error(err: Mapping[str, Any]) -> str:
    loc = ".".join(str(part) for part in err.get("loc", ())) or "operation"
    return f"{loc}: {err.get('msg', 'invalid')}"
