"""
normstate Kernel — Shared Types

Data classes used across the reducer, selectors, operations, and store.
These are the contracts that bind the kernel together.

A Collection is the normalized {order, by_id} pair for one logical entity type:
- order: tuple of record IDs, no duplicates, defines enumeration order
- by_id: read-only mapping from ID to record

UNINITIALIZED is the state before any populate/insert. It is not the same as
an empty Collection.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, TypeAlias

Record: TypeAlias = Mapping[str, Any]
RecordId: TypeAlias = Hashable


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class InvalidRecord(ValueError):
    """Payload record has no usable 'id' field."""

    pass


class InvalidCollection(ValueError):
    """Serialized collection violates order/by_id consistency."""

    pass


class InvalidOperation(ValueError):
    """Raw operation is structurally malformed."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


# ---------------------------------------------------------------------------
# Operation kinds
# ---------------------------------------------------------------------------


class OperationKind(str, Enum):
    POPULATE = "POPULATE"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    REPLACE = "REPLACE"
    UPSERT = "UPSERT"

    def __str__(self) -> str:
        return self.value


# Payload is a single record for these kinds
RECORD_KINDS: frozenset[OperationKind] = frozenset(
    {OperationKind.INSERT, OperationKind.UPDATE, OperationKind.REPLACE, OperationKind.UPSERT}
)

# Diagnostic codes
DUPLICATE_ID = "DUPLICATE_ID"
NOT_FOUND = "NOT_FOUND"
UNINITIALIZED_TARGET = "UNINITIALIZED"
UNKNOWN_OPERATION = "UNKNOWN_OPERATION"
UNKNOWN_SCHEMA = "UNKNOWN_SCHEMA"


# ---------------------------------------------------------------------------
# Uninitialized sentinel
# ---------------------------------------------------------------------------


class Uninitialized:
    """The state of a collection that was never populated or inserted into."""

    _instance: Uninitialized | None = None

    def __new__(cls) -> Uninitialized:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNINITIALIZED"

    def __reduce__(self) -> str:
        return "UNINITIALIZED"


UNINITIALIZED = Uninitialized()


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Collection:
    """
    Normalized snapshot of one collection.

    Instances are never modified. The reducer builds a new Collection for
    every transition and shares untouched records with the previous one.
    Records are stored as read-only mappings, so a record shared between
    two snapshots can't be changed through either of them.
    """

    order: tuple[RecordId, ...] = ()
    by_id: Mapping[RecordId, Mapping[str, Any]] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.order, tuple):
            object.__setattr__(self, "order", tuple(self.order))
        if not isinstance(self.by_id, MappingProxyType):
            object.__setattr__(
                self, "by_id", MappingProxyType({rid: freeze_record(rec) for rid, rec in self.by_id.items()})
            )

    def __len__(self) -> int:
        return len(self.order)

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        return (self.by_id[rid] for rid in self.order)

    def __contains__(self, rid: object) -> bool:
        try:
            return rid in self.by_id
        except TypeError:
            return False

    def __repr__(self) -> str:
        records = {rid: dict(rec) for rid, rec in self.by_id.items()}
        return f"Collection(order={list(self.order)!r}, by_id={records!r})"

    def __reduce__(self) -> tuple[Any, ...]:
        # mappingproxy can't be pickled or deep-copied; rebuild from a plain dict
        return (Collection, (self.order, {rid: dict(rec) for rid, rec in self.by_id.items()}))

    def to_dict(self) -> dict[str, Any]:
        return {
            "allIds": list(self.order),
            "byId": {rid: dict(rec) for rid, rec in self.by_id.items()},
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Collection:
        """
        Rebuild from the {"allIds", "byId"} wire form.
        Raises InvalidCollection if the two halves disagree.
        """
        if "allIds" not in d or "byId" not in d:
            raise InvalidCollection("expected 'allIds' and 'byId'")
        all_ids = list(d["allIds"])
        by_id = d["byId"]
        if len(set(all_ids)) != len(all_ids):
            raise InvalidCollection("duplicate ids in 'allIds'")
        if set(all_ids) != set(by_id):
            raise InvalidCollection("'allIds' and 'byId' keys differ")
        return cls(
            order=tuple(all_ids),
            by_id={rid: by_id[rid] for rid in all_ids},
        )


CollectionState: TypeAlias = Collection | Uninitialized


@dataclass(frozen=True)
class Operation:
    """
    A tagged mutation request: {kind, schema, payload}.
    kind is normally an OperationKind; any other value is carried through
    so the reducer can report it as unknown.
    """

    kind: OperationKind | str
    schema: str
    payload: Any = None

    def to_dict(self) -> dict[str, Any]:
        payload = list(self.payload) if isinstance(self.payload, tuple) else self.payload
        return {"type": str(self.kind), "schema": self.schema, "payload": payload}


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal issue encountered during reduction."""

    code: str
    message: str
    severity: str = "warning"
    schema: str | None = None
    details: dict[str, Any] | None = None


@dataclass
class ReduceResult:
    """
    Result of applying one operation to a collection state.
    The reducer never throws for misuse; it always returns one of these.
    """

    state: CollectionState
    changed: bool
    diagnostics: list[Diagnostic] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def coerce_kind(kind: Any) -> OperationKind | None:
    """Return the OperationKind for kind, or None if it is not one of the six."""
    if isinstance(kind, OperationKind):
        return kind
    try:
        return OperationKind(kind)
    except (ValueError, TypeError):
        return None


def record_id(record: Any, *, kind: str = "record") -> RecordId:
    """
    Extract a record's id.
    Raises InvalidRecord if record isn't a mapping or its id is missing/unhashable.
    """
    if not isinstance(record, Mapping):
        raise InvalidRecord(f"{kind} payload must be a mapping, got {type(record).__name__}")
    if "id" not in record or record["id"] is None:
        raise InvalidRecord(f"{kind} payload has no 'id' field")
    return check_id(record["id"], kind=kind)


def check_id(rid: Any, *, kind: str = "record") -> RecordId:
    if rid is None:
        raise InvalidRecord(f"{kind} requires an id")
    try:
        hash(rid)
    except TypeError:
        raise InvalidRecord(f"{kind} id {rid!r} is not hashable") from None
    if rid != rid:
        raise InvalidRecord(f"{kind} id {rid!r} is not equal to itself")
    return rid


def freeze_record(record: Mapping[str, Any]) -> Mapping[str, Any]:
    """Read-only shallow copy of a record."""
    return MappingProxyType(dict(record))
