"""
normstate Kernel — Operation Construction

Factory functions for building well-formed operations for one schema, and a
binding that sends each built operation straight to a dispatcher.

No state and no validation beyond shape: checking ids is the reducer's job.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from normstate.kernel.types import Operation, OperationKind, Record, RecordId

T = TypeVar("T")

BUILDER_NAMES: tuple[str, ...] = ("populate", "insert", "update", "delete", "replace", "upsert")


class OperationFactory:
    """Builds tagged operations for a single schema."""

    __slots__ = ("schema",)

    def __init__(self, schema: str) -> None:
        self.schema = schema

    def populate(self, records: Iterable[Record]) -> Operation:
        return Operation(OperationKind.POPULATE, self.schema, tuple(records))

    def insert(self, record: Record) -> Operation:
        return Operation(OperationKind.INSERT, self.schema, record)

    def update(self, patch: Record) -> Operation:
        return Operation(OperationKind.UPDATE, self.schema, patch)

    def delete(self, rid: RecordId) -> Operation:
        return Operation(OperationKind.DELETE, self.schema, rid)

    def replace(self, record: Record) -> Operation:
        return Operation(OperationKind.REPLACE, self.schema, record)

    def upsert(self, record: Record) -> Operation:
        return Operation(OperationKind.UPSERT, self.schema, record)

    @staticmethod
    def names() -> tuple[str, ...]:
        return BUILDER_NAMES

    def __repr__(self) -> str:  # pragma: no cover
        return f"OperationFactory(schema={self.schema!r})"


class BoundOperations(Generic[T]):
    """
    Same builders as OperationFactory, but each one hands the operation to
    sender and returns whatever sender returns.
    """

    __slots__ = ("_factory", "_send")

    def __init__(self, schema: str, sender: Callable[[Operation], T]) -> None:
        self._factory = OperationFactory(schema)
        self._send = sender

    @property
    def schema(self) -> str:
        return self._factory.schema

    def populate(self, records: Iterable[Record]) -> T:
        return self._send(self._factory.populate(records))

    def insert(self, record: Record) -> T:
        return self._send(self._factory.insert(record))

    def update(self, patch: Record) -> T:
        return self._send(self._factory.update(patch))

    def delete(self, rid: RecordId) -> T:
        return self._send(self._factory.delete(rid))

    def replace(self, record: Record) -> T:
        return self._send(self._factory.replace(record))

    def upsert(self, record: Record) -> T:
        return self._send(self._factory.upsert(record))

    @staticmethod
    def names() -> tuple[str, ...]:
        return BUILDER_NAMES

    def __repr__(self) -> str:  # pragma: no cover
        return f"BoundOperations(schema={self.schema!r})"


def make_operations(schema: str) -> OperationFactory:
    """Operation builders for one schema."""
    return OperationFactory(schema)


def bind_operations(schema: str, sender: Callable[[Operation], Any]) -> BoundOperations[Any]:
    """Operation builders for one schema, each composed with sender."""
    return BoundOperations(schema, sender)
