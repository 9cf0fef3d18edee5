"""
normstate Kernel — normalized record collections.

Components:
  types       — Collection, UNINITIALIZED, Operation, Diagnostic
  reducer     — (state, operation) → state  (pure, deterministic)
  selectors   — read-only facade over a "current state" accessor
  operations  — operation builders, optionally bound to a dispatcher
  validation  — structural checks for raw operations and collections
  store       — in-memory dispatcher holding one state per schema
"""

from normstate.kernel.diagnostics import (
    CollectingSink,
    DiagnosticSink,
    FunctionSink,
    LoggingSink,
    NullSink,
)
from normstate.kernel.operations import bind_operations, make_operations
from normstate.kernel.reducer import apply, empty_collection, reduce, reduce_all, replay
from normstate.kernel.selectors import get_all, make_selector
from normstate.kernel.store import CollectionStore
from normstate.kernel.types import (
    UNINITIALIZED,
    Collection,
    Diagnostic,
    InvalidCollection,
    InvalidOperation,
    InvalidRecord,
    Operation,
    OperationKind,
    ReduceResult,
)
from normstate.kernel.validation import check_integrity, parse_operation, validate_operation

__all__ = [
    "UNINITIALIZED",
    "Collection",
    "Operation",
    "OperationKind",
    "Diagnostic",
    "ReduceResult",
    "InvalidRecord",
    "InvalidCollection",
    "InvalidOperation",
    "reduce",
    "apply",
    "reduce_all",
    "replay",
    "empty_collection",
    "make_selector",
    "get_all",
    "make_operations",
    "bind_operations",
    "validate_operation",
    "parse_operation",
    "check_integrity",
    "CollectionStore",
    "DiagnosticSink",
    "NullSink",
    "CollectingSink",
    "FunctionSink",
    "LoggingSink",
]
