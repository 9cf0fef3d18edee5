"""
normstate Kernel — Diagnostic Sinks

The reducer reports soft misuse (duplicate inserts, missing IDs, unknown
operations) as Diagnostic values. A sink decides what to do with them.
Sinks are observers only: nothing a sink does feeds back into the reducer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from normstate.config import VERBOSITY_LEVELS, settings
from normstate.kernel.types import Diagnostic

logger = logging.getLogger(__name__)

_SEVERITY_RANK: dict[str, int] = {"info": 0, "warning": 1}

# Lowest severity rank each verbosity lets through; silent lets nothing through
_VERBOSITY_FLOOR: dict[str, int] = {"info": 0, "warning": 1, "silent": 2}


def format_diagnostic(diagnostic: Diagnostic) -> str:
    """Render a diagnostic as a single advisory line."""
    if diagnostic.schema:
        return f"[{diagnostic.schema}] {diagnostic.code}: {diagnostic.message}"
    return f"{diagnostic.code}: {diagnostic.message}"


class DiagnosticSink:
    """
    Abstract sink interface.
    Implement with logging for applications, or collect in memory for tests.
    """

    def emit(self, diagnostic: Diagnostic) -> None:
        raise NotImplementedError


class NullSink(DiagnosticSink):
    """Drops everything."""

    def emit(self, diagnostic: Diagnostic) -> None:
        return None


class CollectingSink(DiagnosticSink):
    """Keeps every diagnostic in memory."""

    def __init__(self) -> None:
        self.diagnostics: list[Diagnostic] = []

    def emit(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    @property
    def codes(self) -> list[str]:
        return [d.code for d in self.diagnostics]

    def clear(self) -> None:
        self.diagnostics.clear()


class FunctionSink(DiagnosticSink):
    """Passes the formatted message to a single-argument callable (e.g. print)."""

    def __init__(self, fn: Callable[[str], Any], verbosity: str = "warning") -> None:
        if verbosity not in VERBOSITY_LEVELS:
            raise ValueError(f"Unknown verbosity: {verbosity}")
        self._fn = fn
        self.verbosity = verbosity

    def emit(self, diagnostic: Diagnostic) -> None:
        if _passes(diagnostic, self.verbosity):
            self._fn(format_diagnostic(diagnostic))


class LoggingSink(DiagnosticSink):
    """Writes diagnostics to a stdlib logger at their own severity."""

    def __init__(self, log: logging.Logger | None = None, verbosity: str | None = None) -> None:
        verbosity = verbosity or settings.DIAGNOSTICS
        if verbosity not in VERBOSITY_LEVELS:
            raise ValueError(f"Unknown verbosity: {verbosity}")
        self._log = log or logger
        self.verbosity = verbosity

    def emit(self, diagnostic: Diagnostic) -> None:
        if not _passes(diagnostic, self.verbosity):
            return
        if diagnostic.severity == "info":
            self._log.info("%s", format_diagnostic(diagnostic))
        else:
            self._log.warning("%s", format_diagnostic(diagnostic))


def _passes(diagnostic: Diagnostic, verbosity: str) -> bool:
    rank = _SEVERITY_RANK.get(diagnostic.severity, _SEVERITY_RANK["warning"])
    return rank >= _VERBOSITY_FLOOR[verbosity]


def default_sink() -> DiagnosticSink:
    """Sink used when the caller doesn't pass one, configured from settings."""
    return LoggingSink(logging.getLogger(settings.LOGGER_NAME))


def as_sink(sink: DiagnosticSink | Callable[[str], Any] | None) -> DiagnosticSink:
    """Accept a sink, a plain callable, or None (default sink)."""
    if sink is None:
        return default_sink()
    if isinstance(sink, DiagnosticSink):
        return sink
    if callable(sink):
        return FunctionSink(sink)
    raise TypeError(f"Not a diagnostic sink: {sink!r}")
