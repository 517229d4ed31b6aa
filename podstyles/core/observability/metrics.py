from __future__ import annotations

import threading
from collections import Counter
from typing import Dict

from prometheus_client import Counter as PromCounter
from prometheus_client import Histogram

# Named counters (in-process snapshot, used by tests and the build report)
_NAMED = Counter()
_NAMED_LOCK = threading.Lock()

_PROM_FILES_REWRITTEN = PromCounter(
    "podstyles_files_rewritten_total",
    "Files rewritten by the scoping pass",
    ["kind"],
)

_PROM_FILE_FAILURES = PromCounter(
    "podstyles_file_failures_total",
    "Files that failed to rewrite",
    ["kind", "error"],
)

_PROM_CLASSES_DEFINED = PromCounter(
    "podstyles_classes_defined_total",
    "Scoped class definitions registered",
)

_PROM_CLASSES_USED = PromCounter(
    "podstyles_classes_used_total",
    "Scoped class usages registered",
)

_PROM_DIAGNOSTICS = PromCounter(
    "podstyles_diagnostics_total",
    "Advisory diagnostics emitted by ledger reconciliation",
    ["kind"],
)

BUILD_DURATION_SECONDS = Histogram(
    "podstyles_build_duration_seconds",
    "Wall time of a full two-phase build",
)


def reset_metrics() -> None:
    """
    Test helper: clears the named counters to avoid cross-test leakage.
    Prometheus collectors are process-wide and are left alone.
    """
    with _NAMED_LOCK:
        _NAMED.clear()


def inc_named(name: str, value: int = 1) -> None:
    if not name:
        return
    with _NAMED_LOCK:
        _NAMED[name] += int(value)


def inc_file_rewritten(kind: str) -> None:
    inc_named(f"files_rewritten_{kind}")
    _PROM_FILES_REWRITTEN.labels(kind=kind).inc()


def inc_file_failure(kind: str, error: str) -> None:
    inc_named(f"file_failures_{kind}")
    _PROM_FILE_FAILURES.labels(kind=kind, error=error).inc()


def inc_classes_defined(n: int = 1) -> None:
    if n <= 0:
        return
    inc_named("classes_defined", n)
    _PROM_CLASSES_DEFINED.inc(n)


def inc_classes_used(n: int = 1) -> None:
    if n <= 0:
        return
    inc_named("classes_used", n)
    _PROM_CLASSES_USED.inc(n)


def inc_diagnostic(kind: str) -> None:
    inc_named(f"diagnostics_{kind}")
    _PROM_DIAGNOSTICS.labels(kind=kind).inc()


def snapshot_named() -> Dict[str, int]:
    with _NAMED_LOCK:
        return dict(_NAMED)
