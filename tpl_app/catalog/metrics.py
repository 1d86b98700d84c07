"""Prometheus metrics helpers for the catalog pipeline."""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter, Gauge

_import_records_counter = Counter(
    "tpl_catalog_import_records_total",
    "Catalog export records processed by outcome.",
    ["outcome"],
)
_sync_runs_counter = Counter(
    "tpl_catalog_sync_runs_total",
    "Pinball Map active-machine sync attempts by outcome.",
    ["outcome"],
)
_active_machines_gauge = Gauge(
    "tpl_catalog_active_machines",
    "Machines flagged active after the last committed sync.",
)


def record_import_summary(summary) -> None:
    """Add an ``ImportSummary`` to the import counters."""

    outcomes = {
        "created": summary.machines_created,
        "skipped_existing": summary.machines_skipped_existing,
        "skipped_invalid": summary.records_skipped_invalid,
        "failed_insert": summary.records_failed_insert,
    }
    for outcome, count in outcomes.items():
        if count:
            _import_records_counter.labels(outcome=outcome).inc(count)


def record_sync_outcome(outcome: Literal["committed", "aborted"], *, active_machines: int | None = None) -> None:
    """Count a sync attempt and, when committed, publish the active count."""

    _sync_runs_counter.labels(outcome=outcome).inc()
    if outcome == "committed" and active_machines is not None:
        _active_machines_gauge.set(active_machines)
