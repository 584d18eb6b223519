# path: assocreset/core/metrics.py
"""
assocreset/core/metrics.py — Per-run metrics aggregator

One instance per run. Counters live behind start/accumulate/finish/report
and are only ever touched under a single lock, so concurrent workers can
accumulate into the same category and report() never sees a torn update.
Accumulation is commutative: the totals do not depend on completion order.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

from .models import CategoryMetrics, OutcomeAction, OutcomeRecord, Report

Clock = Callable[[], float]


class _CategoryCounter:
    __slots__ = (
        "category",
        "files_seen",
        "files_with_override",
        "files_cleared",
        "errors",
        "started_at",
        "finished_at",
        "_t0",
        "_t1",
        "_rate",
    )

    def __init__(self, category: str, now_wall: float, now_mono: float):
        self.category = category
        self.files_seen = 0
        self.files_with_override = 0
        self.files_cleared = 0
        self.errors = 0
        self.started_at = now_wall
        self.finished_at: Optional[float] = None
        self._t0 = now_mono
        self._t1: Optional[float] = None
        self._rate: Optional[float] = None

    def add(self, record: OutcomeRecord) -> None:
        self.files_seen += 1
        if record.had_override:
            self.files_with_override += 1
        if record.action.counts_as_cleared:
            self.files_cleared += 1
        elif record.action is OutcomeAction.ERROR:
            self.errors += 1

    def elapsed(self, now_mono: float) -> float:
        end = self._t1 if self._t1 is not None else now_mono
        return max(0.0, end - self._t0)

    def freeze(self, now_wall: float, now_mono: float) -> None:
        self.finished_at = now_wall
        self._t1 = now_mono
        elapsed = self.elapsed(now_mono)
        self._rate = self.files_seen / elapsed if elapsed > 0 else 0.0

    def snapshot(self, now_mono: float) -> CategoryMetrics:
        elapsed = self.elapsed(now_mono)
        if self._rate is not None:
            rate = self._rate
        else:
            rate = self.files_seen / elapsed if elapsed > 0 else 0.0
        return CategoryMetrics(
            category=self.category,
            files_seen=self.files_seen,
            files_with_override=self.files_with_override,
            files_cleared=self.files_cleared,
            errors=self.errors,
            started_at=self.started_at,
            finished_at=self.finished_at,
            elapsed_seconds=elapsed,
            rate=rate,
        )


class MetricsAggregator:
    def __init__(self, *, clock: Clock = time.monotonic, wall_clock: Clock = time.time):
        self._clock = clock
        self._wall = wall_clock
        self._lock = threading.Lock()
        self._counters: Dict[str, _CategoryCounter] = OrderedDict()
        self._cancelled = False
        self._skipped: List[str] = []

    def start(self, category: str) -> None:
        """Begin (or restart) accounting for a category. Order of first start is report order."""
        with self._lock:
            self._counters[category] = _CategoryCounter(category, self._wall(), self._clock())

    def accumulate(self, category: str, record: OutcomeRecord) -> None:
        with self._lock:
            counter = self._counters.get(category)
            if counter is None:
                # Never drop a record; a late start still keeps the totals exact.
                counter = _CategoryCounter(category, self._wall(), self._clock())
                self._counters[category] = counter
            counter.add(record)

    def finish(self, category: str) -> None:
        with self._lock:
            counter = self._counters.get(category)
            if counter is None or counter.finished_at is not None:
                return
            counter.freeze(self._wall(), self._clock())

    def mark_cancelled(self) -> None:
        with self._lock:
            self._cancelled = True

    def mark_skipped(self, category: str) -> None:
        with self._lock:
            if category not in self._skipped:
                self._skipped.append(category)

    def report(self) -> Report:
        with self._lock:
            now = self._clock()
            snapshots = tuple(c.snapshot(now) for c in self._counters.values())
            cancelled = self._cancelled
            skipped = tuple(self._skipped)
            # Categories may overlap in time, so the total spans earliest start to latest end.
            if self._counters:
                t0 = min(c._t0 for c in self._counters.values())
                t1 = max((c._t1 if c._t1 is not None else now) for c in self._counters.values())
                span = max(0.0, t1 - t0)
            else:
                span = 0.0

        seen = sum(s.files_seen for s in snapshots)
        started = [s.started_at for s in snapshots if s.started_at is not None]
        finished = [s.finished_at for s in snapshots if s.finished_at is not None]
        total = CategoryMetrics(
            category="TOTAL",
            files_seen=seen,
            files_with_override=sum(s.files_with_override for s in snapshots),
            files_cleared=sum(s.files_cleared for s in snapshots),
            errors=sum(s.errors for s in snapshots),
            started_at=min(started) if started else None,
            finished_at=max(finished) if finished and len(finished) == len(snapshots) else None,
            elapsed_seconds=span,
            rate=seen / span if span > 0 else 0.0,
        )
        return Report(categories=snapshots, total=total, cancelled=cancelled, skipped=skipped)


__all__ = ["MetricsAggregator"]
