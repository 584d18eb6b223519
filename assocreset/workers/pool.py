# path: assocreset/workers/pool.py
"""
pool.py — Bounded worker pool for the per-file check-and-clear pass

Provides:
1. Bounded fan-out (a fixed number of worker threads)
2. Streaming input (one producer thread feeding a bounded work queue)
3. Streaming output (records are yielded as workers finish them)
4. Cooperative cancellation and an optional halt-on-first-error policy
5. Sequential fallback with identical record semantics

Usage:
    pool = WorkerPool(store, concurrency=resolve_worker_count())
    for record in pool.process(enumerator.enumerate(root, ["pdf"]), dry_run=False):
        metrics.accumulate(record.category, record)

Records arrive in completion order, not enumeration order; each one carries
the candidate's enumeration index so callers can re-sort for display.
"""

from __future__ import annotations

import os
import queue
import threading
from typing import Iterable, Iterator, List, Optional

import psutil

from assocreset.core.attributes import AttributePort, check_and_clear
from assocreset.core.discovery import Cancellable
from assocreset.core.errors import ConfigurationError
from assocreset.core.models import CandidatePath, OutcomeAction, OutcomeRecord
from assocreset.services.logger import get_logger

MAX_WORKERS_LIMIT = 128
WORKERS_ENV = "ASSOCRESET_WORKERS"

# Queue depth per worker; keeps memory proportional to the concurrency limit.
_QUEUE_FACTOR = 4
_POLL_SECONDS = 0.05

_log = get_logger("pool")


def resolve_worker_count(requested: int = 0, *, env: Optional[dict] = None) -> int:
    """
    requested > 0 wins; else the ASSOCRESET_WORKERS environment variable;
    else 75% of logical CPUs. Always clamped to 1..MAX_WORKERS_LIMIT.
    """
    env = os.environ if env is None else env
    workers = int(requested or 0)

    if workers <= 0:
        raw = str(env.get(WORKERS_ENV, "") or "").strip()
        if raw.isdigit() and int(raw) > 0:
            workers = int(raw)

    if workers <= 0:
        cpu = psutil.cpu_count(logical=True) or os.cpu_count() or 4
        workers = (cpu * 3) // 4

    return max(1, min(MAX_WORKERS_LIMIT, workers))


class _Done:
    """Queue sentinel."""


_DONE = _Done()
_WORKER_EXIT = _Done()


class WorkerPool:
    def __init__(
        self,
        store: AttributePort,
        *,
        concurrency: int,
        halt_on_error: bool = False,
        use_threads: bool = True,
    ):
        if int(concurrency) < 1:
            raise ConfigurationError(f"concurrency must be at least 1, got {concurrency}")
        self.store = store
        self.concurrency = int(concurrency)
        self.halt_on_error = halt_on_error
        self.use_threads = use_threads
        self.mode = "idle"

    def process(
        self,
        candidates: Iterable[CandidatePath],
        *,
        dry_run: bool,
        cancel: Optional[Cancellable] = None,
        start_index: int = 0,
    ) -> Iterator[OutcomeRecord]:
        """
        Returns a lazy stream of OutcomeRecords, one per dispatched candidate.
        Nothing is scheduled until the stream is iterated. Record indices
        count up from start_index in dispatch order.
        """
        if self.use_threads and self.concurrency > 1:
            return self._threaded(iter(candidates), dry_run, cancel, start_index)
        return self._sequential(iter(candidates), dry_run, cancel, start_index)

    # ------------------------------------------------------------------
    # Sequential
    # ------------------------------------------------------------------

    def _sequential(
        self,
        candidates: Iterator[CandidatePath],
        dry_run: bool,
        cancel: Optional[Cancellable],
        start_index: int = 0,
    ) -> Iterator[OutcomeRecord]:
        self.mode = "sequential"
        for index, cand in enumerate(candidates, start=start_index):
            if cancel is not None and cancel.is_cancelled():
                return
            record = check_and_clear(self.store, cand, dry_run=dry_run, index=index)
            yield record
            if self.halt_on_error and record.action is OutcomeAction.ERROR:
                _log.debug("halt_on_error: stopping after %s", record.path)
                return

    # ------------------------------------------------------------------
    # Threaded
    # ------------------------------------------------------------------

    def _threaded(
        self,
        candidates: Iterator[CandidatePath],
        dry_run: bool,
        cancel: Optional[Cancellable],
        start_index: int = 0,
    ) -> Iterator[OutcomeRecord]:
        n = self.concurrency
        work_q: "queue.Queue[object]" = queue.Queue(maxsize=n * _QUEUE_FACTOR)
        results_q: "queue.Queue[object]" = queue.Queue(maxsize=n * _QUEUE_FACTOR)
        halt = threading.Event()
        producer_error: List[BaseException] = []

        def stopping() -> bool:
            return halt.is_set() or (cancel is not None and cancel.is_cancelled())

        def put_unless_stopping(item: object) -> bool:
            while not stopping():
                try:
                    work_q.put(item, timeout=_POLL_SECONDS)
                    return True
                except queue.Full:
                    continue
            return False

        def produce() -> None:
            try:
                for index, cand in enumerate(candidates, start=start_index):
                    if not put_unless_stopping((index, cand)):
                        return
            except Exception as e:
                producer_error.append(e)
                halt.set()
                return
            for _ in range(n):
                if not put_unless_stopping(_DONE):
                    return

        def work() -> None:
            try:
                while not stopping():
                    try:
                        item = work_q.get(timeout=_POLL_SECONDS)
                    except queue.Empty:
                        continue
                    if item is _DONE:
                        break
                    index, cand = item
                    record = check_and_clear(self.store, cand, dry_run=dry_run, index=index)
                    results_q.put(record)
                    if self.halt_on_error and record.action is OutcomeAction.ERROR:
                        halt.set()
            finally:
                results_q.put(_WORKER_EXIT)

        producer = threading.Thread(target=produce, name="assocreset-producer", daemon=True)
        workers = [
            threading.Thread(target=work, name=f"assocreset-worker-{i}", daemon=True)
            for i in range(n)
        ]

        # Workers first: until the producer runs, no candidate has been consumed,
        # so any start failure can still hand the whole stream to _sequential.
        started = 0
        for w in workers:
            try:
                w.start()
                started += 1
            except RuntimeError as e:
                _log.debug("Started %d of %d workers (%s)", started, n, e)
                break

        if started == 0:
            _log.debug("No worker thread available; processing sequentially")
            yield from self._sequential(candidates, dry_run, cancel, start_index)
            return

        try:
            producer.start()
        except RuntimeError as e:
            _log.debug("Producer thread unavailable (%s); processing sequentially", e)
            halt.set()
            exited = 0
            while exited < started:
                if results_q.get() is _WORKER_EXIT:
                    exited += 1
            yield from self._sequential(candidates, dry_run, cancel, start_index)
            return

        self.mode = "threaded"
        _log.debug("Worker pool running with %d workers", started)

        exited = 0
        try:
            while exited < started:
                item = results_q.get()
                if item is _WORKER_EXIT:
                    exited += 1
                    continue
                yield item  # type: ignore[misc]
        finally:
            # Reached on normal drain, and also when the consumer abandons the stream.
            halt.set()
            while exited < started:
                if results_q.get() is _WORKER_EXIT:
                    exited += 1
            producer.join()

        if producer_error:
            raise producer_error[0]


__all__ = ["MAX_WORKERS_LIMIT", "WorkerPool", "resolve_worker_count"]
