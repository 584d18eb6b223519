# path: assocreset/core/pipeline.py
"""
assocreset/core/pipeline.py — Scan / estimate / reset facade (authoritative)

The surrounding CLI talks to this class only:
  sample()                -> SampleResult
  should_skip()           -> bool
  requires_confirmation() -> bool
  run()                   -> lazy stream of OutcomeRecords (validated eagerly,
                             one pass per category)
  report()                -> Report for the latest run, queryable at any time

This file is intentionally headless: no prompting, no printing.
"""

from __future__ import annotations

import os
import random
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional

from assocreset.services.logger import get_logger
from assocreset.workers.pool import WorkerPool

from .attributes import AttributePort, XattrAttributeStore
from .decision import requires_confirmation, should_skip_full_pass
from .discovery import Cancellable, DirectoryEnumerator, normalize_categories, validate_root
from .errors import ConfigurationError
from .metrics import MetricsAggregator
from .models import OutcomeRecord, Report, SampleResult
from .sampling import RecordCB, Sampler

if TYPE_CHECKING:
    from assocreset.config import ResetConfig

_log = get_logger("pipeline")


class ResetPipeline:
    def __init__(
        self,
        store: Optional[AttributePort] = None,
        *,
        enumerator: Optional[DirectoryEnumerator] = None,
        rng: Optional[random.Random] = None,
        halt_on_error: bool = False,
        use_threads: bool = True,
    ) -> None:
        self.store = store or XattrAttributeStore()
        self.enumerator = enumerator or DirectoryEnumerator()
        self.sampler = Sampler(self.store, enumerator=self.enumerator, rng=rng)
        self.halt_on_error = halt_on_error
        self.use_threads = use_threads
        self._metrics = MetricsAggregator()

    @classmethod
    def from_config(cls, config: "ResetConfig", store: Optional[AttributePort] = None) -> "ResetPipeline":
        enumerator = DirectoryEnumerator(
            include_hidden=config.include_hidden,
            follow_symlinks=config.follow_symlinks,
            exclude_dirs=config.exclude_dirs,
        )
        rng = random.Random(config.seed) if config.seed is not None else None
        return cls(
            store or XattrAttributeStore(config.attribute, follow_symlinks=config.follow_symlinks),
            enumerator=enumerator,
            rng=rng,
            halt_on_error=config.halt_on_error,
            use_threads=config.parallel,
        )

    # ------------------------------------------------------------------
    # Estimate
    # ------------------------------------------------------------------

    def sample(
        self,
        root: os.PathLike | str,
        categories: Iterable[str],
        sample_size: int,
        *,
        on_record: Optional[RecordCB] = None,
        cancel: Optional[Cancellable] = None,
    ) -> SampleResult:
        result = self.sampler.sample(root, categories, sample_size, on_record=on_record, cancel=cancel)
        _log.debug(
            "sample: %d/%d hits over population %d (%s)",
            result.hit_count,
            result.sampled_count,
            result.total_population,
            result.confidence.value,
        )
        return result

    @staticmethod
    def should_skip(result: SampleResult, min_sample: int) -> bool:
        return should_skip_full_pass(result, min_sample)

    @staticmethod
    def requires_confirmation(result: SampleResult, max_files: int) -> bool:
        return requires_confirmation(result.estimated_population_hits, max_files)

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def run(
        self,
        root: os.PathLike | str,
        categories: Iterable[str],
        concurrency: int,
        dry_run: bool,
        cancel: Optional[Cancellable] = None,
        *,
        category_limit: int = 0,
    ) -> Iterator[OutcomeRecord]:
        """
        Validate synchronously, then return the outcome stream.

        Categories are processed one pass at a time, in caller order, so each
        category's elapsed time and rate cover only its own files. Each record
        is accumulated into this run's metrics before it is yielded.

        category_limit > 0 leaves any category with more matching files than
        that untouched; it is reported in Report.skipped.
        """
        root_path = validate_root(root)
        cats = normalize_categories(categories)
        if int(concurrency) < 1:
            raise ConfigurationError(f"concurrency must be at least 1, got {concurrency}")
        if int(category_limit) < 0:
            raise ConfigurationError(f"category_limit cannot be negative, got {category_limit}")

        pool = WorkerPool(
            self.store,
            concurrency=int(concurrency),
            halt_on_error=self.halt_on_error,
            use_threads=self.use_threads,
        )
        metrics = MetricsAggregator()
        self._metrics = metrics

        _log.debug("run: root=%s categories=%s concurrency=%d dry_run=%s", root_path, cats, concurrency, dry_run)
        return self._stream(pool, root_path, cats, dry_run, metrics, cancel, int(category_limit))

    def _stream(
        self,
        pool: WorkerPool,
        root: Path,
        cats: List[str],
        dry_run: bool,
        metrics: MetricsAggregator,
        cancel: Optional[Cancellable],
        category_limit: int,
    ) -> Iterator[OutcomeRecord]:
        counts: Dict[str, int] = {}
        if category_limit:
            counts = self.enumerator.count_by_category(root, cats, cancel)

        current: Optional[str] = None
        next_index = 0
        try:
            for cat in cats:
                if cancel is not None and cancel.is_cancelled():
                    break

                metrics.start(cat)
                if category_limit and counts.get(cat, 0) > category_limit:
                    _log.debug("run: skipping .%s (%d files > limit %d)", cat, counts[cat], category_limit)
                    metrics.mark_skipped(cat)
                    metrics.finish(cat)
                    continue

                current = cat
                # One walk per category; the filter keeps first-match-wins across categories.
                candidates = (c for c in self.enumerator.enumerate(root, cats, cancel) if c.category == cat)
                halted = False
                for record in pool.process(candidates, dry_run=dry_run, cancel=cancel, start_index=next_index):
                    next_index += 1
                    metrics.accumulate(cat, record)
                    if record.is_error and self.halt_on_error:
                        halted = True
                    yield record
                metrics.finish(cat)
                current = None
                if halted:
                    break
        finally:
            if cancel is not None and cancel.is_cancelled():
                metrics.mark_cancelled()
            if current is not None:
                metrics.finish(current)

    def report(self) -> Report:
        return self._metrics.report()


__all__ = ["ResetPipeline"]
