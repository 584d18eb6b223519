# path: assocreset/core/sampling.py
"""
assocreset/core/sampling.py — Pre-scan sampling estimator

Draws a bounded random subset of candidates (proportional across
categories), checks each one and summarises the hit rate so the decision
gate can skip clean trees cheaply.

Cost: two directory walks (count, then draw) plus one check per sampled
file. Memory is bounded by the sample size, not the population.
"""

from __future__ import annotations

import os
import random
from typing import Callable, Dict, Iterable, List, Optional

from .attributes import AttributePort, check_and_clear
from .discovery import Cancellable, DirectoryEnumerator, normalize_categories
from .errors import ConfigurationError
from .models import CandidatePath, CategorySample, OutcomeAction, OutcomeRecord, SampleResult

RecordCB = Callable[[OutcomeRecord], None]


def allocate_sample(populations: Dict[str, int], requested: int) -> Dict[str, int]:
    """
    Split `requested` slots across categories in proportion to population.

    Each non-empty category first gets max(1, floor(requested * pop / total)),
    capped at its population. The result is then reconciled so the slots add
    up to exactly min(requested, total): flooring shortfall goes to the largest
    fractional remainders, and any excess from the minimum-of-one rule is taken
    back from the largest allocations. Empty categories get nothing.
    """
    nonempty = [(c, n) for c, n in populations.items() if n > 0]
    total = sum(n for _, n in nonempty)
    if requested <= 0 or total == 0:
        return {}

    target = min(requested, total)
    if target >= total:
        return {c: n for c, n in nonempty}

    # More categories than slots: the largest categories win (stable sort keeps caller order on ties).
    if len(nonempty) > target:
        ranked = sorted(nonempty, key=lambda cn: -cn[1])
        chosen = {c for c, _ in ranked[:target]}
        return {c: 1 for c, _ in nonempty if c in chosen}

    alloc: Dict[str, int] = {}
    remainders: List[tuple] = []
    for c, n in nonempty:
        alloc[c] = min(n, max(1, (target * n) // total))
        remainders.append(((target * n) % total, c))

    assigned = sum(alloc.values())

    if assigned < target:
        order = [c for _, c in sorted(remainders, key=lambda rc: -rc[0])]
        while assigned < target:
            progressed = False
            for c in order:
                if alloc[c] < populations[c]:
                    alloc[c] += 1
                    assigned += 1
                    progressed = True
                    if assigned == target:
                        break
            if not progressed:
                break

    while assigned > target:
        c = max((c for c in alloc if alloc[c] > 1), key=lambda k: alloc[k])
        alloc[c] -= 1
        assigned -= 1

    return alloc


class Sampler:
    def __init__(
        self,
        store: AttributePort,
        *,
        enumerator: Optional[DirectoryEnumerator] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.enumerator = enumerator or DirectoryEnumerator()
        self.rng = rng or random.Random()

    def sample(
        self,
        root: os.PathLike | str,
        categories: Iterable[str],
        total_sample_size: int,
        *,
        on_record: Optional[RecordCB] = None,
        cancel: Optional[Cancellable] = None,
    ) -> SampleResult:
        if int(total_sample_size) < 0:
            raise ConfigurationError(f"Sample size cannot be negative: {total_sample_size}")
        cats = normalize_categories(categories)

        populations = self.enumerator.count_by_category(root, cats, cancel)
        total = sum(populations.values())
        if total == 0 or total_sample_size == 0:
            return SampleResult.empty(total)

        allocation = allocate_sample(populations, int(total_sample_size))
        drawn = self._draw(root, cats, allocation, cancel)

        sampled = hits = 0
        per_category: List[CategorySample] = []
        for cat in cats:
            picks = drawn.get(cat, [])
            cat_hits = cat_errors = 0
            for cand in picks:
                record = check_and_clear(self.store, cand, dry_run=True)
                if record.action is OutcomeAction.WOULD_CLEAR:
                    cat_hits += 1
                elif record.action is OutcomeAction.ERROR:
                    cat_errors += 1
                if on_record is not None:
                    on_record(record)
            sampled += len(picks)
            hits += cat_hits
            per_category.append(
                CategorySample(
                    category=cat,
                    population=populations.get(cat, 0),
                    sampled=len(picks),
                    hits=cat_hits,
                    errors=cat_errors,
                )
            )

        return SampleResult.from_counts(
            sampled=sampled,
            hits=hits,
            total_population=total,
            per_category=tuple(per_category),
        )

    def _draw(
        self,
        root: os.PathLike | str,
        cats: List[str],
        allocation: Dict[str, int],
        cancel: Optional[Cancellable],
    ) -> Dict[str, List[CandidatePath]]:
        """
        Reservoir sampling (Algorithm R) per category over a single walk.
        When a category's allocation covers its whole population every file is
        kept in walk order and the rng is never consulted.
        """
        reservoirs: Dict[str, List[CandidatePath]] = {c: [] for c in allocation}
        seen: Dict[str, int] = {c: 0 for c in allocation}

        for cand in self.enumerator.enumerate(root, cats, cancel):
            k = allocation.get(cand.category, 0)
            if k <= 0:
                continue
            seen[cand.category] += 1
            res = reservoirs[cand.category]
            if len(res) < k:
                res.append(cand)
                continue
            j = self.rng.randrange(seen[cand.category])
            if j < k:
                res[j] = cand

        return reservoirs


__all__ = ["Sampler", "allocate_sample"]
