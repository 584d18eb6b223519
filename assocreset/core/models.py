# path: assocreset/core/models.py
"""
assocreset/core/models.py — Shared value types for the scan/estimate/reset pipeline.

Everything here is immutable once built. Mutable accounting lives inside
MetricsAggregator and only leaves it as CategoryMetrics snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import ErrorKind


# ---------------------------------------------------------------------
# Candidates and outcomes
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CandidatePath:
    path: Path
    category: str


class OutcomeAction(str, Enum):
    SKIPPED = "skipped"
    CLEARED = "cleared"
    WOULD_CLEAR = "would_clear"
    ERROR = "error"

    @property
    def counts_as_cleared(self) -> bool:
        return self in (OutcomeAction.CLEARED, OutcomeAction.WOULD_CLEAR)


@dataclass(frozen=True, slots=True)
class OutcomeRecord:
    path: Path
    category: str
    had_override: bool
    action: OutcomeAction
    error_detail: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    index: int = -1

    def __post_init__(self) -> None:
        if self.action.counts_as_cleared and not self.had_override:
            raise ValueError(f"{self.action.value} record without an override: {self.path}")
        if self.action is OutcomeAction.SKIPPED and self.had_override:
            raise ValueError(f"skipped record with an override present: {self.path}")

    @property
    def is_error(self) -> bool:
        return self.action is OutcomeAction.ERROR

    def to_dict(self) -> Dict[str, object]:
        return {
            "path": str(self.path),
            "category": self.category,
            "had_override": self.had_override,
            "action": self.action.value,
            "error_detail": self.error_detail,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "index": self.index,
        }


# ---------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------

class ConfidenceLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    VERY_LOW = "Very Low"
    NOT_COMPUTABLE = "N/A"

    @classmethod
    def classify(cls, sampled: int, population: int) -> "ConfidenceLevel":
        if sampled <= 0 or population <= 0:
            return cls.NOT_COMPUTABLE
        ratio = sampled / population
        if ratio >= 0.10:
            return cls.HIGH
        if ratio >= 0.05:
            return cls.MEDIUM
        if ratio >= 0.01:
            return cls.LOW
        return cls.VERY_LOW


@dataclass(frozen=True, slots=True)
class CategorySample:
    category: str
    population: int
    sampled: int
    hits: int
    errors: int = 0


@dataclass(frozen=True, slots=True)
class SampleResult:
    sampled_count: int
    hit_count: int
    hit_rate_percent: float
    estimated_population_hits: int
    confidence: ConfidenceLevel
    total_population: int = 0
    per_category: Tuple[CategorySample, ...] = ()

    @property
    def computable(self) -> bool:
        return self.sampled_count > 0

    @classmethod
    def empty(cls, total_population: int = 0) -> "SampleResult":
        return cls(
            sampled_count=0,
            hit_count=0,
            hit_rate_percent=0.0,
            estimated_population_hits=0,
            confidence=ConfidenceLevel.NOT_COMPUTABLE,
            total_population=total_population,
        )

    @classmethod
    def from_counts(
        cls,
        *,
        sampled: int,
        hits: int,
        total_population: int,
        per_category: Tuple[CategorySample, ...] = (),
    ) -> "SampleResult":
        if sampled <= 0:
            return cls.empty(total_population)
        return cls(
            sampled_count=sampled,
            hit_count=hits,
            hit_rate_percent=100.0 * hits / sampled,
            estimated_population_hits=(total_population * hits) // sampled,
            confidence=ConfidenceLevel.classify(sampled, total_population),
            total_population=total_population,
            per_category=per_category,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "sampled_count": self.sampled_count,
            "hit_count": self.hit_count,
            "hit_rate_percent": round(self.hit_rate_percent, 2),
            "estimated_population_hits": self.estimated_population_hits,
            "confidence": self.confidence.value,
            "total_population": self.total_population,
            "per_category": [
                {
                    "category": c.category,
                    "population": c.population,
                    "sampled": c.sampled,
                    "hits": c.hits,
                    "errors": c.errors,
                }
                for c in self.per_category
            ],
        }


# ---------------------------------------------------------------------
# Metrics snapshots
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CategoryMetrics:
    """Read-only view of one category's accounting."""
    category: str
    files_seen: int = 0
    files_with_override: int = 0
    files_cleared: int = 0
    errors: int = 0
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    elapsed_seconds: float = 0.0
    rate: float = 0.0

    @property
    def finished(self) -> bool:
        return self.finished_at is not None

    def to_dict(self) -> Dict[str, object]:
        return {
            "category": self.category,
            "files_seen": self.files_seen,
            "files_with_override": self.files_with_override,
            "files_cleared": self.files_cleared,
            "errors": self.errors,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "rate": round(self.rate, 1),
        }


@dataclass(frozen=True, slots=True)
class Report:
    categories: Tuple[CategoryMetrics, ...] = ()
    total: CategoryMetrics = field(default_factory=lambda: CategoryMetrics(category="TOTAL"))
    cancelled: bool = False
    # Categories left untouched because their file count was over the limit.
    skipped: Tuple[str, ...] = ()

    def get(self, category: str) -> Optional[CategoryMetrics]:
        for c in self.categories:
            if c.category == category:
                return c
        return None

    def _ranked(self) -> List[CategoryMetrics]:
        return [c for c in self.categories if c.files_seen > 0]

    def fastest(self, n: int = 5) -> List[CategoryMetrics]:
        return sorted(self._ranked(), key=lambda c: -c.rate)[:n]

    def slowest(self, n: int = 5) -> List[CategoryMetrics]:
        return sorted(self._ranked(), key=lambda c: c.rate)[:n]

    def summary(self) -> str:
        t = self.total
        return f"Processed {t.files_seen} files in {t.elapsed_seconds:.2f}s ({t.rate:.1f} files/s)"

    def to_dict(self) -> Dict[str, object]:
        return {
            "categories": [c.to_dict() for c in self.categories],
            "total": self.total.to_dict(),
            "cancelled": self.cancelled,
            "skipped": list(self.skipped),
        }


__all__ = [
    "CandidatePath",
    "CategoryMetrics",
    "CategorySample",
    "ConfidenceLevel",
    "OutcomeAction",
    "OutcomeRecord",
    "Report",
    "SampleResult",
]
