# path: assocreset/core/decision.py
"""
core/decision.py — Decision gate (skip / proceed / confirm)

Pure policy over a SampleResult:
- A zero-hit sample only justifies skipping when it is large enough to trust
- An estimate above the configured ceiling needs an operator's consent
- No I/O, no prompting: the caller owns the confirmation surface
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ConfigurationError
from .models import SampleResult

DEFAULT_MIN_SAMPLE = 50
DEFAULT_MAX_FILES = 10_000


def should_skip_full_pass(result: SampleResult, min_sample: int = DEFAULT_MIN_SAMPLE) -> bool:
    return result.sampled_count >= min_sample and result.hit_count == 0


def requires_confirmation(estimated_population_hits: int, max_files: int = DEFAULT_MAX_FILES) -> bool:
    return estimated_population_hits > max_files


class Verdict(str, Enum):
    SKIP = "skip"
    PROCEED = "proceed"
    CONFIRM = "confirm"


@dataclass(frozen=True, slots=True)
class DecisionGateConfig:
    min_sample: int = DEFAULT_MIN_SAMPLE
    max_files: int = DEFAULT_MAX_FILES

    def __post_init__(self) -> None:
        if self.min_sample < 0:
            raise ConfigurationError(f"min_sample cannot be negative: {self.min_sample}")
        if self.max_files < 1:
            raise ConfigurationError(f"max_files must be at least 1: {self.max_files}")


@dataclass(frozen=True, slots=True)
class GateDecision:
    verdict: Verdict
    reason: str
    # Sample smaller than min_sample: a zero-hit result was not trusted.
    inconclusive: bool = False

    @property
    def should_run(self) -> bool:
        return self.verdict is not Verdict.SKIP


class DecisionGate:
    def __init__(self, config: Optional[DecisionGateConfig] = None):
        self.config = config or DecisionGateConfig()

    def should_skip(self, result: SampleResult) -> bool:
        return should_skip_full_pass(result, self.config.min_sample)

    def requires_confirmation(self, result: SampleResult) -> bool:
        return requires_confirmation(result.estimated_population_hits, self.config.max_files)

    def evaluate(self, result: SampleResult) -> GateDecision:
        if self.should_skip(result):
            return GateDecision(
                Verdict.SKIP,
                f"0 of {result.sampled_count} sampled files carry an override",
            )

        inconclusive = result.sampled_count < self.config.min_sample

        if self.requires_confirmation(result):
            return GateDecision(
                Verdict.CONFIRM,
                f"estimated {result.estimated_population_hits} affected files exceeds "
                f"max_files={self.config.max_files}",
                inconclusive=inconclusive,
            )

        if inconclusive and result.hit_count == 0:
            reason = (
                f"sample of {result.sampled_count} is below min_sample={self.config.min_sample}; "
                "zero hits not trusted"
            )
        else:
            reason = f"{result.hit_count} of {result.sampled_count} sampled files carry an override"
        return GateDecision(Verdict.PROCEED, reason, inconclusive=inconclusive)


__all__ = [
    "DEFAULT_MAX_FILES",
    "DEFAULT_MIN_SAMPLE",
    "DecisionGate",
    "DecisionGateConfig",
    "GateDecision",
    "Verdict",
    "requires_confirmation",
    "should_skip_full_pass",
]
