"""Interval policies: how far out the next review is scheduled.

A policy is any callable ``(ratio, prior_review_count, prior_interval_days)
-> interval_days``. ``ratio`` is ``score / total`` of the review that just
finished, ``prior_review_count`` is the number of reviews completed before it
and ``prior_interval_days`` the gap between the previous review and its due
date (``None`` for never-reviewed resources).
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Optional, Protocol

from memory_bank.core.config import Settings, settings


class IntervalPolicy(Protocol):
    def __call__(
        self,
        ratio: float,
        prior_review_count: int,
        prior_interval_days: Optional[float],
    ) -> float:
        ...


class PerformanceBand(float, enum.Enum):
    POOR = 0.3
    FAIR = 0.5
    GOOD = 0.8
    PERFECT = 1.0


def calculate_standardized_performance(score: int, total: int) -> PerformanceBand:
    """Map a raw ``score / total`` onto one of four performance bands."""

    ratio = score / total if total > 0 else 0.0
    return performance_band(ratio)


def performance_band(ratio: float) -> PerformanceBand:
    if ratio >= 0.95:
        return PerformanceBand.PERFECT
    if ratio >= 0.8:
        return PerformanceBand.GOOD
    if ratio >= 0.6:
        return PerformanceBand.FAIR
    return PerformanceBand.POOR


@dataclass(frozen=True, slots=True)
class BinaryIntervalPolicy:
    """Full credit pushes the next review out, anything less brings it back.

    Review history is ignored: the interval only depends on whether the last
    review was perfect.
    """

    full_credit_days: float = 7.0
    miss_days: float = 1.0

    def __call__(
        self,
        ratio: float,
        prior_review_count: int,
        prior_interval_days: Optional[float] = None,
    ) -> float:
        return self.full_credit_days if ratio >= 1.0 else self.miss_days


@dataclass(frozen=True, slots=True)
class _BandRule:
    base_days: int
    growth: float
    cap_days: int


@dataclass(frozen=True, slots=True)
class GrowthIntervalPolicy:
    """Intervals grow with each successful review, a poor review resets them.

    The first review gets the band's base interval. Later reviews multiply it
    by the band's growth factor once per prior review (at most
    ``max_growth_steps`` times) and clamp the result to the band's cap.
    """

    perfect: _BandRule = _BandRule(base_days=7, growth=1.8, cap_days=180)
    good: _BandRule = _BandRule(base_days=5, growth=1.4, cap_days=60)
    fair: _BandRule = _BandRule(base_days=3, growth=1.15, cap_days=14)
    poor_days: int = 1
    max_growth_steps: int = 5

    def _rule_for(self, band: PerformanceBand) -> Optional[_BandRule]:
        return {
            PerformanceBand.PERFECT: self.perfect,
            PerformanceBand.GOOD: self.good,
            PerformanceBand.FAIR: self.fair,
        }.get(band)

    def __call__(
        self,
        ratio: float,
        prior_review_count: int,
        prior_interval_days: Optional[float] = None,
    ) -> float:
        band = performance_band(ratio)
        rule = self._rule_for(band)
        if rule is None:
            return float(self.poor_days)

        if prior_review_count <= 0:
            return float(rule.base_days)

        steps = min(prior_review_count, self.max_growth_steps)
        interval = math.floor(rule.base_days * rule.growth**steps + 0.5)
        return float(min(interval, rule.cap_days))


def build_interval_policy(config: Settings | None = None) -> IntervalPolicy:
    """Return the policy selected by ``REVIEW_INTERVAL_POLICY``."""

    config = config or settings
    if config.REVIEW_INTERVAL_POLICY == "growth":
        return GrowthIntervalPolicy()
    return BinaryIntervalPolicy(
        full_credit_days=config.REVIEW_FULL_CREDIT_INTERVAL_DAYS,
        miss_days=config.REVIEW_MISS_INTERVAL_DAYS,
    )


__all__ = [
    "BinaryIntervalPolicy",
    "GrowthIntervalPolicy",
    "IntervalPolicy",
    "PerformanceBand",
    "build_interval_policy",
    "calculate_standardized_performance",
    "performance_band",
]
