"""Scoring primitives mapping raw metrics onto a 0-100 desirability scale."""

from dataclasses import dataclass

from e2e_benchmark.models.observation import AccessibilitySummary
from e2e_benchmark.models.report import Tier
from e2e_benchmark.stats import clamp, round_to

SEVERITY_PENALTIES = {"critical": 4, "serious": 3, "moderate": 2, "minor": 1}
PENALTY_POINT_COST = 8


def score_lower_better(value: float, target: float, maximum: float) -> float:
    """Score a metric where smaller is better (durations, error counts).

    Returns 100 at or below ``target``, 0 at or above ``maximum`` and a linear
    interpolation in between.
    """
    if value <= target:
        return 100
    if value >= maximum:
        return 0
    return round_to(clamp((1 - (value - target) / (maximum - target)) * 100, 0, 100))


def score_higher_better(value: float, minimum: float, target: float) -> float:
    """Score a metric where bigger is better (throughput).

    Returns 100 at or above ``target``, 0 at or below ``minimum`` and a linear
    interpolation in between.
    """
    if value >= target:
        return 100
    if value <= minimum:
        return 0
    return round_to(clamp((value - minimum) / (target - minimum) * 100, 0, 100))


def tier_from_score(score: float) -> Tier:
    """Map a composite score to its tier; each band includes its lower bound."""
    if score >= 90:
        return "Elite"
    if score >= 75:
        return "Strong"
    if score >= 60:
        return "Stable"
    if score >= 40:
        return "Watch"
    return "Critical"


def accessibility_score(summary: AccessibilitySummary) -> float:
    """Score accessibility from finding counts.

    Each finding costs ``SEVERITY_PENALTIES[severity]`` penalty points and each
    point removes 8 from 100, so three critical findings already score 4.
    """
    penalty = (
        summary.critical * SEVERITY_PENALTIES["critical"]
        + summary.serious * SEVERITY_PENALTIES["serious"]
        + summary.moderate * SEVERITY_PENALTIES["moderate"]
        + summary.minor * SEVERITY_PENALTIES["minor"]
    )
    return round_to(clamp(100 - penalty * PENALTY_POINT_COST, 0, 100))


@dataclass(frozen=True, kw_only=True)
class CompositeWeights:
    """Weights of the five sub-scores in a composite benchmark score."""

    duration: float
    reliability: float
    quality: float
    throughput: float
    accessibility: float = 0

    def combine(
        self,
        *,
        duration: float,
        reliability: float,
        quality: float,
        throughput: float,
        accessibility: float = 0,
    ) -> float:
        """Weighted sum of the sub-scores, rounded to 2 digits."""
        return round_to(
            duration * self.duration
            + reliability * self.reliability
            + quality * self.quality
            + throughput * self.throughput
            + accessibility * self.accessibility
        )


# Per-test, per-group and whole-run weightings are kept separate; the run
# composite has no accessibility term.
TEST_WEIGHTS = CompositeWeights(
    duration=0.35, reliability=0.25, quality=0.15, throughput=0.10, accessibility=0.15
)
GROUP_WEIGHTS = CompositeWeights(
    duration=0.30, reliability=0.25, quality=0.15, throughput=0.10, accessibility=0.20
)
OVERALL_WEIGHTS = CompositeWeights(
    duration=0.40, reliability=0.30, quality=0.20, throughput=0.10
)
