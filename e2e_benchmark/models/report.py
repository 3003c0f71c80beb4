"""Models for the scored benchmark report of one run."""

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from e2e_benchmark.models.base import Model
from e2e_benchmark.models.observation import Severity, TestUnitRecord

type Tier = Literal["Elite", "Strong", "Stable", "Watch", "Critical"]


class EnrichedTestRecord(TestUnitRecord):
    """A test attempt together with its sub-scores, composite score and tier."""

    __test__ = False

    error_signals: int
    throughput_per_min: float
    duration_score: float
    reliability_score: float
    quality_score: float
    throughput_score: float
    accessibility_score: float
    benchmark_score: float
    tier: Tier


class RollupStatistics(Model):
    """Statistics shared by per-group and whole-run rollups."""

    total_tests: int
    passed: int
    failed: int
    total_requests: int
    request_failures: int
    request_failure_rate_pct: float
    avg_response_time_ms: float
    p95_response_time_ms: float
    pass_rate_pct: float
    retry_rate_pct: float
    error_signals_per_test: float
    avg_duration_ms: float
    median_duration_ms: float
    p95_duration_ms: float
    p99_duration_ms: float
    std_dev_duration_ms: float
    cv_pct: float = Field(..., description="Coefficient of variation of durations")
    throughput_tests_per_min: float
    duration_score: float
    reliability_score: float
    quality_score: float
    throughput_score: float
    benchmark_score: float
    tier: Tier


class GroupRollup(RollupStatistics):
    """Rollup of all tests sharing a group label."""

    group_label: str
    accessibility_score: float
    a11y_findings: int
    a11y_critical: int
    a11y_serious: int
    a11y_moderate: int
    a11y_minor: int


class OverallSummary(RollupStatistics):
    """Rollup of every test in the run.

    The composite score leaves accessibility out; it is reported separately
    in ``AccessibilityOverview``.
    """

    skipped: int
    timed_out: int
    flaky: int
    console_error_count: int
    page_error_count: int
    p90_duration_ms: float


class TopViolation(Model):
    """An accessibility rule ranked by affected elements across the run."""

    rule_id: str
    severity: Severity
    description: str
    count: int = Field(..., description="Affected elements summed over all tests")


class AccessibilityOverview(Model):
    """Accessibility totals for the whole run."""

    total_findings: int
    critical: int
    serious: int
    moderate: int
    minor: int
    tests_with_findings: int
    tests_scanned: int
    accessibility_score: float
    top_violations: Sequence[TopViolation] = Field(default_factory=list)


class Thresholds(Model):
    """Run-level targets echoed into the report for presentation.

    Scoring uses its own fixed target/max pairs; these values are informational.
    Fields validate from snake_case names or their camelCase aliases.
    """

    model_config = ConfigDict(
        frozen=True, extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    avg_duration_target_ms: float = 1500
    p95_duration_target_ms: float = 3000
    throughput_target_per_min: float = 22
    retry_rate_target_pct: float = 0


class RunSummary(Model):
    """Complete, read-only description of one run handed to presentation."""

    generated_at: datetime
    run_id: str
    thresholds: Thresholds
    overall: OverallSummary
    accessibility: AccessibilityOverview
    groups: Sequence[GroupRollup] = Field(
        default_factory=list, description="Sorted by benchmark score, best first"
    )
    tests: Sequence[EnrichedTestRecord] = Field(
        default_factory=list, description="Sorted by duration, slowest first"
    )

    def to_json(self) -> dict[str, Any]:
        """Return the JSON-serializable tree of the summary."""
        return self.model_dump(mode="json")
