"""Models for telemetry captured during a single test attempt."""

from collections.abc import Sequence
from datetime import datetime
from typing import Literal, Self

from pydantic import Field, computed_field, model_validator

from e2e_benchmark.models.base import Model
from e2e_benchmark.stats import mean, percentile, round_to

Severity = Literal["critical", "serious", "moderate", "minor"]
TestStatus = Literal["passed", "failed", "timedOut", "skipped", "interrupted"]
OutcomeClass = Literal["expected", "unexpected", "flaky", "skipped"]

SEVERITIES: Sequence[Severity] = ("critical", "serious", "moderate", "minor")


class AccessibilityFinding(Model):
    """One violated accessibility rule on one page."""

    rule_id: str = Field(..., description="Rule identifier (e.g., 'image-alt')")
    severity: Severity
    description: str = ""
    help_reference: str | None = Field(
        default=None, description="Link to rule documentation"
    )
    affected_element_count: int = Field(
        default=0, description="Number of DOM elements violating the rule"
    )


class AccessibilitySummary(Model):
    """Findings of an accessibility scan, counted by severity.

    Counts are finding instances, not affected elements. Each severity count
    and ``total_findings`` must match ``findings``; inconsistent summaries are
    rejected. Use ``from_findings`` to derive the counts from the list.
    """

    critical: int = 0
    serious: int = 0
    moderate: int = 0
    minor: int = 0
    total_findings: int = 0
    findings: Sequence[AccessibilityFinding] = Field(default_factory=list)

    @classmethod
    def from_findings(cls, findings: Sequence[AccessibilityFinding]) -> Self:
        """Build a summary whose severity counts are derived from the findings."""
        counts = {severity: 0 for severity in SEVERITIES}
        for finding in findings:
            counts[finding.severity] += 1
        return cls(
            **counts,
            total_findings=len(findings),
            findings=list(findings),
        )

    @model_validator(mode="after")
    def _check_counts(self) -> Self:
        by_severity = {severity: 0 for severity in SEVERITIES}
        for finding in self.findings:
            by_severity[finding.severity] += 1
        counts = {severity: getattr(self, severity) for severity in SEVERITIES}
        if counts != by_severity or self.total_findings != len(self.findings):
            raise ValueError(
                f"Severity counts {counts} and total {self.total_findings} do not "
                f"match the {len(self.findings)} listed finding(s)"
            )
        return self


class NetworkObservation(Model):
    """Network telemetry for one attempt."""

    request_count: int = 0
    request_failure_count: int = 0
    http_error_count: int = Field(
        default=0, description="Responses with an HTTP status of 400 or above"
    )
    response_times_ms: Sequence[float] = Field(
        default_factory=list, description="One sample per completed request"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def avg_response_time_ms(self) -> float:
        """Mean response time, 0 without samples."""
        return round_to(mean(self.response_times_ms))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def p95_response_time_ms(self) -> float:
        """Nearest-rank 95th percentile response time, 0 without samples."""
        return round_to(percentile(self.response_times_ms, 95))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def max_response_time_ms(self) -> float:
        """Slowest response time, 0 without samples."""
        return round_to(max(self.response_times_ms, default=0))


class ErrorObservation(Model):
    """Errors surfaced by the page during one attempt."""

    console_error_messages: Sequence[str] = Field(default_factory=list)
    page_error_messages: Sequence[str] = Field(
        default_factory=list, description="Unhandled runtime exceptions"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def console_error_count(self) -> int:
        """Number of console errors."""
        return len(self.console_error_messages)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def page_error_count(self) -> int:
        """Number of unhandled page errors."""
        return len(self.page_error_messages)


class TestUnitRecord(Model):
    """One execution (attempt) of one test scenario.

    Retries of the same test share ``id`` and differ by ``attempt_number``,
    which counts prior attempts (0 for the first execution).
    """

    __test__ = False

    id: str = Field(..., description="Stable identity of the logical test")
    title: str = Field(..., description="Hierarchical title joined with ' > '")
    file_path: str = ""
    group_label: str = Field(
        default="unknown", description="Rollup dimension, usually the browser"
    )
    attempt_number: int = 0
    status: TestStatus
    outcome_class: OutcomeClass = "expected"
    started_at: datetime | None = None
    duration_ms: float = 0
    network: NetworkObservation = Field(default_factory=NetworkObservation)
    errors: ErrorObservation = Field(default_factory=ErrorObservation)
    accessibility: AccessibilitySummary = Field(default_factory=AccessibilitySummary)
