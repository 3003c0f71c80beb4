"""Versioned wire format of per-attempt metrics attachments.

Test runners persist each attempt's telemetry as a JSON attachment named
``observability-metrics`` and report attempts as camelCase envelopes. This
module is the only place that reads that format: everything downstream works
with typed ``TestUnitRecord`` objects.

Missing or unreadable attachments degrade to all-zero observations. Values
that parse but cannot be scored (negative counters, NaN or infinite samples)
raise ``InvalidMetricError``.
"""

import json
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from e2e_benchmark.collector import resolve_group_label
from e2e_benchmark.models.observation import (
    AccessibilityFinding,
    AccessibilitySummary,
    ErrorObservation,
    NetworkObservation,
    OutcomeClass,
    Severity,
    TestStatus,
    TestUnitRecord,
)

log = logging.getLogger(__name__)

ATTACHMENT_NAME = "observability-metrics"
ATTACHMENT_SCHEMA_VERSION = 1
SUPPORTED_SCHEMA_VERSIONS = frozenset({1})


class InvalidMetricError(Exception):
    """Raised when captured telemetry holds values that cannot be scored."""


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, frozen=True)


class WireViolation(_WireModel):
    """Accessibility violation as written by the capture fixture."""

    id: str
    impact: Severity
    description: str = ""
    help_url: str | None = None
    nodes: int = 0


class WireAccessibility(_WireModel):
    """Accessibility scan result as written by the capture fixture."""

    total_violations: int = 0
    critical: int = 0
    serious: int = 0
    moderate: int = 0
    minor: int = 0
    violations: Sequence[WireViolation] = Field(default_factory=list)


class MetricsAttachmentV1(_WireModel):
    """Schema version 1 of the ``observability-metrics`` attachment."""

    schema_version: int = ATTACHMENT_SCHEMA_VERSION
    request_count: int = 0
    request_failure_count: int = 0
    response_error_count: int = 0
    response_times_ms: Sequence[float] = Field(default_factory=list)
    console_errors: Sequence[str] = Field(default_factory=list)
    page_errors: Sequence[str] = Field(default_factory=list)
    accessibility: WireAccessibility = Field(default_factory=WireAccessibility)


class WireAttachment(_WireModel):
    """Inline attachment of a reported attempt."""

    name: str
    content_type: str | None = None
    body: str | None = None
    path: str | None = Field(
        default=None, description="File holding the body when it is not inlined"
    )


class AttemptEnvelope(_WireModel):
    """One reported test attempt."""

    id: str
    title: str = ""
    title_path: Sequence[str] = Field(default_factory=list)
    file: str = ""
    project_name: str | None = None
    status: TestStatus
    outcome: OutcomeClass = "expected"
    duration_ms: float = 0
    retry: int = 0
    started_at: datetime | None = None
    metrics: Any = None
    attachments: Sequence[WireAttachment] = Field(default_factory=list)


@dataclass(frozen=True, kw_only=True)
class AttemptMetrics:
    """Typed observations recovered from one attachment."""

    network: NetworkObservation = field(default_factory=NetworkObservation)
    errors: ErrorObservation = field(default_factory=ErrorObservation)
    accessibility: AccessibilitySummary = field(default_factory=AccessibilitySummary)

    @classmethod
    def empty(cls) -> Self:
        """All-zero observations used when no usable attachment exists."""
        return cls()


def parse_metrics_attachment(
    raw: str | bytes | Mapping[str, Any] | None,
) -> AttemptMetrics:
    """Deserialize a metrics attachment into typed observations.

    Args:
        raw: Attachment body as JSON text or an already decoded mapping

    Returns:
        Observations of the attempt; all-zero when the attachment is missing
        or malformed

    Raises:
        InvalidMetricError: If a counter is negative or a sample is not finite

    """
    if raw is None:
        log.debug("No metrics attachment, using empty observations")
        return AttemptMetrics.empty()

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            log.warning("Unreadable metrics attachment, using empty observations: %s", e)
            return AttemptMetrics.empty()

    if not isinstance(raw, Mapping):
        log.warning(
            "Metrics attachment is a %s, not an object; using empty observations",
            type(raw).__name__,
        )
        return AttemptMetrics.empty()

    version = raw.get("schemaVersion", ATTACHMENT_SCHEMA_VERSION)
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        log.warning(
            "Unsupported metrics schema version %r, using empty observations", version
        )
        return AttemptMetrics.empty()

    try:
        wire = MetricsAttachmentV1.model_validate(raw)
    except ValidationError as e:
        log.warning("Invalid metrics attachment, using empty observations: %s", e)
        return AttemptMetrics.empty()

    _check_ranges(wire)
    return _to_metrics(wire)


def _check_ranges(wire: MetricsAttachmentV1) -> None:
    counters = {
        "requestCount": wire.request_count,
        "requestFailureCount": wire.request_failure_count,
        "responseErrorCount": wire.response_error_count,
    }
    for name, value in counters.items():
        if value < 0:
            raise InvalidMetricError(f"{name} must not be negative, got {value}")

    for sample in wire.response_times_ms:
        if not math.isfinite(sample) or sample < 0:
            raise InvalidMetricError(f"Invalid response time sample: {sample}")

    for violation in wire.accessibility.violations:
        if violation.nodes < 0:
            raise InvalidMetricError(
                f"Violation {violation.id} has a negative node count: {violation.nodes}"
            )


def _to_metrics(wire: MetricsAttachmentV1) -> AttemptMetrics:
    findings = [
        AccessibilityFinding(
            rule_id=violation.id,
            severity=violation.impact,
            description=violation.description,
            help_reference=violation.help_url,
            affected_element_count=violation.nodes,
        )
        for violation in wire.accessibility.violations
    ]
    accessibility = AccessibilitySummary.from_findings(findings)
    if wire.accessibility.total_violations != accessibility.total_findings:
        log.warning(
            "Attachment reports %d violations but lists %d; counting the list",
            wire.accessibility.total_violations,
            accessibility.total_findings,
        )

    return AttemptMetrics(
        network=NetworkObservation(
            request_count=wire.request_count,
            request_failure_count=wire.request_failure_count,
            http_error_count=wire.response_error_count,
            response_times_ms=list(wire.response_times_ms),
        ),
        errors=ErrorObservation(
            console_error_messages=list(wire.console_errors),
            page_error_messages=list(wire.page_errors),
        ),
        accessibility=accessibility,
    )


def dump_metrics_attachment(
    *,
    network: NetworkObservation,
    errors: ErrorObservation,
    started_at: datetime,
    ended_at: datetime,
    accessibility: AccessibilitySummary | None = None,
) -> dict[str, Any]:
    """Serialize one attempt's observations into the attachment wire format."""
    a11y = accessibility or AccessibilitySummary()
    return {
        "schemaVersion": ATTACHMENT_SCHEMA_VERSION,
        "requestCount": network.request_count,
        "requestFailureCount": network.request_failure_count,
        "responseErrorCount": network.http_error_count,
        "responseTimesMs": list(network.response_times_ms),
        "avgResponseTimeMs": network.avg_response_time_ms,
        "p95ResponseTimeMs": network.p95_response_time_ms,
        "consoleErrors": list(errors.console_error_messages),
        "pageErrors": list(errors.page_error_messages),
        "testStartedAt": started_at.isoformat(),
        "testEndedAt": ended_at.isoformat(),
        "testDurationMs": (ended_at - started_at).total_seconds() * 1000,
        "accessibility": {
            "totalViolations": a11y.total_findings,
            "critical": a11y.critical,
            "serious": a11y.serious,
            "moderate": a11y.moderate,
            "minor": a11y.minor,
            "violations": [
                {
                    "id": finding.rule_id,
                    "impact": finding.severity,
                    "description": finding.description,
                    "helpUrl": finding.help_reference,
                    "nodes": finding.affected_element_count,
                }
                for finding in a11y.findings
            ],
        },
    }


def record_from_attempt(raw: Mapping[str, Any]) -> TestUnitRecord:
    """Build a ``TestUnitRecord`` from a reported attempt envelope.

    Metrics are read from an inline ``metrics`` object or, failing that, from
    the ``observability-metrics`` entry of ``attachments``, either its inline
    body or the file at its path. An unreadable file counts as a missing
    attachment.

    Raises:
        ValueError: If the envelope misses its identity or status
        InvalidMetricError: If the duration, retry index or metrics are out of range

    """
    try:
        envelope = AttemptEnvelope.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid attempt record: {e}") from e

    if not math.isfinite(envelope.duration_ms) or envelope.duration_ms < 0:
        raise InvalidMetricError(
            f"Attempt {envelope.id} has an invalid duration: {envelope.duration_ms}"
        )
    if envelope.retry < 0:
        raise InvalidMetricError(
            f"Attempt {envelope.id} has a negative retry index: {envelope.retry}"
        )

    title_path = [segment for segment in envelope.title_path if segment] or [
        segment.strip() for segment in envelope.title.split(" > ") if segment.strip()
    ]
    metrics = parse_metrics_attachment(_find_metrics(envelope))

    return TestUnitRecord(
        id=envelope.id,
        title=" > ".join(title_path),
        file_path=envelope.file,
        group_label=resolve_group_label(envelope.project_name, title_path),
        attempt_number=envelope.retry,
        status=envelope.status,
        outcome_class=envelope.outcome,
        started_at=envelope.started_at,
        duration_ms=envelope.duration_ms,
        network=metrics.network,
        errors=metrics.errors,
        accessibility=metrics.accessibility,
    )


def _find_metrics(envelope: AttemptEnvelope) -> Any:
    if envelope.metrics is not None:
        return envelope.metrics
    for attachment in envelope.attachments:
        if attachment.name != ATTACHMENT_NAME:
            continue
        if attachment.body is not None:
            return attachment.body
        if attachment.path is not None:
            try:
                return Path(attachment.path).read_text()
            except OSError as e:
                log.warning(
                    "Cannot read metrics attachment of %s, using empty observations: %s",
                    envelope.id,
                    e,
                )
                return None
    return None
