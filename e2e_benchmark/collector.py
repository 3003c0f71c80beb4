"""Per-attempt metrics capture.

A ``MetricsCollector`` is attached to exactly one test attempt. The browser
driver forwards page events to its hooks; when the attempt finishes the
collector turns the accumulated counters into an immutable ``TestUnitRecord``.
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from e2e_benchmark.models.observation import (
    AccessibilitySummary,
    ErrorObservation,
    NetworkObservation,
    OutcomeClass,
    TestStatus,
    TestUnitRecord,
)

log = logging.getLogger(__name__)

KNOWN_ENGINES = ("chromium", "firefox", "webkit")
UNKNOWN_GROUP = "unknown"
PLACEHOLDER_RUN_GROUP = "default"


def resolve_group_label(run_group: str | None, title_path: Sequence[str]) -> str:
    """Resolve the rollup group of a test.

    Precedence:
        1. The run group exposed by the execution context, lower-cased,
           unless it is the runner's placeholder ``"default"``.
        2. The first title segment, when it names a known engine.
        3. ``"unknown"``.

    Args:
        run_group: Named run group (e.g., the runner's project name), if any
        title_path: Hierarchical test title, outermost segment first

    Returns:
        The group label every browser-level breakdown is keyed on

    """
    label = (run_group or "").strip().lower()
    if label and label != PLACEHOLDER_RUN_GROUP:
        return label

    if title_path:
        head = title_path[0].strip().lower()
        if head in KNOWN_ENGINES:
            return head

    return UNKNOWN_GROUP


def _now_ms() -> float:
    return time.monotonic() * 1000


@dataclass(kw_only=True)
class MetricsCollector:
    """Accumulates raw page events for a single test attempt."""

    request_count: int = 0
    request_failure_count: int = 0
    http_error_count: int = 0
    response_times_ms: list[float] = field(default_factory=list)
    console_errors: list[str] = field(default_factory=list)
    page_errors: list[str] = field(default_factory=list)
    _in_flight: dict[str, float] = field(default_factory=dict, repr=False)

    def request_started(self, request_id: str, at_ms: float | None = None) -> None:
        """Count an outgoing request and remember when it left."""
        self.request_count += 1
        self._in_flight[request_id] = _now_ms() if at_ms is None else at_ms

    def request_finished(self, request_id: str, at_ms: float | None = None) -> None:
        """Record the response time of a completed request."""
        started_at = self._in_flight.pop(request_id, None)
        if started_at is None:
            log.debug("Finished request %s was never started", request_id)
            return
        finished_at = _now_ms() if at_ms is None else at_ms
        self.response_times_ms.append(finished_at - started_at)

    def request_failed(self, request_id: str) -> None:
        """Count a network-level failure (DNS, TLS, refused connection)."""
        self.request_failure_count += 1
        self._in_flight.pop(request_id, None)

    def response_received(self, status: int) -> None:
        """Count responses carrying an HTTP error status."""
        if status >= 400:
            self.http_error_count += 1

    def console_message(self, kind: str, text: str) -> None:
        """Keep console messages of type ``error``."""
        if kind == "error":
            self.console_errors.append(text)

    def page_error(self, message: str) -> None:
        """Keep an unhandled page exception."""
        self.page_errors.append(message)

    def network(self) -> NetworkObservation:
        """Snapshot of the network counters."""
        return NetworkObservation(
            request_count=self.request_count,
            request_failure_count=self.request_failure_count,
            http_error_count=self.http_error_count,
            response_times_ms=list(self.response_times_ms),
        )

    def errors(self) -> ErrorObservation:
        """Snapshot of the captured errors."""
        return ErrorObservation(
            console_error_messages=list(self.console_errors),
            page_error_messages=list(self.page_errors),
        )

    def build_record(
        self,
        *,
        test_id: str,
        title_path: Sequence[str],
        status: TestStatus,
        file_path: str = "",
        run_group: str | None = None,
        attempt_number: int = 0,
        outcome_class: OutcomeClass = "expected",
        started_at: datetime | None = None,
        duration_ms: float = 0,
        accessibility: AccessibilitySummary | None = None,
    ) -> TestUnitRecord:
        """Produce the immutable record of this attempt."""
        segments = [segment for segment in title_path if segment]
        record = TestUnitRecord(
            id=test_id,
            title=" > ".join(segments),
            file_path=file_path,
            group_label=resolve_group_label(run_group, segments),
            attempt_number=attempt_number,
            status=status,
            outcome_class=outcome_class,
            started_at=started_at,
            duration_ms=duration_ms,
            network=self.network(),
            errors=self.errors(),
            accessibility=accessibility or AccessibilitySummary(),
        )
        log.debug(
            "Collected attempt %s of %s (group=%s, status=%s)",
            attempt_number,
            test_id,
            record.group_label,
            status,
        )
        return record
