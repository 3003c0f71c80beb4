"""Assembly of the run summary handed to presentation layers."""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from e2e_benchmark.aggregator import (
    build_group_rollups,
    build_overall,
    enrich_test,
    latest_attempts,
)
from e2e_benchmark.models.observation import TestUnitRecord
from e2e_benchmark.models.report import RunSummary, Thresholds
from e2e_benchmark.violations import build_accessibility_overview

log = logging.getLogger(__name__)


def generate_run_id(now: datetime) -> str:
    """Derive a filesystem-safe run identifier from a timestamp."""
    return now.isoformat().replace(":", "-").replace(".", "-")


def build_run_summary(
    records: Iterable[TestUnitRecord],
    *,
    thresholds: Thresholds,
    run_id: str,
    generated_at: datetime | None = None,
) -> RunSummary:
    """Score a run's attempts and assemble its summary.

    Retried tests are reduced to their final attempt first. Apart from
    ``generated_at`` the result depends only on the inputs, so the same
    records always produce the same summary.

    Args:
        records: Collected attempts, retries included
        thresholds: Run targets, echoed into the summary unchanged
        run_id: Identifier of the run, chosen by the caller
        generated_at: Generation time; defaults to now (UTC)

    Returns:
        The complete run summary

    """
    tests = [enrich_test(record) for record in latest_attempts(records)]
    tests.sort(key=lambda test: test.duration_ms, reverse=True)

    groups = build_group_rollups(tests)
    overall = build_overall(tests)
    accessibility = build_accessibility_overview(tests)

    log.info(
        "Built run summary %s: %d test(s) across %d group(s), score=%.2f (%s)",
        run_id,
        len(tests),
        len(groups),
        overall.benchmark_score,
        overall.tier,
    )

    return RunSummary(
        generated_at=generated_at or datetime.now(timezone.utc),
        run_id=run_id,
        thresholds=thresholds,
        overall=overall,
        accessibility=accessibility,
        groups=groups,
        tests=tests,
    )
