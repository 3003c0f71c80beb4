"""Scoring and rollup of collected test attempts.

Per-test, per-group and whole-run scores are each recomputed from raw
samples with their own formula; a group score is never an average of its
members' composite scores.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from e2e_benchmark.models.observation import TestUnitRecord
from e2e_benchmark.models.report import (
    EnrichedTestRecord,
    GroupRollup,
    OverallSummary,
)
from e2e_benchmark.scoring import (
    GROUP_WEIGHTS,
    OVERALL_WEIGHTS,
    TEST_WEIGHTS,
    accessibility_score,
    score_higher_better,
    score_lower_better,
    tier_from_score,
)
from e2e_benchmark.stats import clamp, mean, percentile, round_to, std_dev

log = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000
RETRY_PENALTY = 15
RELIABILITY_BASE = {"passed": 100, "skipped": 70}
FAILED_RELIABILITY_BASE = 15
FAILED_STATUSES = frozenset({"failed", "timedOut", "interrupted"})


def latest_attempts(records: Iterable[TestUnitRecord]) -> Sequence[TestUnitRecord]:
    """Keep only the final attempt of every logical test.

    The attempt with the highest ``attempt_number`` wins; equal numbers go to
    the later record. Tests keep the order in which they were first seen.
    """
    latest: dict[str, TestUnitRecord] = {}
    for record in records:
        current = latest.get(record.id)
        if current is None or record.attempt_number >= current.attempt_number:
            latest[record.id] = record
    return list(latest.values())


def error_signals(record: TestUnitRecord) -> int:
    """Request failures, HTTP errors, console errors and page errors of a test."""
    return (
        record.network.request_failure_count
        + record.network.http_error_count
        + record.errors.console_error_count
        + record.errors.page_error_count
    )


def enrich_test(record: TestUnitRecord) -> EnrichedTestRecord:
    """Compute the sub-scores, composite score and tier of one test."""
    signals = error_signals(record)
    throughput_per_min = round_to(MS_PER_MINUTE / max(1, record.duration_ms))

    duration = score_lower_better(record.duration_ms, 1_500, 9_000)
    base = RELIABILITY_BASE.get(record.status, FAILED_RELIABILITY_BASE)
    reliability = clamp(base - record.attempt_number * RETRY_PENALTY, 0, 100)
    quality = score_lower_better(signals, 0, 6)
    throughput = score_higher_better(throughput_per_min, 4, 30)
    accessibility = accessibility_score(record.accessibility)

    benchmark = TEST_WEIGHTS.combine(
        duration=duration,
        reliability=reliability,
        quality=quality,
        throughput=throughput,
        accessibility=accessibility,
    )

    return EnrichedTestRecord(
        **dict(record),
        error_signals=signals,
        throughput_per_min=throughput_per_min,
        duration_score=round_to(duration),
        reliability_score=round_to(reliability),
        quality_score=round_to(quality),
        throughput_score=round_to(throughput),
        accessibility_score=round_to(accessibility),
        benchmark_score=benchmark,
        tier=tier_from_score(benchmark),
    )


def wall_time_ms(records: Sequence[TestUnitRecord]) -> float:
    """Elapsed wall-clock time covered by a set of tests.

    Uses the span from the earliest start to the latest end when start
    timestamps are known and the span is positive. Otherwise falls back to the
    sum of durations, which overestimates elapsed time for overlapping tests.
    """
    if not records:
        return 0

    timed = [record for record in records if record.started_at is not None]
    if timed:
        starts = [record.started_at.timestamp() * 1000 for record in timed]  # type: ignore[union-attr]
        ends = [
            start + record.duration_ms
            for start, record in zip(starts, timed, strict=True)
        ]
        span = max(ends) - min(starts)
        if span > 0:
            return span

    return sum(record.duration_ms for record in records)


def tests_per_minute(records: Sequence[TestUnitRecord]) -> float:
    """Throughput of a set of tests, 0 when no time elapsed."""
    elapsed = wall_time_ms(records)
    if not records or elapsed <= 0:
        return 0
    return len(records) / (elapsed / MS_PER_MINUTE)


@dataclass(frozen=True, kw_only=True)
class _RollupInputs:
    """Raw statistics and the four shared sub-scores of a set of tests."""

    stats: dict[str, float]
    duration_score: float
    reliability_score: float
    quality_score: float
    throughput_score: float


def _rollup_inputs(tests: Sequence[EnrichedTestRecord]) -> _RollupInputs:
    count = len(tests)
    durations = [test.duration_ms for test in tests]
    response_times = [
        test.network.avg_response_time_ms
        for test in tests
        if test.network.avg_response_time_ms > 0
    ]
    passed = sum(1 for test in tests if test.status == "passed")
    failed = sum(1 for test in tests if test.status in FAILED_STATUSES)
    retried = sum(1 for test in tests if test.attempt_number > 0)
    total_requests = sum(test.network.request_count for test in tests)
    request_failures = sum(test.network.request_failure_count for test in tests)

    pass_rate_pct = passed / count * 100 if count else 0
    retry_rate_pct = retried / count * 100 if count else 0
    signals_per_test = mean([test.error_signals for test in tests])
    avg_duration = mean(durations)
    p95_duration = percentile(durations, 95)
    deviation = std_dev(durations)
    throughput = tests_per_minute(tests)

    stats = {
        "total_tests": count,
        "passed": passed,
        "failed": failed,
        "total_requests": total_requests,
        "request_failures": request_failures,
        "request_failure_rate_pct": (
            round_to(request_failures / total_requests * 100) if total_requests else 0
        ),
        "avg_response_time_ms": round_to(mean(response_times)),
        "p95_response_time_ms": round_to(percentile(response_times, 95)),
        "pass_rate_pct": round_to(pass_rate_pct),
        "retry_rate_pct": round_to(retry_rate_pct),
        "error_signals_per_test": round_to(signals_per_test),
        "avg_duration_ms": round_to(avg_duration),
        "median_duration_ms": round_to(percentile(durations, 50)),
        "p95_duration_ms": round_to(p95_duration),
        "p99_duration_ms": round_to(percentile(durations, 99)),
        "std_dev_duration_ms": round_to(deviation),
        "cv_pct": round_to(deviation / avg_duration * 100) if avg_duration > 0 else 0,
        "throughput_tests_per_min": round_to(throughput),
    }

    return _RollupInputs(
        stats=stats,
        duration_score=round_to(
            score_lower_better(avg_duration, 1_500, 7_000) * 0.6
            + score_lower_better(p95_duration, 3_000, 9_500) * 0.4
        ),
        reliability_score=round_to(
            pass_rate_pct * 0.7 + score_lower_better(retry_rate_pct, 0, 40) * 0.3
        ),
        quality_score=round_to(score_lower_better(signals_per_test, 0, 4)),
        throughput_score=round_to(score_higher_better(throughput, 5, 22)),
    )


def build_group_rollup(
    group_label: str, tests: Sequence[EnrichedTestRecord]
) -> GroupRollup:
    """Roll up the tests of one group."""
    inputs = _rollup_inputs(tests)
    accessibility = round_to(mean([test.accessibility_score for test in tests]))
    benchmark = GROUP_WEIGHTS.combine(
        duration=inputs.duration_score,
        reliability=inputs.reliability_score,
        quality=inputs.quality_score,
        throughput=inputs.throughput_score,
        accessibility=accessibility,
    )

    return GroupRollup(
        **inputs.stats,
        group_label=group_label,
        duration_score=inputs.duration_score,
        reliability_score=inputs.reliability_score,
        quality_score=inputs.quality_score,
        throughput_score=inputs.throughput_score,
        accessibility_score=accessibility,
        benchmark_score=benchmark,
        tier=tier_from_score(benchmark),
        a11y_findings=sum(test.accessibility.total_findings for test in tests),
        a11y_critical=sum(test.accessibility.critical for test in tests),
        a11y_serious=sum(test.accessibility.serious for test in tests),
        a11y_moderate=sum(test.accessibility.moderate for test in tests),
        a11y_minor=sum(test.accessibility.minor for test in tests),
    )


def build_group_rollups(
    tests: Sequence[EnrichedTestRecord],
) -> Sequence[GroupRollup]:
    """Roll up tests by group label, best benchmark score first.

    Ties keep the order in which groups first appear.
    """
    groups: dict[str, list[EnrichedTestRecord]] = {}
    for test in tests:
        groups.setdefault(test.group_label, []).append(test)

    rollups = [build_group_rollup(label, members) for label, members in groups.items()]
    for rollup in rollups:
        log.debug(
            "Group %s: %d test(s), score=%.2f (%s)",
            rollup.group_label,
            rollup.total_tests,
            rollup.benchmark_score,
            rollup.tier,
        )
    return sorted(rollups, key=lambda rollup: rollup.benchmark_score, reverse=True)


def build_overall(tests: Sequence[EnrichedTestRecord]) -> OverallSummary:
    """Roll up every test of the run; accessibility is not part of the score."""
    inputs = _rollup_inputs(tests)
    benchmark = OVERALL_WEIGHTS.combine(
        duration=inputs.duration_score,
        reliability=inputs.reliability_score,
        quality=inputs.quality_score,
        throughput=inputs.throughput_score,
    )
    durations = [test.duration_ms for test in tests]

    return OverallSummary(
        **inputs.stats,
        duration_score=inputs.duration_score,
        reliability_score=inputs.reliability_score,
        quality_score=inputs.quality_score,
        throughput_score=inputs.throughput_score,
        benchmark_score=benchmark,
        tier=tier_from_score(benchmark),
        skipped=sum(1 for test in tests if test.status == "skipped"),
        timed_out=sum(1 for test in tests if test.status == "timedOut"),
        flaky=sum(1 for test in tests if test.outcome_class == "flaky"),
        console_error_count=sum(test.errors.console_error_count for test in tests),
        page_error_count=sum(test.errors.page_error_count for test in tests),
        p90_duration_ms=round_to(percentile(durations, 90)),
    )
