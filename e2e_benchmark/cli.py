"""CLI entry point for building a benchmark report from collected attempts."""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from e2e_benchmark.models.report import RunSummary, Thresholds
from e2e_benchmark.payload import build_run_summary, generate_run_id
from e2e_benchmark.results_loader import load_attempts
from e2e_benchmark.thresholds_loader import load_thresholds

TIER_SYMBOLS = {
    "Elite": "★",
    "Strong": "✓",
    "Stable": "•",
    "Watch": "!",
    "Critical": "✗",
}


def log_report_summary(log: logging.Logger, summary: RunSummary) -> None:
    """Log a formatted summary of the run's scores."""
    overall = summary.overall
    log.info("=" * 80)
    log.info("Benchmark Summary (run %s):", summary.run_id)
    log.info("=" * 80)
    log.info(
        "%s overall: %.2f %s (%d tests, %.2f%% passed)",
        TIER_SYMBOLS.get(overall.tier, "?"),
        overall.benchmark_score,
        overall.tier,
        overall.total_tests,
        overall.pass_rate_pct,
    )

    for group in summary.groups:
        log.info(
            "%s %s: %.2f %s (%d tests, avg %.0fms, p95 %.0fms)",
            TIER_SYMBOLS.get(group.tier, "?"),
            group.group_label,
            group.benchmark_score,
            group.tier,
            group.total_tests,
            group.avg_duration_ms,
            group.p95_duration_ms,
        )

    a11y = summary.accessibility
    log.info(
        "Accessibility: %d finding(s) (%d critical, %d serious), score %.2f",
        a11y.total_findings,
        a11y.critical,
        a11y.serious,
        a11y.accessibility_score,
    )
    for violation in a11y.top_violations:
        log.info(
            "  %s [%s]: %d element(s)",
            violation.rule_id,
            violation.severity,
            violation.count,
        )


async def run(
    attempts_path: Path,
    thresholds_path: Path | None = None,
    run_id: str | None = None,
    output_path: Path | None = None,
    fail_under: float | None = None,
) -> int:
    """Build the benchmark report and return exit code."""
    log = logging.getLogger("e2e_benchmark")

    now = datetime.now(timezone.utc)
    run_id = run_id or generate_run_id(now)

    if thresholds_path is not None:
        log.info("Loading thresholds from %s", thresholds_path)
        thresholds = await load_thresholds(thresholds_path)
    else:
        thresholds = Thresholds()

    log.info("Loading attempts from %s", attempts_path)
    records = await load_attempts(attempts_path)

    summary = build_run_summary(
        records, thresholds=thresholds, run_id=run_id, generated_at=now
    )

    log_report_summary(log, summary)

    output = json.dumps(summary.to_json(), indent=2)
    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(output_path.write_text, output)
        log.info("Report written to %s", output_path)
    else:
        print(output)

    if fail_under is not None and summary.overall.benchmark_score < fail_under:
        log.error(
            "Benchmark score %.2f is below the required %.2f",
            summary.overall.benchmark_score,
            fail_under,
        )
        return 1

    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Score collected browser-test telemetry into a benchmark report"
    )
    parser.add_argument(
        "--attempts",
        type=Path,
        required=True,
        help="JSON file with the reported test attempts",
    )
    parser.add_argument(
        "--thresholds",
        type=Path,
        default=None,
        help="YAML file with run thresholds (defaults apply when omitted)",
    )
    parser.add_argument(
        "--run-id",
        default=None,
        help="Run identifier (derived from the current time when omitted)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Where to write the report JSON (stdout when omitted)",
    )
    parser.add_argument(
        "--fail-under",
        type=float,
        default=None,
        help="Exit with code 1 when the overall benchmark score is lower",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run(
            attempts_path=args.attempts,
            thresholds_path=args.thresholds,
            run_id=args.run_id,
            output_path=args.output,
            fail_under=args.fail_under,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
