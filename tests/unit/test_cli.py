"""Tests for CLI module."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from e2e_benchmark.cli import log_report_summary, run
from e2e_benchmark.models.observation import AccessibilitySummary
from e2e_benchmark.models.report import Thresholds
from e2e_benchmark.payload import build_run_summary
from e2e_benchmark.testing.factories import (
    AccessibilityFindingFactory,
    TestUnitRecordFactory,
)

ATTEMPTS = [
    {
        "id": "home",
        "titlePath": ["chromium", "home.spec.ts", "loads"],
        "status": "passed",
        "durationMs": 1000,
        "retry": 0,
    },
    {
        "id": "search",
        "titlePath": ["firefox", "search.spec.ts", "finds docs"],
        "status": "failed",
        "durationMs": 8000,
        "retry": 2,
        "metrics": {
            "requestCount": 3,
            "requestFailureCount": 2,
            "consoleErrors": ["a", "b", "c"],
        },
    },
]


@pytest.fixture
def attempts_file(tmp_path: Path) -> Path:
    """Results file with a fast pass and a slow retried failure."""
    path = tmp_path / "attempts.json"
    path.write_text(json.dumps(ATTEMPTS))
    return path


def test_log_report_summary(caplog: pytest.LogCaptureFixture) -> None:
    """Logs the overall score, every group and the top violations."""
    records = [
        TestUnitRecordFactory.build(group_label="chromium", duration_ms=1000),
        TestUnitRecordFactory.build(
            group_label="webkit",
            duration_ms=1000,
            accessibility=AccessibilitySummary.from_findings(
                [
                    AccessibilityFindingFactory.build(
                        rule_id="image-alt",
                        severity="critical",
                        affected_element_count=4,
                    )
                ]
            ),
        ),
    ]
    summary = build_run_summary(
        records,
        thresholds=Thresholds(),
        run_id="run-42",
        generated_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )

    with caplog.at_level(logging.INFO):
        log_report_summary(logging.getLogger(), summary)

    assert "Benchmark Summary (run run-42):" in caplog.text
    assert "★ overall: 100.00 Elite (2 tests, 100.00% passed)" in caplog.text
    assert "★ chromium: 100.00 Elite" in caplog.text
    assert "★ webkit: 93.60 Elite (1 tests" in caplog.text
    assert "Accessibility: 1 finding(s) (1 critical, 0 serious)" in caplog.text
    assert "image-alt [critical]: 4 element(s)" in caplog.text


class TestRun:
    """Tests for run function."""

    async def test_prints_report_without_output_path(
        self, attempts_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Writes the report JSON to stdout by default."""
        result = await run(attempts_path=attempts_file, run_id="ci-7")

        assert result == 0
        report = json.loads(capsys.readouterr().out)
        assert report["run_id"] == "ci-7"
        assert [test["id"] for test in report["tests"]] == ["search", "home"]
        assert {group["group_label"] for group in report["groups"]} == {
            "chromium",
            "firefox",
        }

    async def test_writes_report_file(
        self, attempts_file: Path, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Writes the report to the requested path, creating directories."""
        output = tmp_path / "reports" / "benchmark.json"

        with caplog.at_level(logging.INFO):
            result = await run(attempts_path=attempts_file, output_path=output)

        assert result == 0
        report = json.loads(output.read_text())
        assert report["overall"]["total_tests"] == 2
        assert report["run_id"]
        assert f"Report written to {output}" in caplog.text

    async def test_echoes_thresholds_file(
        self, attempts_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Thresholds from the YAML file appear in the report."""
        thresholds = tmp_path / "thresholds.yaml"
        thresholds.write_text("p95DurationTargetMs: 4000\n")

        await run(attempts_path=attempts_file, thresholds_path=thresholds)

        report = json.loads(capsys.readouterr().out)
        assert report["thresholds"]["p95_duration_target_ms"] == 4000
        assert report["thresholds"]["avg_duration_target_ms"] == 1500

    async def test_returns_one_below_fail_under(
        self,
        attempts_file: Path,
        tmp_path: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Fails when the overall score is below the required minimum."""
        result = await run(
            attempts_path=attempts_file,
            output_path=tmp_path / "report.json",
            fail_under=99.5,
        )

        assert result == 1
        assert "is below the required 99.50" in caplog.text

    async def test_returns_zero_at_or_above_fail_under(
        self, attempts_file: Path, tmp_path: Path
    ) -> None:
        """Passes when the score reaches the minimum."""
        result = await run(
            attempts_path=attempts_file,
            output_path=tmp_path / "report.json",
            fail_under=0,
        )

        assert result == 0

    async def test_propagates_missing_attempts_file(self, tmp_path: Path) -> None:
        """Loader errors are not swallowed."""
        with pytest.raises(FileNotFoundError):
            await run(attempts_path=tmp_path / "missing.json")


class TestMain:
    """Tests for main CLI entry point."""

    def test_exits_with_run_result(self) -> None:
        """Main function exits with the result from run()."""
        from e2e_benchmark.cli import main

        with (
            patch(
                "sys.argv",
                [
                    "cli",
                    "--attempts",
                    "attempts.json",
                    "--thresholds",
                    "thresholds.yaml",
                    "--run-id",
                    "ci-7",
                    "--output",
                    "report.json",
                ],
            ),
            patch("e2e_benchmark.cli.asyncio.run", return_value=0) as mock_run,
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 0
        mock_run.assert_called_once()

    def test_exits_with_failure_code(self) -> None:
        """Main function exits with code 1 when the score is too low."""
        from e2e_benchmark.cli import main

        with (
            patch(
                "sys.argv",
                ["cli", "--attempts", "attempts.json", "--fail-under", "80"],
            ),
            patch("e2e_benchmark.cli.asyncio.run", return_value=1),
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 1

    def test_requires_attempts(self) -> None:
        """The attempts file is mandatory."""
        from e2e_benchmark.cli import main

        with patch("sys.argv", ["cli"]), pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 2
