"""Tests for run-wide accessibility rollup."""

import pytest

from e2e_benchmark.aggregator import enrich_test
from e2e_benchmark.models.observation import AccessibilityFinding, AccessibilitySummary
from e2e_benchmark.models.report import EnrichedTestRecord
from e2e_benchmark.testing.factories import (
    AccessibilityFindingFactory,
    TestUnitRecordFactory,
)
from e2e_benchmark.violations import (
    TOP_VIOLATIONS_LIMIT,
    build_accessibility_overview,
    top_violations,
)


def _test_with(*findings: AccessibilityFinding) -> EnrichedTestRecord:
    return enrich_test(
        TestUnitRecordFactory.build(
            accessibility=AccessibilitySummary.from_findings(list(findings))
        )
    )


class TestTopViolations:
    """Tests for top_violations."""

    def test_merges_rules_across_tests(self) -> None:
        """Affected elements of one rule are summed over all tests."""
        tests = [
            _test_with(
                AccessibilityFindingFactory.build(
                    rule_id="image-alt",
                    severity="critical",
                    description="Images must have alternate text",
                    affected_element_count=3,
                )
            ),
            _test_with(
                AccessibilityFindingFactory.build(
                    rule_id="image-alt",
                    severity="serious",
                    description="Other wording",
                    affected_element_count=2,
                ),
                AccessibilityFindingFactory.build(
                    rule_id="link-name", affected_element_count=4
                ),
            ),
        ]

        ranked = top_violations(tests)

        assert [(v.rule_id, v.count) for v in ranked] == [
            ("image-alt", 5),
            ("link-name", 4),
        ]
        assert ranked[0].severity == "critical"
        assert ranked[0].description == "Images must have alternate text"

    def test_ties_keep_first_seen_order(self) -> None:
        """Equal counts are ranked in order of first appearance."""
        tests = [
            _test_with(
                AccessibilityFindingFactory.build(rule_id="label", affected_element_count=2),
                AccessibilityFindingFactory.build(rule_id="region", affected_element_count=2),
            ),
            _test_with(
                AccessibilityFindingFactory.build(rule_id="list", affected_element_count=2)
            ),
        ]

        assert [v.rule_id for v in top_violations(tests)] == ["label", "region", "list"]

    def test_limits_result(self) -> None:
        """Only the largest rules are kept."""
        findings = [
            AccessibilityFindingFactory.build(
                rule_id=f"rule-{index}", affected_element_count=index + 1
            )
            for index in range(TOP_VIOLATIONS_LIMIT + 2)
        ]

        ranked = top_violations([_test_with(*findings)])

        assert len(ranked) == TOP_VIOLATIONS_LIMIT
        assert ranked[0].rule_id == f"rule-{TOP_VIOLATIONS_LIMIT + 1}"
        assert "rule-0" not in {v.rule_id for v in ranked}

    def test_custom_limit(self) -> None:
        """Honours an explicit limit."""
        tests = [
            _test_with(
                AccessibilityFindingFactory.build(rule_id="a", affected_element_count=1),
                AccessibilityFindingFactory.build(rule_id="b", affected_element_count=5),
            )
        ]

        assert [v.rule_id for v in top_violations(tests, limit=1)] == ["b"]

    def test_no_findings(self) -> None:
        """Clean runs have no violations."""
        assert list(top_violations([_test_with()])) == []


def test_accessibility_overview() -> None:
    """Totals cover every test and the score averages per-test scores."""
    tests = [
        _test_with(
            AccessibilityFindingFactory.build(rule_id="image-alt", severity="critical"),
            AccessibilityFindingFactory.build(rule_id="region", severity="minor"),
        ),
        _test_with(),
    ]

    overview = build_accessibility_overview(tests)

    assert overview.total_findings == 2
    assert overview.critical == 1
    assert overview.minor == 1
    assert overview.tests_with_findings == 1
    assert overview.tests_scanned == 2
    assert overview.accessibility_score == pytest.approx((60 + 100) / 2)
    assert [v.rule_id for v in overview.top_violations] == ["image-alt", "region"]


def test_accessibility_overview_empty() -> None:
    """An empty run has a zero overview."""
    overview = build_accessibility_overview([])

    assert overview.tests_scanned == 0
    assert overview.accessibility_score == 0
    assert list(overview.top_violations) == []
