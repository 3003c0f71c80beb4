"""Run-wide ranking of accessibility findings."""

from collections.abc import Sequence

from e2e_benchmark.models.report import (
    AccessibilityOverview,
    EnrichedTestRecord,
    TopViolation,
)
from e2e_benchmark.stats import mean, round_to

TOP_VIOLATIONS_LIMIT = 10


def top_violations(
    tests: Sequence[EnrichedTestRecord], limit: int = TOP_VIOLATIONS_LIMIT
) -> Sequence[TopViolation]:
    """Rank rules by the number of affected elements across all tests.

    Findings sharing a rule id are merged: affected element counts are summed
    and severity and description come from the first occurrence. Equal counts
    keep the order in which rules were first encountered.

    Args:
        tests: Tests whose findings are ranked
        limit: Maximum number of rules returned

    Returns:
        Rules sorted by summed affected elements, largest first

    """
    totals: dict[str, TopViolation] = {}
    for test in tests:
        for finding in test.accessibility.findings:
            existing = totals.get(finding.rule_id)
            if existing is None:
                totals[finding.rule_id] = TopViolation(
                    rule_id=finding.rule_id,
                    severity=finding.severity,
                    description=finding.description,
                    count=finding.affected_element_count,
                )
            else:
                totals[finding.rule_id] = existing.model_copy(
                    update={"count": existing.count + finding.affected_element_count}
                )

    ranked = sorted(totals.values(), key=lambda violation: violation.count, reverse=True)
    return ranked[:limit]


def build_accessibility_overview(
    tests: Sequence[EnrichedTestRecord],
) -> AccessibilityOverview:
    """Accessibility totals and top violations of a run."""
    return AccessibilityOverview(
        total_findings=sum(test.accessibility.total_findings for test in tests),
        critical=sum(test.accessibility.critical for test in tests),
        serious=sum(test.accessibility.serious for test in tests),
        moderate=sum(test.accessibility.moderate for test in tests),
        minor=sum(test.accessibility.minor for test in tests),
        tests_with_findings=sum(
            1 for test in tests if test.accessibility.total_findings > 0
        ),
        tests_scanned=len(tests),
        accessibility_score=round_to(mean([test.accessibility_score for test in tests])),
        top_violations=top_violations(tests),
    )
