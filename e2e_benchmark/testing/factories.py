"""Test factories for generating test data."""

from polyfactory import Use
from polyfactory.factories.pydantic_factory import ModelFactory

from e2e_benchmark.models.observation import (
    AccessibilityFinding,
    AccessibilitySummary,
    ErrorObservation,
    NetworkObservation,
    TestUnitRecord,
)


class AccessibilityFindingFactory(ModelFactory[AccessibilityFinding]):
    """Factory for AccessibilityFinding."""

    severity = "serious"
    help_reference = None
    affected_element_count = 1


class NetworkObservationFactory(ModelFactory[NetworkObservation]):
    """Factory for NetworkObservation."""

    request_count = 10
    request_failure_count = 0
    http_error_count = 0
    response_times_ms = Use(lambda: [120.0, 80.0, 200.0])


class TestUnitRecordFactory(ModelFactory[TestUnitRecord]):
    """Factory for TestUnitRecord.

    Defaults describe a clean first attempt that passed in one second.
    """

    group_label = "chromium"
    attempt_number = 0
    status = "passed"
    outcome_class = "expected"
    started_at = None
    duration_ms = 1000.0
    network = Use(NetworkObservation)
    errors = Use(ErrorObservation)
    accessibility = Use(AccessibilitySummary)
