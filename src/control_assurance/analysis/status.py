"""
Testing status derivation.

Maps a schedule entry, its recorded results and a reference date to exactly
one display status. Nothing here raises; every input combination has a
status.
"""

from datetime import date
from typing import Iterable, Optional

from control_assurance.models.controls import (
    ScheduleEntry,
    TestingFrequency,
    TestResult,
    TestResultValue,
)
from control_assurance.models.findings import TestingStatus
from control_assurance.periods import Period, months_between, period_of


# Months allowed between tests before an entry is overdue
FREQUENCY_MONTHS: dict[TestingFrequency, int] = {
    TestingFrequency.MONTHLY: 1,
    TestingFrequency.QUARTERLY: 3,
    TestingFrequency.BI_ANNUAL: 6,
    TestingFrequency.ANNUAL: 12,
}

RESULT_STATUS: dict[TestResultValue, TestingStatus] = {
    TestResultValue.PASS: TestingStatus.PASS,
    TestResultValue.FAIL: TestingStatus.FAIL,
    TestResultValue.PARTIALLY: TestingStatus.PARTIAL,
}


def allowed_window(frequency: TestingFrequency) -> int:
    """Number of months a frequency permits between tests."""
    return FREQUENCY_MONTHS[frequency]


def latest_result(results: Iterable[TestResult]) -> Optional[TestResult]:
    """The result with the greatest (period_year, period_month), or None."""
    return max(results, key=lambda r: (r.period_year, r.period_month), default=None)


def derive_testing_status(
    entry: Optional[ScheduleEntry],
    results: Iterable[TestResult],
    as_of: date,
) -> TestingStatus:
    """
    Derive the display status for a schedule entry.

    An elapsed interval longer than the testing frequency permits marks the
    entry Overdue regardless of what the latest result was.

    Args:
        entry: The schedule entry, or None when the control has none.
        results: Recorded test results for the entry, in any order.
        as_of: Reference date that fixes the "current" period.

    Returns:
        The derived TestingStatus.
    """
    if entry is None:
        return TestingStatus.NOT_SCHEDULED

    if not entry.is_active:
        return TestingStatus.REMOVED

    latest = latest_result(results)
    if latest is None:
        return TestingStatus.AWAITING_TEST

    elapsed = months_between(Period(latest.period_year, latest.period_month), period_of(as_of))
    if elapsed > allowed_window(entry.testing_frequency):
        return TestingStatus.OVERDUE

    return RESULT_STATUS.get(latest.result, TestingStatus.NOT_TESTED)
