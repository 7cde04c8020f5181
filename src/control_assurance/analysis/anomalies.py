"""
Anomaly detection over trailing windows of monthly test results.

Results are looked up sparsely by period; a period with no record is
treated as NOT_DUE, which is distinct from an explicit NOT_TESTED.
"""

from typing import Iterable, Mapping, Optional

from control_assurance.models.controls import (
    ControlAttestation,
    ScheduleEntry,
    TestResult,
    TestResultValue,
)
from control_assurance.models.findings import (
    AnomalyFinding,
    FindingKind,
    FINDING_SEVERITY,
)
from control_assurance.periods import Period, period_label, trailing_window


CONSECUTIVE_FAILURE_WINDOW = 12
CONSECUTIVE_FAILURE_THRESHOLD = 3
STALE_WINDOW = 3

ResultLookup = Mapping[Period, TestResult]


def build_result_lookup(results: Iterable[TestResult]) -> dict[Period, TestResult]:
    """Index results by period."""
    return {Period(r.period_year, r.period_month): r for r in results}


def result_for_period(lookup: ResultLookup, period: Period) -> TestResultValue:
    """Recorded result for a period, NOT_DUE when nothing was recorded."""
    record = lookup.get(period)
    return record.result if record is not None else TestResultValue.NOT_DUE


def has_consecutive_failures(
    lookup: ResultLookup,
    year: int,
    month: int,
    window: int = CONSECUTIVE_FAILURE_WINDOW,
    threshold: int = CONSECUTIVE_FAILURE_THRESHOLD,
) -> bool:
    """True when the trailing window holds a run of `threshold` FAILs."""
    run = 0
    for period in trailing_window(year, month, window):
        if result_for_period(lookup, period) == TestResultValue.FAIL:
            run += 1
            if run >= threshold:
                return True
        else:
            run = 0
    return False


def is_stale(lookup: ResultLookup, year: int, month: int, window: int = STALE_WINDOW) -> bool:
    """
    True when no test was performed across the trailing window.

    Every period must be NOT_TESTED or NOT_DUE and at least one NOT_TESTED;
    a run of periods that were simply not due is not stale.
    """
    values = [result_for_period(lookup, p) for p in trailing_window(year, month, window)]
    untested = {TestResultValue.NOT_TESTED, TestResultValue.NOT_DUE}
    return (
        all(v in untested for v in values)
        and any(v == TestResultValue.NOT_TESTED for v in values)
    )


def has_discrepancy(
    attestation: Optional[ControlAttestation],
    result: Optional[TestResultValue],
) -> bool:
    """Owner attested the control as effective while its test failed."""
    return (
        attestation is not None
        and attestation.attested
        and result == TestResultValue.FAIL
    )


def ccro_disagrees(attestation: Optional[ControlAttestation]) -> bool:
    """The CCRO reviewer explicitly disagreed; an absent review is not disagreement."""
    return attestation is not None and attestation.ccro_agreement is False


def _finding(
    kind: FindingKind,
    entry: ScheduleEntry,
    year: int,
    month: int,
    reason: str,
    control_ref: Optional[str],
) -> AnomalyFinding:
    return AnomalyFinding(
        kind=kind,
        severity=FINDING_SEVERITY[kind],
        schedule_entry_id=entry.id,
        control_id=entry.control_id,
        control_ref=control_ref,
        period_year=year,
        period_month=month,
        reason=reason,
    )


def detect_anomalies(
    entry: ScheduleEntry,
    results: Iterable[TestResult],
    attestations: Iterable[ControlAttestation],
    year: int,
    month: int,
    control_ref: Optional[str] = None,
) -> list[AnomalyFinding]:
    """
    Run every check for one schedule entry at a reference period.

    The checks are independent and may all fire together.

    Args:
        entry: The schedule entry being checked.
        results: All recorded results for the entry.
        attestations: Attestations for the entry's control.
        year: Reference period year.
        month: Reference period month.
        control_ref: Optional reference code carried onto findings.

    Returns:
        Findings in check order: failed this period, consecutive failures,
        stale, discrepancy, CCRO disagreement.
    """
    lookup = build_result_lookup(results)
    period = Period(year, month)
    current = lookup.get(period)
    current_value = current.result if current is not None else None
    attestation = next(
        (a for a in attestations if a.period_year == year and a.period_month == month),
        None,
    )
    label = period_label(year, month)

    findings = []
    if current_value == TestResultValue.FAIL:
        findings.append(_finding(
            FindingKind.FAILED_THIS_PERIOD, entry, year, month,
            f"Failed in {label}", control_ref,
        ))
    if has_consecutive_failures(lookup, year, month):
        findings.append(_finding(
            FindingKind.CONSECUTIVE_FAILURES, entry, year, month,
            "Failed 3+ consecutive months", control_ref,
        ))
    if is_stale(lookup, year, month):
        findings.append(_finding(
            FindingKind.STALE, entry, year, month,
            "Not tested for 3+ months", control_ref,
        ))
    if has_discrepancy(attestation, current_value):
        findings.append(_finding(
            FindingKind.DISCREPANCY, entry, year, month,
            "Owner has attested but the control failed testing", control_ref,
        ))
    if ccro_disagrees(attestation):
        findings.append(_finding(
            FindingKind.CCRO_DISAGREES, entry, year, month,
            "CCRO does not agree with the attestation", control_ref,
        ))
    return findings


def build_worklist(findings: Iterable[AnomalyFinding]) -> list[AnomalyFinding]:
    """De-duplicate findings by (kind, schedule_entry_id), keeping first occurrence order."""
    seen: set[tuple[FindingKind, str]] = set()
    worklist = []
    for finding in findings:
        if finding.key in seen:
            continue
        seen.add(finding.key)
        worklist.append(finding)
    return worklist
