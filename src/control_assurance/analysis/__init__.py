"""Read-only status, anomaly and trend analysis over stored test records."""

from control_assurance.analysis.status import (
    FREQUENCY_MONTHS,
    allowed_window,
    latest_result,
    derive_testing_status,
)
from control_assurance.analysis.anomalies import (
    build_result_lookup,
    result_for_period,
    has_consecutive_failures,
    is_stale,
    has_discrepancy,
    ccro_disagrees,
    detect_anomalies,
    build_worklist,
)
from control_assurance.analysis.trends import (
    trailing_failure_streak,
    persistent_failures,
    period_outcome_counts,
    pass_rate,
)

__all__ = [
    "FREQUENCY_MONTHS",
    "allowed_window",
    "latest_result",
    "derive_testing_status",
    "build_result_lookup",
    "result_for_period",
    "has_consecutive_failures",
    "is_stale",
    "has_discrepancy",
    "ccro_disagrees",
    "detect_anomalies",
    "build_worklist",
    "trailing_failure_streak",
    "persistent_failures",
    "period_outcome_counts",
    "pass_rate",
]
