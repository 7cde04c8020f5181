"""
Hypothesis strategies for property-based testing.

Contains test data generators for periods, schedule entries, test results
and delimited ingestion input.
"""

from tests.strategies.control_testing_strategies import (
    period_strategy,
    delta_strategy,
    testing_frequency_strategy,
    result_value_strategy,
    performed_result_strategy,
    schedule_entry_strategy,
    result_record_strategy,
    result_history_strategy,
)

from tests.strategies.ingestion_strategies import (
    control_ref_strategy,
    notes_strategy,
    cell_strategy,
    csv_row_strategy,
    quick_fill_request_strategy,
)

__all__ = [
    # Control testing strategies
    "period_strategy",
    "delta_strategy",
    "testing_frequency_strategy",
    "result_value_strategy",
    "performed_result_strategy",
    "schedule_entry_strategy",
    "result_record_strategy",
    "result_history_strategy",
    # Ingestion strategies
    "control_ref_strategy",
    "notes_strategy",
    "cell_strategy",
    "csv_row_strategy",
    "quick_fill_request_strategy",
]
