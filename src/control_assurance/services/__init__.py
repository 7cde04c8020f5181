"""
Services package for the control assurance engine.
"""

from control_assurance.services.control_testing import (
    ControlTestingService,
    record_test_result,
    consolidated_view,
)

__all__ = [
    "ControlTestingService",
    "record_test_result",
    "consolidated_view",
]
