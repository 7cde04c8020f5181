"""
Pytest configuration and shared fixtures for the control assurance engine.
"""
import os
from datetime import date

import pytest
from hypothesis import settings, Verbosity

# Period arithmetic and tokenizing are cheap; the ci profile widens the search
settings.register_profile(
    "default",
    max_examples=100,
    deadline=5000,
    verbosity=Verbosity.normal,
)

settings.register_profile(
    "ci",
    max_examples=300,
    deadline=None,
    verbosity=Verbosity.quiet,
)

settings.register_profile(
    "debug",
    max_examples=10,
    deadline=None,
    verbosity=Verbosity.verbose,
)

settings.load_profile(os.environ.get("CONTROL_ASSURANCE_HYPOTHESIS_PROFILE", "default"))


# (control_ref, schedule_entry_id, entry is_active)
SEEDED_SCHEDULE = [
    ("CTL-01", "entry-1", True),
    ("CTL-02", "entry-2", True),
    ("CTL-03", "entry-3", False),
]


@pytest.fixture
def in_memory_repository():
    """Provide a fresh in-memory repository for each test."""
    from control_assurance.repository.in_memory import InMemoryControlTestingRepository
    return InMemoryControlTestingRepository()


@pytest.fixture
def seeded_repository(in_memory_repository):
    """Repository with CTL-01 and CTL-02 scheduled monthly and CTL-03 removed."""
    from control_assurance.models.controls import Control, ScheduleEntry, TestingFrequency

    for ref, entry_id, active in SEEDED_SCHEDULE:
        control = in_memory_repository.add_control(Control(
            id=f"control-{entry_id}",
            control_ref=ref,
            name=f"Control {ref}",
            business_area="Retail",
        ))
        in_memory_repository.add_schedule_entry(ScheduleEntry(
            id=entry_id,
            control_id=control.id,
            testing_frequency=TestingFrequency.MONTHLY,
            assigned_tester="tester",
            is_active=active,
        ))
    return in_memory_repository


@pytest.fixture
def reference_date():
    """Fixed 'today' so backdating does not depend on the wall clock."""
    return date(2025, 6, 15)
