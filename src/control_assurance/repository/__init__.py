"""
Repository package for the control assurance engine.

Contains record store adapters:
- ControlTestingRepository (abstract base)
- InMemoryControlTestingRepository (for testing and local use)
"""

from control_assurance.repository.base import ControlTestingRepository
from control_assurance.repository.in_memory import InMemoryControlTestingRepository

__all__ = [
    "ControlTestingRepository",
    "InMemoryControlTestingRepository",
]
