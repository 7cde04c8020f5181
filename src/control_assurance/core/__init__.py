"""Core utilities for the control assurance engine."""

from control_assurance.core.logging import get_logger, configure_logging, batch_context
from control_assurance.core.config import EngineConfig
from control_assurance.core.errors import (
    ControlAssuranceError,
    ValidationError,
    RecordNotFoundError,
    WorkflowError,
    IngestionInputError,
    IngestionLimitError,
    QuickFillValidationError,
    StoreUnavailableError,
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "batch_context",
    # Config
    "EngineConfig",
    # Errors
    "ControlAssuranceError",
    "ValidationError",
    "RecordNotFoundError",
    "WorkflowError",
    "IngestionInputError",
    "IngestionLimitError",
    "QuickFillValidationError",
    "StoreUnavailableError",
]
