"""Runtime configuration for the control assurance engine."""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class EngineConfig:
    """Configuration for ingestion policy and logging.

    Attributes:
        log_level: Log level passed to configure_logging.
        log_json: Whether log output is rendered as JSON.
        max_rows: Maximum data rows accepted per textual ingestion batch.
            None disables the limit.
        min_year: Lowest period year accepted by validation.
        max_year: Highest period year accepted by validation.
    """
    log_level: str = "INFO"
    log_json: bool = False
    max_rows: Optional[int] = 5000
    min_year: int = 2020
    max_year: int = 2100

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from CONTROL_ASSURANCE_* environment variables."""
        max_rows = os.environ.get("CONTROL_ASSURANCE_MAX_ROWS", "5000")
        return cls(
            log_level=os.environ.get("CONTROL_ASSURANCE_LOG_LEVEL", "INFO"),
            log_json=os.environ.get("CONTROL_ASSURANCE_LOG_JSON", "false").lower()
            in ("1", "true", "yes"),
            max_rows=int(max_rows) if max_rows.strip() else None,
            min_year=int(os.environ.get("CONTROL_ASSURANCE_MIN_YEAR", "2020")),
            max_year=int(os.environ.get("CONTROL_ASSURANCE_MAX_YEAR", "2100")),
        )
