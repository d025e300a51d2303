"""Utility modules for CWICR estimation."""

from cwicr_estimation.utils.estimate_logger import (
    configure_logging,
    log_estimate_summary,
)

__all__ = [
    "configure_logging",
    "log_estimate_summary",
]
