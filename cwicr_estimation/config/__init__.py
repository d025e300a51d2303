"""CWICR estimation configuration.

This package contains:
- settings: Environment variables and configuration
- errors: Custom exceptions and error codes
"""

from cwicr_estimation.config.settings import settings, Settings
from cwicr_estimation.config.errors import (
    ErrorCode,
    EstimationError,
    ValidationError,
    EmbeddingError,
    RetrievalError,
    PersistenceError,
)

__all__ = [
    "settings",
    "Settings",
    "ErrorCode",
    "EstimationError",
    "ValidationError",
    "EmbeddingError",
    "RetrievalError",
    "PersistenceError",
]
