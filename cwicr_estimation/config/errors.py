"""CWICR estimation error handling.

Custom exceptions and error codes for the retrieval and estimation pipeline.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"

    # Embedding Errors (2xxx)
    EMBEDDING_UNAVAILABLE = "EMBEDDING_UNAVAILABLE"
    EMBEDDING_TIMEOUT = "EMBEDDING_TIMEOUT"
    EMBEDDING_INVALID_RESPONSE = "EMBEDDING_INVALID_RESPONSE"

    # Retrieval Errors (3xxx)
    RETRIEVAL_UNAVAILABLE = "RETRIEVAL_UNAVAILABLE"
    RETRIEVAL_INVALID_RESPONSE = "RETRIEVAL_INVALID_RESPONSE"

    # Element Resolution (4xxx)
    NO_MATCH = "NO_MATCH"

    # Persistence Errors (5xxx)
    PERSISTENCE_WRITE_FAILED = "PERSISTENCE_WRITE_FAILED"
    PERSISTENCE_READ_FAILED = "PERSISTENCE_READ_FAILED"

    # Pipeline Errors (6xxx)
    ESTIMATION_FAILED = "ESTIMATION_FAILED"
    SEARCH_FAILED = "SEARCH_FAILED"


class EstimationError(Exception):
    """Base exception for CWICR estimation errors.

    Provides structured error information for API responses.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize EstimationError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(EstimationError):
    """Validation-specific error."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )
        self.field = field


class EmbeddingError(EstimationError):
    """Embedding generator unreachable, timed out, or returned an unusable vector."""

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.EMBEDDING_UNAVAILABLE,
        details: Optional[Dict] = None
    ):
        super().__init__(code=code, message=message, details=details)


class RetrievalError(EstimationError):
    """Similarity backend unreachable or returned a malformed response."""

    def __init__(
        self,
        message: str,
        collection: str,
        code: str = ErrorCode.RETRIEVAL_UNAVAILABLE,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "collection": collection}
        )
        self.collection = collection


class PersistenceError(EstimationError):
    """Estimate store write or read failure."""

    def __init__(
        self,
        code: str,
        message: str,
        project_id: str,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "project_id": project_id}
        )
        self.project_id = project_id
