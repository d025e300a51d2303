"""Embedding service for CWICR estimation.

Client for the local sentence-embedding service. Sends free text to
``POST {base_url}/embed`` and returns the vector from the ``embedding``
field of the response.
"""

import math
import time
from numbers import Real
from typing import Any, List, Optional

import httpx
import structlog

from cwicr_estimation.config.settings import Settings, settings
from cwicr_estimation.config.errors import EmbeddingError, ErrorCode

logger = structlog.get_logger(__name__)


class EmbeddingService:
    """Service for generating query embeddings.

    Every call is bounded by a timeout. No retries are made here;
    failures surface as EmbeddingError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        dimension: Optional[int] = None,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize EmbeddingService.

        Args:
            base_url: Embedding service URL (default from settings).
            timeout_seconds: Request timeout (default from settings, 5s).
            dimension: Expected vector length; unchecked when None.
            config: Settings instance to read defaults from.
            transport: Optional httpx transport (used by tests).
        """
        config = config or settings
        self.base_url = (base_url or config.embedding_service_url).rstrip("/")
        self.timeout_seconds = timeout_seconds or config.embedding_timeout_seconds
        self.dimension = dimension if dimension is not None else config.embedding_dimension
        self._transport = transport

    async def embed(self, text: str) -> List[float]:
        """Generate an embedding vector for text.

        Args:
            text: Free text to embed.

        Returns:
            Embedding vector.

        Raises:
            EmbeddingError: If the service is unreachable, times out,
                or returns a malformed vector.
        """
        start_time = time.time()
        url = f"{self.base_url}/embed"

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport
            ) as client:
                response = await client.post(url, json={"text": text})
                response.raise_for_status()
                data = response.json()

        except httpx.TimeoutException as e:
            logger.error("embedding_timeout", url=url, timeout_seconds=self.timeout_seconds)
            raise EmbeddingError(
                message=f"Embedding service timed out after {self.timeout_seconds}s",
                code=ErrorCode.EMBEDDING_TIMEOUT,
                details={"original_error": str(e)}
            )
        except httpx.HTTPStatusError as e:
            logger.error("embedding_http_error", url=url, status_code=e.response.status_code)
            raise EmbeddingError(
                message=f"Embedding service returned HTTP {e.response.status_code}",
                code=ErrorCode.EMBEDDING_UNAVAILABLE,
                details={"status_code": e.response.status_code}
            )
        except httpx.HTTPError as e:
            logger.error("embedding_request_failed", url=url, error=str(e))
            raise EmbeddingError(
                message=f"Embedding service unreachable: {str(e)}",
                code=ErrorCode.EMBEDDING_UNAVAILABLE,
                details={"original_error": str(e)}
            )
        except ValueError as e:
            logger.error("embedding_invalid_json", url=url, error=str(e))
            raise EmbeddingError(
                message="Embedding service returned invalid JSON",
                code=ErrorCode.EMBEDDING_INVALID_RESPONSE,
                details={"parse_error": str(e)}
            )

        vector = self._parse_vector(data)

        logger.debug(
            "embedding_generated",
            dimension=len(vector),
            duration_ms=round((time.time() - start_time) * 1000, 2)
        )
        return vector

    def _parse_vector(self, data: Any) -> List[float]:
        """Validate the response payload and extract the vector."""
        embedding = data.get("embedding") if isinstance(data, dict) else None

        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingError(
                message="Embedding response has no vector",
                code=ErrorCode.EMBEDDING_INVALID_RESPONSE
            )

        for value in embedding:
            if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
                raise EmbeddingError(
                    message="Embedding vector contains non-numeric values",
                    code=ErrorCode.EMBEDDING_INVALID_RESPONSE
                )

        if self.dimension is not None and len(embedding) != self.dimension:
            raise EmbeddingError(
                message=f"Embedding has {len(embedding)} dimensions, expected {self.dimension}",
                code=ErrorCode.EMBEDDING_INVALID_RESPONSE,
                details={"dimension": len(embedding), "expected": self.dimension}
            )

        return [float(value) for value in embedding]
