"""Vector search service for CWICR estimation.

Client for the Qdrant REST API holding the construction work item catalog.
One collection exists per catalog language.

References:
- Qdrant search API: https://qdrant.tech/documentation/concepts/search/
"""

import time
from typing import Any, Dict, List, Optional, Sequence

import httpx
import structlog

from cwicr_estimation.config.settings import Settings, settings
from cwicr_estimation.config.errors import RetrievalError, ErrorCode

logger = structlog.get_logger(__name__)


class VectorSearchService:
    """Service for nearest-neighbour search against catalog collections."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize VectorSearchService.

        Args:
            base_url: Qdrant URL (default from settings).
            api_key: Optional Qdrant API key (default from settings).
            timeout_seconds: Request timeout (default from settings).
            config: Settings instance to read defaults from.
            transport: Optional httpx transport (used by tests).
        """
        config = config or settings
        self.base_url = (base_url or config.vector_store_url).rstrip("/")
        self.api_key = api_key or config.vector_store_api_key
        self.timeout_seconds = timeout_seconds or config.vector_search_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {"api-key": self.api_key} if self.api_key else {}

    async def _request(
        self,
        method: str,
        path: str,
        collection: str,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Make a request to Qdrant and return the decoded body.

        Raises:
            RetrievalError: On connection errors, timeouts, HTTP errors
                or a non-JSON body.
        """
        url = f"{self.base_url}{path}"

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                headers=self._headers(),
                transport=self._transport
            ) as client:
                response = await client.request(method, url, json=json)
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(
                "vector_search_http_error",
                collection=collection,
                status_code=e.response.status_code
            )
            raise RetrievalError(
                message=f"Vector store returned HTTP {e.response.status_code}",
                collection=collection,
                code=ErrorCode.RETRIEVAL_UNAVAILABLE,
                details={"status_code": e.response.status_code}
            )
        except httpx.HTTPError as e:
            logger.error("vector_search_request_failed", collection=collection, error=str(e))
            raise RetrievalError(
                message=f"Vector store unreachable: {str(e)}",
                collection=collection,
                code=ErrorCode.RETRIEVAL_UNAVAILABLE,
                details={"original_error": str(e)}
            )
        except ValueError as e:
            raise RetrievalError(
                message="Vector store returned invalid JSON",
                collection=collection,
                code=ErrorCode.RETRIEVAL_INVALID_RESPONSE,
                details={"parse_error": str(e)}
            )

        if not isinstance(data, dict):
            raise RetrievalError(
                message="Vector store response is not an object",
                collection=collection,
                code=ErrorCode.RETRIEVAL_INVALID_RESPONSE
            )
        return data

    async def search(
        self,
        collection: str,
        vector: Sequence[float],
        filters: Dict[str, Any],
        limit: int
    ) -> List[Dict[str, Any]]:
        """Search a collection for the nearest work items.

        Args:
            collection: Collection name.
            vector: Query embedding.
            filters: Exact-match filters on payload fields.
            limit: Maximum number of hits.

        Returns:
            Hits in backend rank order, each a dict with "id", "score"
            and "payload".

        Raises:
            RetrievalError: If the backend is unavailable or the response
                is malformed.
        """
        start_time = time.time()

        body = {
            "vector": list(vector),
            "limit": limit,
            "filter": {
                "must": [
                    {"key": key, "match": {"value": value}}
                    for key, value in filters.items()
                ]
            },
            "with_payload": True,
        }

        data = await self._request(
            "POST",
            f"/collections/{collection}/points/search",
            collection,
            json=body
        )

        hits = data.get("result")
        if not isinstance(hits, list) or not all(isinstance(hit, dict) for hit in hits):
            raise RetrievalError(
                message="Vector store response has no result list",
                collection=collection,
                code=ErrorCode.RETRIEVAL_INVALID_RESPONSE
            )
        if not all(isinstance(hit.get("payload"), (dict, type(None))) for hit in hits):
            raise RetrievalError(
                message="Vector store hit has a non-object payload",
                collection=collection,
                code=ErrorCode.RETRIEVAL_INVALID_RESPONSE
            )

        logger.info(
            "vector_search_complete",
            collection=collection,
            results_count=len(hits),
            search_time_ms=round((time.time() - start_time) * 1000, 2)
        )
        return hits

    async def list_collections(self) -> List[str]:
        """List collection names in the vector store.

        Raises:
            RetrievalError: If the backend is unavailable.
        """
        data = await self._request("GET", "/collections", "*")
        result = data.get("result")
        collections = result.get("collections") or [] if isinstance(result, dict) else []
        return [c.get("name") for c in collections if isinstance(c, dict) and c.get("name")]
