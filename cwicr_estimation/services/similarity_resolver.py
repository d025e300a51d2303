"""Similarity resolver for CWICR estimation.

Turns free text into a ranked list of catalog work items:
cache lookup -> embedding -> filtered vector search -> normalization -> cache store.
"""

from typing import List, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from cwicr_estimation.config.settings import Settings, settings
from cwicr_estimation.config.errors import RetrievalError, ErrorCode
from cwicr_estimation.models.catalog import CatalogMatch, SearchLanguage
from cwicr_estimation.services.embedding_service import EmbeddingService
from cwicr_estimation.services.query_cache import CacheKey, QueryCache
from cwicr_estimation.services.vector_search_service import VectorSearchService

logger = structlog.get_logger(__name__)


class SimilarityResolver:
    """Resolves query text to ranked CatalogMatch lists.

    Cache hits are returned as stored, without re-ranking or re-filtering.
    Embedding and retrieval failures propagate to the caller; nothing is
    retried and nothing stale is returned.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_search_service: VectorSearchService,
        cache: Optional[QueryCache[CatalogMatch]] = None,
        config: Optional[Settings] = None
    ):
        """Initialize SimilarityResolver.

        Args:
            embedding_service: Embedding generator client.
            vector_search_service: Similarity backend client.
            cache: Query cache (default: new cache with the configured TTL).
            config: Settings instance for collection names and TTL.
        """
        self.config = config or settings
        self.embedding_service = embedding_service
        self.vector_search_service = vector_search_service
        self.cache = cache if cache is not None else QueryCache(
            ttl_seconds=self.config.search_cache_ttl_seconds
        )

    async def resolve(
        self,
        query: str,
        language: Union[SearchLanguage, str],
        region: str,
        top_k: int
    ) -> List[CatalogMatch]:
        """Find the catalog work items most similar to a query.

        Args:
            query: Free-text query.
            language: Catalog language (en or de).
            region: Region / country code used as an exact-match filter.
            top_k: Maximum number of matches.

        Returns:
            Up to top_k matches in backend rank order.

        Raises:
            EmbeddingError: If the query cannot be embedded.
            RetrievalError: If the similarity backend fails.
        """
        language = SearchLanguage(language).value
        key = CacheKey.build(language, region, query)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("similarity_cache_hit", language=language, region=region, query=query[:50])
            return cached

        vector = await self.embedding_service.embed(query)

        collection = self.config.collection_for_language(language)
        hits = await self.vector_search_service.search(
            collection=collection,
            vector=vector,
            filters={"country": region, "language": language},
            limit=top_k
        )

        matches = self._normalize(hits[:top_k], collection)
        self.cache.put(key, matches)

        logger.info(
            "similarity_resolved",
            language=language,
            region=region,
            query=query[:50],
            results_count=len(matches),
            top_similarity=matches[0].similarity_percent if matches else None
        )
        return matches

    def _normalize(self, hits: List[dict], collection: str) -> List[CatalogMatch]:
        """Convert raw hits to CatalogMatch, keeping backend order."""
        try:
            return [CatalogMatch.from_search_hit(hit) for hit in hits]
        except (AttributeError, KeyError, TypeError, ValueError, PydanticValidationError) as e:
            logger.error("similarity_hit_malformed", collection=collection, error=str(e))
            raise RetrievalError(
                message=f"Vector store returned a malformed hit: {str(e)}",
                collection=collection,
                code=ErrorCode.RETRIEVAL_INVALID_RESPONSE
            )
