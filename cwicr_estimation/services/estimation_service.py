"""Estimation service for CWICR estimation.

Provides semantic search over the work item catalog and assembles
project cost estimates from design elements.

Assembly runs in two passes:
1. Resolve every element concurrently (bounded), producing either a best
   match or an ElementResolutionFailure per element.
2. Fold the matches serially, in input order, into the cost breakdown.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from cwicr_estimation.config.settings import Settings, settings
from cwicr_estimation.config.errors import (
    EmbeddingError,
    ErrorCode,
    RetrievalError,
    ValidationError,
)
from cwicr_estimation.models.catalog import CatalogMatch, SearchLanguage
from cwicr_estimation.models.estimate import (
    CostBreakdown,
    DesignElement,
    ElementResolutionFailure,
    Estimate,
    EstimateSummary,
    SavedEstimate,
)
from cwicr_estimation.services.cost_aggregator import CostAggregator
from cwicr_estimation.services.embedding_service import EmbeddingService
from cwicr_estimation.services.estimate_repository import EstimateRepository
from cwicr_estimation.services.similarity_resolver import SimilarityResolver
from cwicr_estimation.services.vector_search_service import VectorSearchService

logger = structlog.get_logger(__name__)

ElementOutcome = Union[CatalogMatch, ElementResolutionFailure]


def _parse_language(language: Union[SearchLanguage, str]) -> str:
    try:
        return SearchLanguage(language).value
    except ValueError:
        raise ValidationError(
            message=f'Language must be "en" or "de", got {language!r}',
            field="language"
        )


def _parse_element(
    index: int,
    raw: Union[DesignElement, Dict[str, Any]]
) -> Union[DesignElement, ElementResolutionFailure]:
    """Parse a raw element, or tag it as a failure if it is malformed."""
    if isinstance(raw, DesignElement):
        return raw

    try:
        return DesignElement.model_validate(raw)
    except PydanticValidationError as e:
        data = raw if isinstance(raw, dict) else {}
        return ElementResolutionFailure(
            element_id=str(data.get("id", f"#{index}")),
            element_name=str(data.get("name") or ""),
            code=ErrorCode.INVALID_FIELD,
            reason=f"Malformed design element: {e.error_count()} validation error(s)"
        )


class EstimationService:
    """Service for catalog search and cost estimation."""

    def __init__(
        self,
        resolver: Optional[SimilarityResolver] = None,
        aggregator: Optional[CostAggregator] = None,
        repository: Optional[EstimateRepository] = None,
        config: Optional[Settings] = None
    ):
        """Initialize EstimationService.

        Args:
            resolver: Similarity resolver (default: built from settings).
            aggregator: Cost aggregator (default: configured labor rate).
            repository: Estimate store (default: Firestore).
            config: Settings instance.
        """
        self.config = config or settings
        self.resolver = resolver or SimilarityResolver(
            embedding_service=EmbeddingService(config=self.config),
            vector_search_service=VectorSearchService(config=self.config),
            config=self.config
        )
        self.aggregator = aggregator or CostAggregator(labor_rate=self.config.labor_rate_per_hour)
        self.repository = repository or EstimateRepository()

    # =========================================================================
    # Search
    # =========================================================================

    async def search_work_items(
        self,
        query: str,
        language: Union[SearchLanguage, str, None] = None,
        region: Optional[str] = None,
        top_k: Optional[int] = None
    ) -> List[CatalogMatch]:
        """Search construction work items by language.

        Args:
            query: Free-text query.
            language: Catalog language (default from settings, "en").
            region: Region / country code (default from settings, "EE").
            top_k: Maximum results, clamped to [1, max_top_k].

        Returns:
            Ranked list of CatalogMatch.

        Raises:
            ValidationError: If query or language is invalid.
            EmbeddingError: If the query cannot be embedded.
            RetrievalError: If the similarity backend fails.
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError(message="Query is required and must be a string", field="query")

        language = _parse_language(language or self.config.default_language)
        region = region or self.config.default_region
        try:
            top_k = int(top_k or self.config.default_top_k)
        except (TypeError, ValueError):
            raise ValidationError(message=f"topK must be an integer, got {top_k!r}", field="topK")
        top_k = min(max(top_k, 1), self.config.max_top_k)

        try:
            return await self.resolver.resolve(query, language, region, top_k)
        except (EmbeddingError, RetrievalError) as e:
            logger.error("search_failed", query=query[:50], code=e.code, error=e.message)
            raise

    # =========================================================================
    # Estimate assembly
    # =========================================================================

    async def _resolve_element(
        self,
        element: Union[DesignElement, ElementResolutionFailure],
        language: str,
        region: str,
        semaphore: asyncio.Semaphore
    ) -> ElementOutcome:
        """Resolve one element to its best match or a tagged failure."""
        if isinstance(element, ElementResolutionFailure):
            return element

        async with semaphore:
            try:
                matches = await self.resolver.resolve(element.description, language, region, 1)
            except (EmbeddingError, RetrievalError) as e:
                return ElementResolutionFailure(
                    element_id=element.id,
                    element_name=element.name,
                    code=e.code,
                    reason=e.message
                )

        if not matches:
            return ElementResolutionFailure(
                element_id=element.id,
                element_name=element.name,
                code=ErrorCode.NO_MATCH,
                reason="No catalog work item matched the element description"
            )
        return matches[0]

    async def assemble(
        self,
        elements: Sequence[Union[DesignElement, Dict[str, Any]]],
        project_id: str,
        language: Union[SearchLanguage, str, None] = None,
        region: Optional[str] = None
    ) -> Estimate:
        """Estimate a construction project from design elements.

        Elements that cannot be parsed, fail to resolve or have no match
        are skipped and recorded in ``Estimate.failures``; they never
        abort the batch.

        Args:
            elements: Design elements (models or raw dicts), in order.
            project_id: Project ID.
            language: Catalog language (default from settings).
            region: Region / country code (default from settings).

        Returns:
            Assembled Estimate with line items in input order.

        Raises:
            ValidationError: If the language is unsupported.
        """
        language = _parse_language(language or self.config.default_language)
        region = region or self.config.default_region
        parsed = [_parse_element(index, raw) for index, raw in enumerate(elements)]

        semaphore = asyncio.Semaphore(self.config.estimate_concurrency)
        outcomes = await asyncio.gather(*[
            self._resolve_element(element, language, region, semaphore)
            for element in parsed
        ])

        breakdown = CostBreakdown()
        items = []
        failures = []
        for element, outcome in zip(parsed, outcomes):
            if isinstance(outcome, ElementResolutionFailure):
                logger.warning(
                    "element_resolution_skipped",
                    project_id=project_id,
                    element_id=outcome.element_id,
                    element_name=outcome.element_name,
                    code=outcome.code,
                    reason=outcome.reason
                )
                failures.append(outcome)
                continue
            items.append(self.aggregator.apply(breakdown, element, outcome))

        self.aggregator.finalize(breakdown)

        estimate = Estimate(
            project_id=project_id,
            items=items,
            cost_breakdown=breakdown,
            language=language,
            region=region,
            created_at=datetime.now(timezone.utc),
            failures=failures,
        )

        logger.info(
            "estimate_assembled",
            project_id=project_id,
            element_count=len(parsed),
            item_count=len(items),
            skipped_count=len(failures),
            total=breakdown.total
        )
        return estimate

    # =========================================================================
    # Persistence
    # =========================================================================

    async def save_estimate(self, estimate: Estimate) -> SavedEstimate:
        """Persist an estimate.

        Raises:
            PersistenceError: If the write fails.
        """
        return await self.repository.save_estimate(estimate)

    async def get_project_estimations(
        self,
        project_id: str,
        limit: Optional[int] = None
    ) -> List[EstimateSummary]:
        """Get project estimation history, newest first.

        Raises:
            PersistenceError: If the read fails.
        """
        return await self.repository.list_project_estimates(
            project_id,
            limit or self.config.estimate_history_limit
        )

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def health_check(self) -> Dict[str, Any]:
        """Check that the catalog collections are reachable.

        Returns:
            Dict with "status" ("ok" or "degraded") and the catalog
            collections found.
        """
        expected = [self.config.catalog_collection_en, self.config.catalog_collection_de]

        try:
            names = await self.resolver.vector_search_service.list_collections()
        except RetrievalError as e:
            logger.warning("health_check_failed", error=e.message)
            return {"status": "degraded", "catalogCollections": []}

        found = [name for name in expected if name in names]
        return {"status": "ok" if found else "degraded", "catalogCollections": found}

    def clear_cache(self) -> None:
        """Clear the similarity query cache."""
        self.resolver.cache.clear()
