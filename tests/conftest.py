"""Pytest configuration and shared fixtures for CWICR estimation tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from typing import Dict, Any, List


# ============================================================================
# Ensure local imports work (cwicr_estimation/, tests/fixtures/)
# ============================================================================
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Environment Setup
# ============================================================================

@pytest.fixture(autouse=True)
def mock_settings():
    """Pin settings for all tests."""
    from cwicr_estimation.config.settings import settings

    with patch.multiple(
        settings,
        embedding_service_url="http://embedder.test",
        embedding_timeout_seconds=5.0,
        embedding_dimension=None,
        vector_store_url="http://qdrant.test",
        vector_store_api_key=None,
        vector_search_timeout_seconds=10.0,
        catalog_collection_en="ddc-cwicr-en",
        catalog_collection_de="ddc-cwicr-de",
        search_cache_ttl_seconds=3600.0,
        labor_rate_per_hour=50.0,
        default_language="en",
        default_region="EE",
        default_top_k=5,
        max_top_k=50,
        estimate_concurrency=8,
        estimate_history_limit=20,
        use_firebase_emulators=True,
        log_level="INFO",
    ):
        yield settings


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


# ============================================================================
# Retrieval Mocks
# ============================================================================

@pytest.fixture
def mock_embedding_service():
    """Mock EmbeddingService returning a fixed vector."""
    from cwicr_estimation.services.embedding_service import EmbeddingService

    service = MagicMock(spec=EmbeddingService)
    service.embed = AsyncMock(return_value=[0.12, -0.4, 0.33, 0.05])
    return service


@pytest.fixture
def mock_vector_search_service():
    """Mock VectorSearchService returning the footing hit."""
    from cwicr_estimation.services.vector_search_service import VectorSearchService
    from tests.fixtures.mock_catalog_data import FOOTING_HIT

    service = MagicMock(spec=VectorSearchService)
    service.search = AsyncMock(return_value=[FOOTING_HIT])
    service.list_collections = AsyncMock(return_value=["ddc-cwicr-en", "ddc-cwicr-de"])
    return service


@pytest.fixture
def query_cache(fake_clock):
    """QueryCache with a one hour TTL on the fake clock."""
    from cwicr_estimation.services.query_cache import QueryCache

    return QueryCache(ttl_seconds=3600, clock=fake_clock)


@pytest.fixture
def resolver(mock_embedding_service, mock_vector_search_service, query_cache):
    """SimilarityResolver wired to mocks."""
    from cwicr_estimation.services.similarity_resolver import SimilarityResolver

    return SimilarityResolver(
        embedding_service=mock_embedding_service,
        vector_search_service=mock_vector_search_service,
        cache=query_cache,
    )


# ============================================================================
# Firebase Mocks
# ============================================================================

@pytest.fixture
def mock_firestore_client():
    """Mock Firestore client."""
    client = MagicMock()

    collection_mock = MagicMock()
    document_mock = MagicMock()
    document_mock.id = "estimation-001"
    document_mock.set = AsyncMock()

    client.collection.return_value = collection_mock
    collection_mock.document.return_value = document_mock

    # Chain: collection().where().order_by().limit().get()
    query_mock = MagicMock()
    collection_mock.where.return_value = query_mock
    query_mock.order_by.return_value = query_mock
    query_mock.limit.return_value = query_mock
    query_mock.get = AsyncMock(return_value=[])

    return client


@pytest.fixture
def estimate_repository(mock_firestore_client):
    """EstimateRepository with mocked client."""
    from cwicr_estimation.services.estimate_repository import EstimateRepository

    return EstimateRepository(db=mock_firestore_client)


@pytest.fixture
def mock_estimate_repository():
    """Fully mocked EstimateRepository."""
    from cwicr_estimation.services.estimate_repository import EstimateRepository
    from cwicr_estimation.models.estimate import SavedEstimate

    repository = MagicMock(spec=EstimateRepository)
    repository.save_estimate = AsyncMock(
        return_value=SavedEstimate(id="estimation-001", project_id="proj-1")
    )
    repository.list_project_estimates = AsyncMock(return_value=[])
    return repository


@pytest.fixture
def estimation_service(resolver, mock_estimate_repository):
    """EstimationService wired to mocks with a 50/h labor rate."""
    from cwicr_estimation.services.cost_aggregator import CostAggregator
    from cwicr_estimation.services.estimation_service import EstimationService

    return EstimationService(
        resolver=resolver,
        aggregator=CostAggregator(labor_rate=50.0),
        repository=mock_estimate_repository,
    )


# ============================================================================
# Sample Data
# ============================================================================

@pytest.fixture
def sample_elements() -> List[Dict[str, Any]]:
    from tests.fixtures.mock_catalog_data import FOOTING_ELEMENT, WALL_ELEMENT

    return [dict(FOOTING_ELEMENT), dict(WALL_ELEMENT)]
