"""Firestore estimate store for CWICR estimation.

Persists finished estimates and reads project estimate history.

Documents live at /estimations/{estimationId}.
"""

from typing import Any, Dict, List, Optional
import inspect

import structlog
from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cwicr_estimation.config.settings import settings
from cwicr_estimation.config.errors import PersistenceError, ErrorCode
from cwicr_estimation.models.estimate import Estimate, EstimateSummary, SavedEstimate

logger = structlog.get_logger(__name__)

# Read failures worth another attempt; writes are never retried
TRANSIENT_READ_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
)


class EstimateRepository:
    """Repository for estimate documents in Firestore.

    Note: Firebase Admin SDK for Python is synchronous. Methods are
    marked async for interface compatibility but operations are sync.
    """

    COLLECTION_ESTIMATIONS = "estimations"

    def __init__(self, db=None):
        """Initialize EstimateRepository.

        Args:
            db: Optional Firestore client. If not provided, uses default.
        """
        self._db = db

    @property
    def db(self):
        """Get Firestore client (lazy initialization)."""
        if self._db is None:
            self._db = firestore.client()
        return self._db

    async def _maybe_await(self, result: Any) -> Any:
        """Await result if it is awaitable (supports AsyncMock in unit tests)."""
        if inspect.isawaitable(result):
            return await result
        return result

    async def save_estimate(self, estimate: Estimate) -> SavedEstimate:
        """Persist a finished estimate.

        Args:
            estimate: Assembled estimate.

        Returns:
            SavedEstimate with the assigned document ID.

        Raises:
            PersistenceError: If the write fails.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_ESTIMATIONS).document()
            await self._maybe_await(doc_ref.set(estimate.to_firestore_dict()))

            logger.info(
                "estimate_saved",
                estimation_id=doc_ref.id,
                project_id=estimate.project_id,
                item_count=estimate.item_count
            )
            return SavedEstimate(id=doc_ref.id, project_id=estimate.project_id)

        except Exception as e:
            logger.error("estimate_save_failed", project_id=estimate.project_id, error=str(e))
            raise PersistenceError(
                code=ErrorCode.PERSISTENCE_WRITE_FAILED,
                message=f"Failed to save estimate: {str(e)}",
                project_id=estimate.project_id
            )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(TRANSIENT_READ_ERRORS),
        reraise=True,
    )
    async def _fetch_project_documents(self, project_id: str, limit: int) -> List[Dict[str, Any]]:
        """Query the newest estimate documents for a project."""
        query = (
            self.db
            .collection(self.COLLECTION_ESTIMATIONS)
            .where("projectId", "==", project_id)
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
            .limit(int(limit))
        )
        docs = await self._maybe_await(query.get())
        return [{"id": doc.id, **(doc.to_dict() or {})} for doc in docs]

    async def list_project_estimates(
        self,
        project_id: str,
        limit: Optional[int] = None
    ) -> List[EstimateSummary]:
        """List the most recent estimates for a project, newest first.

        Args:
            project_id: The project ID.
            limit: Maximum number of estimates (default from settings, 20).

        Returns:
            List of EstimateSummary.

        Raises:
            PersistenceError: If the read fails after retries.
        """
        limit = limit or settings.estimate_history_limit

        try:
            documents = await self._fetch_project_documents(project_id, limit)
        except Exception as e:
            logger.error("estimate_history_failed", project_id=project_id, error=str(e))
            raise PersistenceError(
                code=ErrorCode.PERSISTENCE_READ_FAILED,
                message=f"Failed to list estimates: {str(e)}",
                project_id=project_id
            )

        summaries = [
            EstimateSummary.from_firestore(doc.pop("id"), doc)
            for doc in documents
        ]
        logger.info("estimate_history_loaded", project_id=project_id, count=len(summaries))
        return summaries
