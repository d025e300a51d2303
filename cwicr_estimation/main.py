"""Cloud Function entry points for CWICR estimation.

Provides HTTP endpoints for:
- Semantic search over the work item catalog
- Estimating a project from CAD elements
- Project estimation history
- Catalog health
"""

import asyncio
import json
from typing import Any, Dict, Optional
from datetime import datetime, date

import structlog
from firebase_functions import https_fn, options
from firebase_admin import initialize_app

from cwicr_estimation.config.settings import settings
from cwicr_estimation.config.errors import EstimationError, ErrorCode, ValidationError
from cwicr_estimation.models.catalog import SearchLanguage
from cwicr_estimation.services.estimation_service import EstimationService
from cwicr_estimation.utils.estimate_logger import configure_logging, log_estimate_summary

# Initialize Firebase Admin SDK
try:
    initialize_app()
except ValueError:
    # Already initialized
    pass

configure_logging(settings.log_level)
logger = structlog.get_logger()

# Shared across requests handled by a warm instance so the query cache persists
_service: Optional[EstimationService] = None


def get_service() -> EstimationService:
    """Get the process-wide EstimationService (lazy initialization)."""
    global _service
    if _service is None:
        _service = EstimationService()
    return _service


# ============================================================================
# Helper Functions
# ============================================================================


def success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """Build success response."""
    return {"success": True, "data": data}


def error_response(code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    """Build error response."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }


def get_request_json(req: https_fn.Request) -> Dict[str, Any]:
    """Extract JSON from request body.

    Raises:
        ValidationError: If JSON is invalid.
    """
    try:
        return req.get_json(force=True) or {}
    except Exception as e:
        raise ValidationError(
            message=f"Invalid JSON in request body: {str(e)}"
        )


def _validate_language(data: Dict[str, Any]) -> str:
    language = data.get("language") or settings.default_language
    if language not in [lang.value for lang in SearchLanguage]:
        raise ValidationError(message='Language must be "en" or "de"', field="language")
    return language


def _error_status(e: EstimationError) -> int:
    if isinstance(e, ValidationError):
        return 400
    if e.code in (ErrorCode.EMBEDDING_TIMEOUT, ErrorCode.EMBEDDING_UNAVAILABLE, ErrorCode.RETRIEVAL_UNAVAILABLE):
        return 503
    return 500


# ============================================================================
# Search
# ============================================================================


@https_fn.on_request(
    timeout_sec=30,
    memory=options.MemoryOption.MB_512,
    region="europe-west1"
)
def search_work_items(req: https_fn.Request) -> https_fn.Response:
    """Semantic search for construction work items.

    Request body:
    {
        "query": "pour concrete footing",
        "language": "en",   // Optional: en | de
        "country": "EE",    // Optional
        "topK": 5           // Optional
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        query = data.get("query")

        if not query or not isinstance(query, str):
            raise ValidationError(message="Query is required and must be a string", field="query")

        language = _validate_language(data)
        country = data.get("country") or settings.default_region

        results = asyncio.run(get_service().search_work_items(
            query,
            language=language,
            region=country,
            top_k=data.get("topK")
        ))

        return _json_response(success_response({
            "query": query,
            "language": language,
            "country": country,
            "resultCount": len(results),
            "results": [match.to_dict() for match in results]
        }))

    except EstimationError as e:
        logger.error("search_request_error", error=e.message, code=e.code)
        return _json_response(error_response(e.code, e.message, e.details), status=_error_status(e))
    except Exception as e:
        logger.exception("search_request_exception", error=str(e))
        return _json_response(
            error_response(ErrorCode.SEARCH_FAILED, f"Search failed: {str(e)}"),
            status=500
        )


# ============================================================================
# Estimation
# ============================================================================


@https_fn.on_request(
    timeout_sec=300,
    memory=options.MemoryOption.GB_1,
    region="europe-west1"
)
def estimate_from_cad(req: https_fn.Request) -> https_fn.Response:
    """Generate and save a cost estimate from CAD elements.

    Request body:
    {
        "projectId": "proj-xxx",
        "cadElements": [{"id": "A", "name": "Footing", "description": "...", "quantity": 2}],
        "language": "en",   // Optional
        "country": "EE"     // Optional
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        cad_elements = data.get("cadElements")
        project_id = data.get("projectId")

        if not isinstance(cad_elements, list):
            raise ValidationError(message="cadElements must be an array", field="cadElements")
        if not project_id:
            raise ValidationError(message="projectId is required", field="projectId")

        language = _validate_language(data)
        country = data.get("country") or settings.default_region

        result = asyncio.run(_estimate_async(cad_elements, project_id, language, country))
        return _json_response(success_response(result))

    except EstimationError as e:
        logger.error("estimation_request_error", error=e.message, code=e.code)
        return _json_response(error_response(e.code, e.message, e.details), status=_error_status(e))
    except Exception as e:
        logger.exception("estimation_request_exception", error=str(e))
        return _json_response(
            error_response(ErrorCode.ESTIMATION_FAILED, f"Estimation failed: {str(e)}"),
            status=500
        )


async def _estimate_async(
    cad_elements: list,
    project_id: str,
    language: str,
    country: str
) -> Dict[str, Any]:
    """Assemble the estimate and persist it."""
    service = get_service()

    estimate = await service.assemble(cad_elements, project_id, language, country)
    log_estimate_summary(estimate)
    saved = await service.save_estimate(estimate)

    estimate_data = estimate.to_dict()
    return {
        "estimationId": saved.id,
        "projectId": saved.project_id,
        "estimate": {
            "itemCount": estimate.item_count,
            "costBreakdown": estimate_data["costBreakdown"],
            "language": language,
            "country": country,
            "items": estimate_data["items"],
            "skipped": estimate_data["failures"]
        }
    }


@https_fn.on_request(
    timeout_sec=30,
    memory=options.MemoryOption.MB_256,
    region="europe-west1"
)
def get_project_estimations(req: https_fn.Request) -> https_fn.Response:
    """Get estimation history for a project, newest first.

    Request body:
    {
        "projectId": "proj-xxx"
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        project_id = data.get("projectId")

        if not project_id:
            raise ValidationError(message="projectId is required", field="projectId")

        estimations = asyncio.run(get_service().get_project_estimations(project_id))

        return _json_response(success_response({
            "projectId": project_id,
            "estimationCount": len(estimations),
            "estimations": [e.model_dump(by_alias=True) for e in estimations]
        }))

    except EstimationError as e:
        logger.error("history_request_error", error=e.message, code=e.code)
        return _json_response(error_response(e.code, e.message, e.details), status=_error_status(e))
    except Exception as e:
        logger.exception("history_request_exception", error=str(e))
        return _json_response(
            error_response(ErrorCode.PERSISTENCE_READ_FAILED, f"Failed to fetch estimations: {str(e)}"),
            status=500
        )


@https_fn.on_request(
    timeout_sec=30,
    memory=options.MemoryOption.MB_256,
    region="europe-west1"
)
def estimation_health(req: https_fn.Request) -> https_fn.Response:
    """Health check for the catalog collections."""
    if req.method == "OPTIONS":
        return _cors_response()

    result = asyncio.run(get_service().health_check())
    return _json_response(result)


# ============================================================================
# Response helpers
# ============================================================================

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "3600"
}


def _cors_response() -> https_fn.Response:
    """Return CORS preflight response."""
    return https_fn.Response(
        "",
        status=204,
        headers=CORS_HEADERS
    )


def _json_response(data: dict, status: int = 200) -> https_fn.Response:
    """Return JSON response with CORS headers."""

    def _json_default(o: Any):
        """JSON serializer for Firestore timestamps and datetimes."""
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        if hasattr(o, "isoformat"):
            return o.isoformat()
        return str(o)

    return https_fn.Response(
        json.dumps(data, default=_json_default),
        status=status,
        mimetype="application/json",
        headers=CORS_HEADERS
    )
