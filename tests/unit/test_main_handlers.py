"""Unit tests for the HTTP entry points."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cwicr_estimation import main
from cwicr_estimation.config.errors import EmbeddingError, ErrorCode, PersistenceError
from cwicr_estimation.models.estimate import EstimateSummary
from tests.fixtures.mock_catalog_data import FOOTING_ELEMENT, FOOTING_HIT, UNMATCHED_ELEMENT


def _request(body=None, method="POST") -> MagicMock:
    req = MagicMock()
    req.method = method
    req.get_json.return_value = body
    return req


def _body(response) -> dict:
    return json.loads(response.get_data(as_text=True))


@pytest.fixture
def service_mock(estimation_service):
    with patch.object(main, "get_service", return_value=estimation_service):
        yield estimation_service


class TestSearchHandler:

    def test_search_success(self, service_mock):
        response = main.search_work_items(_request({"query": "pour concrete footing", "topK": 3}))

        assert response.status_code == 200
        body = _body(response)
        assert body["success"] is True
        assert body["data"]["language"] == "en"
        assert body["data"]["country"] == "EE"
        assert body["data"]["resultCount"] == 1
        assert body["data"]["results"][0]["similarity"] == "91.3%"

    def test_missing_query_is_400(self, service_mock):
        response = main.search_work_items(_request({"language": "en"}))

        assert response.status_code == 400
        assert _body(response)["error"]["code"] == ErrorCode.VALIDATION_ERROR

    def test_bad_language_is_400(self, service_mock):
        response = main.search_work_items(_request({"query": "footing", "language": "fr"}))

        assert response.status_code == 400
        assert _body(response)["error"]["details"]["field"] == "language"

    def test_non_numeric_top_k_is_400(self, service_mock):
        response = main.search_work_items(_request({"query": "footing", "topK": "abc"}))

        assert response.status_code == 400
        assert _body(response)["error"]["details"]["field"] == "topK"

    def test_embedding_unavailable_is_503(self, service_mock, mock_embedding_service):
        mock_embedding_service.embed = AsyncMock(side_effect=EmbeddingError("down"))

        response = main.search_work_items(_request({"query": "footing"}))

        assert response.status_code == 503
        assert _body(response)["error"]["code"] == ErrorCode.EMBEDDING_UNAVAILABLE

    def test_options_preflight(self):
        response = main.search_work_items(_request(method="OPTIONS"))

        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Origin"] == "*"


class TestEstimateHandler:

    def test_estimate_success(self, service_mock, mock_estimate_repository):
        req = _request({
            "projectId": "proj-1",
            "cadElements": [FOOTING_ELEMENT, UNMATCHED_ELEMENT],
        })
        service_mock.resolver.vector_search_service.search = AsyncMock(
            side_effect=[[FOOTING_HIT], []]
        )

        response = main.estimate_from_cad(req)

        assert response.status_code == 200
        data = _body(response)["data"]
        assert data["estimationId"] == "estimation-001"
        assert data["estimate"]["itemCount"] == 1
        assert data["estimate"]["costBreakdown"]["total"] == 600
        assert data["estimate"]["skipped"][0]["elementId"] == "C"
        mock_estimate_repository.save_estimate.assert_awaited_once()

    @pytest.mark.parametrize("body,field", [
        ({"projectId": "proj-1"}, "cadElements"),
        ({"projectId": "proj-1", "cadElements": "A,B"}, "cadElements"),
        ({"cadElements": []}, "projectId"),
    ])
    def test_invalid_body_is_400(self, service_mock, body, field):
        response = main.estimate_from_cad(_request(body))

        assert response.status_code == 400
        assert _body(response)["error"]["details"]["field"] == field

    def test_save_failure_is_500(self, service_mock, mock_estimate_repository):
        mock_estimate_repository.save_estimate = AsyncMock(side_effect=PersistenceError(
            code=ErrorCode.PERSISTENCE_WRITE_FAILED,
            message="write failed",
            project_id="proj-1"
        ))

        response = main.estimate_from_cad(_request({"projectId": "proj-1", "cadElements": [FOOTING_ELEMENT]}))

        assert response.status_code == 500
        assert _body(response)["error"]["code"] == ErrorCode.PERSISTENCE_WRITE_FAILED


class TestHistoryAndHealthHandlers:

    def test_history(self, service_mock, mock_estimate_repository):
        mock_estimate_repository.list_project_estimates = AsyncMock(return_value=[
            EstimateSummary.from_firestore("est-1", {"projectId": "proj-1", "language": "en", "country": "EE"})
        ])

        response = main.get_project_estimations(_request({"projectId": "proj-1"}))

        data = _body(response)["data"]
        assert data["estimationCount"] == 1
        assert data["estimations"][0]["id"] == "est-1"
        assert data["estimations"][0]["projectId"] == "proj-1"

    def test_history_requires_project(self, service_mock):
        response = main.get_project_estimations(_request({}))

        assert response.status_code == 400

    def test_health(self, service_mock):
        response = main.estimation_health(_request(method="GET"))

        assert _body(response)["status"] == "ok"


class TestErrorStatus:

    @pytest.mark.parametrize("code,status", [
        (ErrorCode.EMBEDDING_TIMEOUT, 503),
        (ErrorCode.RETRIEVAL_UNAVAILABLE, 503),
        (ErrorCode.RETRIEVAL_INVALID_RESPONSE, 500),
        (ErrorCode.EMBEDDING_INVALID_RESPONSE, 500),
    ])
    def test_backend_codes(self, code, status):
        assert main._error_status(EmbeddingError("x", code=code)) == status

