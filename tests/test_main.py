"""Tests for FastAPI main application."""

import os
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from ci_review_insight.errors import ResolutionError
from ci_review_insight.models import ReviewDecision, ReviewOutcome


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]):
    """Mock settings for tests."""
    env = {**mock_env_vars, "CALLBACK_URL": "https://hooks.example.com/ci"}
    with patch.dict(os.environ, env, clear=True):
        # Clear the lru_cache to use fresh settings
        from ci_review_insight.config import get_settings

        get_settings.cache_clear()
        yield
        get_settings.cache_clear()


@pytest.fixture
def test_client(mock_settings):
    """Create a test client with the AI provider mocked out."""
    from starlette.testclient import TestClient

    from ci_review_insight.main import app

    with patch("ci_review_insight.main.get_ai_client", return_value=MagicMock()):
        with TestClient(app) as client:
            yield client


def _outcome(decision: ReviewDecision = ReviewDecision.NO_FAILURES) -> ReviewOutcome:
    return ReviewOutcome(
        decision=decision,
        status=":green_circle: No CI failures detected",
        head_sha="abc123",
    )


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_check_returns_healthy(self, test_client) -> None:
        """Test that health check returns healthy status."""
        response = test_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_health_check_method_not_allowed(self, test_client) -> None:
        """Test that POST to health returns 405."""
        response = test_client.post("/health")
        assert response.status_code == 405


class TestAnalyzeEndpoint:
    """Tests for the /analyze endpoint."""

    def test_analyze_returns_outcome(self, test_client) -> None:
        """Test that the review outcome is returned and delivered to the callback."""
        with patch(
            "ci_review_insight.main.run_review",
            new_callable=AsyncMock,
            return_value=_outcome(),
        ) as mock_run:
            with patch(
                "ci_review_insight.main.send_callback", new_callable=AsyncMock
            ) as mock_callback:
                response = test_client.post(
                    "/analyze",
                    json={"pr_number": 12, "head_sha": "abc123", "review_event": "REQUEST_CHANGES"},
                )

        assert response.status_code == 200
        data = response.json()
        assert data["decision"] == "no-failures"
        assert data["head_sha"] == "abc123"

        args, kwargs = mock_run.await_args
        assert args[3] == 12
        assert args[4].head_sha == "abc123"
        assert args[4].event_name == "api"
        assert kwargs["review_event"] == "REQUEST_CHANGES"
        mock_callback.assert_awaited_once()
        assert mock_callback.await_args.args[0] == "https://hooks.example.com/ci"

    def test_analyze_passes_model_override(self, test_client) -> None:
        """Test that ai_model from the request selects the model."""
        with patch(
            "ci_review_insight.main.run_review",
            new_callable=AsyncMock,
            return_value=_outcome(),
        ):
            with patch("ci_review_insight.main.send_callback", new_callable=AsyncMock):
                with patch("ci_review_insight.main.get_ai_client") as mock_factory:
                    test_client.post(
                        "/analyze", json={"pr_number": 12, "ai_model": "gemini-2.5-pro"}
                    )
        assert mock_factory.call_args.kwargs["model"] == "gemini-2.5-pro"

    def test_analyze_callback_failure_is_not_fatal(self, test_client) -> None:
        """Test that a failing callback does not fail the request."""
        request = httpx.Request("POST", "https://hooks.example.com/ci")
        with patch(
            "ci_review_insight.main.run_review",
            new_callable=AsyncMock,
            return_value=_outcome(),
        ):
            with patch(
                "ci_review_insight.main.send_callback",
                new_callable=AsyncMock,
                side_effect=httpx.ConnectError("refused", request=request),
            ):
                response = test_client.post("/analyze", json={"pr_number": 12})
        assert response.status_code == 200

    def test_analyze_invalid_request(self, test_client) -> None:
        """Test that a non-positive PR number is rejected."""
        response = test_client.post("/analyze", json={"pr_number": 0})
        assert response.status_code == 422

    def test_analyze_missing_credentials(self, test_client) -> None:
        """Test that a misconfigured AI provider returns 400."""
        with patch(
            "ci_review_insight.main.get_ai_client",
            side_effect=ValueError("GEMINI_API_KEY is not set"),
        ):
            response = test_client.post("/analyze", json={"pr_number": 12})
        assert response.status_code == 400
        assert "GEMINI_API_KEY" in response.json()["detail"]

    def test_analyze_resolution_error(self, test_client) -> None:
        """Test that an unresolvable head commit returns 502."""
        with patch(
            "ci_review_insight.main.run_review",
            new_callable=AsyncMock,
            side_effect=ResolutionError("Could not determine head commit of PR #12"),
        ):
            response = test_client.post("/analyze", json={"pr_number": 12})
        assert response.status_code == 502

    @pytest.mark.parametrize(
        "status_code, expected",
        [(404, 404), (500, 502), (403, 502)],
    )
    def test_analyze_github_status_errors(
        self, test_client, status_code: int, expected: int
    ) -> None:
        """Test mapping of GitHub API errors to response codes."""
        request = httpx.Request("GET", "https://api.github.com/repos/o/r/pulls/12")
        error = httpx.HTTPStatusError(
            "error", request=request, response=httpx.Response(status_code, request=request)
        )
        with patch(
            "ci_review_insight.main.run_review", new_callable=AsyncMock, side_effect=error
        ):
            response = test_client.post("/analyze", json={"pr_number": 12})
        assert response.status_code == expected

    def test_analyze_github_unreachable(self, test_client) -> None:
        """Test that a transport error returns 502."""
        with patch(
            "ci_review_insight.main.run_review",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("name resolution failed"),
        ):
            response = test_client.post("/analyze", json={"pr_number": 12})
        assert response.status_code == 502
        assert "Could not reach GitHub API" in response.json()["detail"]
