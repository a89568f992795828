"""Shared fixtures for ci-review-insight tests."""

import os
from typing import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from ci_review_insight.analysis import ModelAnalysisClient
from ci_review_insight.config import Settings
from ci_review_insight.github import GitHubClient
from ci_review_insight.models import (
    CheckRun,
    CommitStatus,
    ExternalFailure,
    FailedJob,
    ModelAnalysis,
    WorkflowJob,
    WorkflowRun,
)


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Provide minimal environment variables for Settings."""
    env = {
        "GITHUB_TOKEN": "ghp_test_token",  # pragma: allowlist secret
        "GITHUB_REPOSITORY": "octo-org/octo-repo",
        "GEMINI_API_KEY": "test-gemini-key",  # pragma: allowlist secret
    }
    with patch.dict(os.environ, env, clear=True):
        yield env


@pytest.fixture
def settings(mock_env_vars: dict[str, str]) -> Settings:
    """Create Settings instance with mocked environment."""
    return Settings()


@pytest.fixture
def mock_github() -> MagicMock:
    """GitHub client whose async methods are AsyncMocks, with no failures by default."""
    github = MagicMock(spec=GitHubClient)
    github.fetch_pull_request_head_sha.return_value = "sha-from-api"
    github.list_failed_workflow_runs.return_value = []
    github.list_jobs_for_run.return_value = []
    github.fetch_job_log.return_value = ""
    github.list_check_runs.return_value = []
    github.list_commit_statuses.return_value = []
    github.list_reviews.return_value = []
    github.fetch_pull_request_diff.return_value = "diff --git a/src/app.py b/src/app.py"
    github.post_review.return_value = 999
    return github


@pytest.fixture
def github_with_failures(mock_github: MagicMock) -> MagicMock:
    """GitHub client reporting one failed workflow job and one failed status."""
    mock_github.list_failed_workflow_runs.return_value = [WorkflowRun(id=1, name="CI")]
    mock_github.list_jobs_for_run.return_value = [
        WorkflowJob(id=101, name="test", conclusion="failure"),
        WorkflowJob(id=102, name="build", conclusion="success"),
    ]
    mock_github.fetch_job_log.return_value = "FAILED tests/test_app.py::test_login"
    mock_github.list_commit_statuses.return_value = [
        CommitStatus(
            context="jenkins/e2e",
            state="failure",
            description="Build #12 failed",
            target_url="https://jenkins.example.com/job/e2e/12/",
        )
    ]
    mock_github.list_check_runs.return_value = [
        CheckRun(name="test", conclusion="failure", app={"slug": "github-actions"})
    ]
    return mock_github


@pytest.fixture
def mock_model_client() -> MagicMock:
    """Model analysis client returning one inline comment with high confidence."""
    client = MagicMock(spec=ModelAnalysisClient)
    client.analyze = AsyncMock(
        return_value=ModelAnalysis(
            summary="The login handler no longer checks for a missing user.",
            comments=[
                {"path": "src/app.py", "line": 12, "body": "Add a `None` check here."}
            ],
            confidence="high",
        )
    )
    return client


@pytest.fixture
def sample_jobs() -> list[FailedJob]:
    """Three failed jobs from two workflow runs."""
    return [
        FailedJob(id=1, name="CI / test", logs="AssertionError"),
        FailedJob(id=2, name="Lint / ruff", logs="E501 line too long"),
        FailedJob(id=3, name="CI / build", logs="error: linker failed"),
    ]


@pytest.fixture
def sample_external() -> list[ExternalFailure]:
    """One failed commit status and one failed check run."""
    return [
        ExternalFailure(
            source="status",
            name="jenkins/e2e",
            description="Build #12 failed",
            url="https://jenkins.example.com/job/e2e/12/",
        ),
        ExternalFailure(
            source="check-run",
            name="packit/rpm-build",
            description="RPM build failed",
            url="https://packit.example.com/results/5",
        ),
    ]


def _github_response(
    status_code: int = 200,
    json: object | None = None,
    text: str | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """Build a real httpx.Response bound to a request, as the API would return."""
    kwargs: dict = {"headers": headers or {}}
    if json is not None:
        kwargs["json"] = json
    if text is not None:
        kwargs["text"] = text
    return httpx.Response(
        status_code,
        request=httpx.Request("GET", "https://api.github.com/repos/octo-org/octo-repo"),
        **kwargs,
    )


@pytest.fixture
def make_response():
    """Factory for httpx responses returned by the mocked GitHub transport."""
    return _github_response

