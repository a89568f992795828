"""GitHub REST API client for workflow runs, checks and pull request reviews."""

import os
from typing import Any, Literal, Self

import httpx
from simple_logger.logger import get_logger

from ci_review_insight.models import (
    CheckRun,
    CommitStatus,
    PullRequestHead,
    PullRequestReview,
    ReviewComment,
    WorkflowJob,
    WorkflowRun,
)

logger = get_logger(name=__name__, level=os.environ.get("LOG_LEVEL", "INFO"))

PER_PAGE = 100
API_VERSION = "2022-11-28"


class GitHubClient:
    """Async HTTP client for the GitHub REST API, scoped to one repository."""

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        api_url: str = "https://api.github.com",
    ) -> None:
        self.owner = owner
        self.repo = repo
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
            },
            follow_redirects=True,
            timeout=30.0,
        )

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def _get_json(self, path: str, params: dict | None = None) -> Any:
        response = await self._client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    async def list_failed_workflow_runs(self, head_sha: str) -> list[WorkflowRun]:
        """List failed workflow runs for a commit."""
        data = await self._get_json(
            f"{self._repo_path}/actions/runs",
            params={"head_sha": head_sha, "status": "failure", "per_page": PER_PAGE},
        )
        return [WorkflowRun.model_validate(run) for run in data["workflow_runs"]]

    async def list_jobs_for_run(self, run_id: int) -> list[WorkflowJob]:
        """List the latest attempt's jobs of a workflow run."""
        data = await self._get_json(
            f"{self._repo_path}/actions/runs/{run_id}/jobs",
            params={"filter": "latest", "per_page": PER_PAGE},
        )
        return [WorkflowJob.model_validate(job) for job in data["jobs"]]

    async def fetch_job_log(self, job_id: int) -> str:
        """Download the plain-text log of a job.

        The API answers with a redirect to a short-lived download URL, which
        the client follows.
        """
        response = await self._client.get(
            f"{self._repo_path}/actions/jobs/{job_id}/logs"
        )
        response.raise_for_status()
        return response.text

    async def list_check_runs(self, ref: str) -> list[CheckRun]:
        """List completed check runs for a commit."""
        data = await self._get_json(
            f"{self._repo_path}/commits/{ref}/check-runs",
            params={"status": "completed", "per_page": PER_PAGE},
        )
        return [CheckRun.model_validate(run) for run in data["check_runs"]]

    async def list_commit_statuses(self, ref: str) -> list[CommitStatus]:
        """List the combined legacy commit statuses for a commit."""
        data = await self._get_json(f"{self._repo_path}/commits/{ref}/status")
        return [CommitStatus.model_validate(status) for status in data["statuses"]]

    async def fetch_pull_request_diff(self, pull_number: int) -> str:
        """Fetch the unified diff of a pull request."""
        response = await self._client.get(
            f"{self._repo_path}/pulls/{pull_number}",
            headers={"Accept": "application/vnd.github.v3.diff"},
        )
        response.raise_for_status()
        return response.text

    async def fetch_pull_request_head_sha(self, pull_number: int) -> str:
        """Fetch the current head commit SHA of a pull request."""
        data = await self._get_json(f"{self._repo_path}/pulls/{pull_number}")
        return PullRequestHead.model_validate(data).head.sha

    async def list_reviews(self, pull_number: int) -> list[PullRequestReview]:
        """List all reviews of a pull request in creation order.

        Follows ``Link: rel="next"`` pagination so the last element really is
        the most recent review.
        """
        reviews: list[PullRequestReview] = []
        url: str | None = f"{self._repo_path}/pulls/{pull_number}/reviews"
        params: dict | None = {"per_page": PER_PAGE}
        while url:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            reviews.extend(
                PullRequestReview.model_validate(review) for review in response.json()
            )
            url = response.links.get("next", {}).get("url")
            # The next link already carries the query string
            params = None
        return reviews

    async def post_review(
        self,
        pull_number: int,
        commit_id: str,
        body: str,
        comments: list[ReviewComment],
        event: Literal["COMMENT", "REQUEST_CHANGES"] = "COMMENT",
    ) -> int:
        """Create a pull request review with inline comments.

        Returns:
            The ID of the created review.
        """
        response = await self._client.post(
            f"{self._repo_path}/pulls/{pull_number}/reviews",
            json={
                "commit_id": commit_id,
                "body": body,
                "event": event,
                "comments": [comment.model_dump() for comment in comments],
            },
        )
        response.raise_for_status()
        review_id = response.json()["id"]
        logger.debug(f"Created review {review_id} on PR #{pull_number}")
        return review_id
