"""Pydantic models for failures, model output, reviews and GitHub payloads."""

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- GitHub API boundary models ---


class WorkflowRun(BaseModel):
    """A workflow run as returned by the Actions API."""

    id: int = Field(description="Workflow run ID")
    name: str = Field(default="", description="Workflow name")


class WorkflowJob(BaseModel):
    """A job inside a workflow run."""

    id: int = Field(description="Job ID")
    name: str = Field(description="Job name")
    conclusion: str | None = Field(default=None, description="Job conclusion")


class CheckRunApp(BaseModel):
    """The GitHub App that reported a check run."""

    slug: str = Field(default="", description="App slug")


class CheckRunOutput(BaseModel):
    """Output block of a check run."""

    title: str | None = None
    summary: str | None = None


class CheckRun(BaseModel):
    """A check run reported against a commit."""

    name: str = Field(description="Check run name")
    conclusion: str | None = Field(default=None, description="Check run conclusion")
    details_url: str | None = Field(default=None, description="Link to details")
    app: CheckRunApp | None = None
    output: CheckRunOutput | None = None


class CommitStatus(BaseModel):
    """A legacy commit status."""

    context: str = Field(description="Status context label")
    state: str = Field(description="Status state (success, failure, error, pending)")
    description: str | None = None
    target_url: str | None = None


class GitHubUser(BaseModel):
    """Minimal GitHub user reference."""

    login: str


class PullRequestReview(BaseModel):
    """A pull request review."""

    id: int
    body: str | None = None
    user: GitHubUser | None = None
    submitted_at: datetime | None = None


class PullRequestRef(BaseModel):
    """Head or base reference of a pull request."""

    sha: str
    ref: str = ""


class PullRequestHead(BaseModel):
    """The subset of a pull request payload needed to find its head commit."""

    number: int
    head: PullRequestRef


# --- Failure set ---


class FailedJob(BaseModel):
    """A failed job from the native workflow system."""

    model_config = ConfigDict(frozen=True)

    source: Literal["job"] = "job"
    id: int = Field(description="Job ID")
    name: str = Field(description="'<run name> / <job name>'")
    conclusion: str = Field(default="failure", description="Job conclusion")
    logs: str = Field(default="", description="Job log tail")

    @field_validator("conclusion", mode="before")
    @classmethod
    def default_conclusion(cls, value: str | None) -> str:
        return value or "failure"


class ExternalFailure(BaseModel):
    """A failure reported by a CI system outside the native workflow system."""

    model_config = ConfigDict(frozen=True)

    source: Literal["check-run", "status"]
    name: str = Field(description="Check run name or status context")
    description: str = Field(default="", description="Summary text")
    url: str = Field(default="", description="Link to external details")


class FailureSet(BaseModel):
    """All failures collected for one commit, in aggregation order."""

    jobs: list[FailedJob] = Field(default_factory=list)
    external: list[ExternalFailure] = Field(default_factory=list)

    @property
    def items(self) -> list[FailedJob | ExternalFailure]:
        return [*self.jobs, *self.external]

    @property
    def is_empty(self) -> bool:
        return not self.jobs and not self.external

    def __len__(self) -> int:
        return len(self.jobs) + len(self.external)


# --- Model output ---


class ModelComment(BaseModel):
    """An inline comment proposed by the model."""

    path: str = Field(strict=True, description="File path from the diff")
    line: int = Field(strict=True, gt=0, description="Line in the new file version")
    body: str = Field(strict=True, description="Markdown comment body")


class ModelAnalysis(BaseModel):
    """Validated structured output of the model."""

    summary: str = Field(strict=True, min_length=1)
    comments: list[ModelComment]
    confidence: Literal["high", "medium", "low"]


# --- Review ---


class ReviewComment(BaseModel):
    """An inline review comment as posted to GitHub."""

    path: str
    line: int = Field(gt=0)
    side: Literal["RIGHT"] = "RIGHT"
    body: str


class ReviewDecision(StrEnum):
    """Terminal classification of one pipeline invocation."""

    NO_FAILURES = "no-failures"
    SKIPPED_DUPLICATE = "skipped-duplicate"
    POSTED_WITH_COMMENTS = "posted-with-comments"
    ANALYZED_NO_COMMENTS = "analyzed-no-comments"
    POST_FAILED = "post-failed"
    ANALYSIS_FAILED = "analysis-failed"


class ReviewOutcome(BaseModel):
    """Result of one pipeline invocation."""

    decision: ReviewDecision
    status: str = Field(description="Human-readable status text")
    head_sha: str = ""
    fingerprint: str | None = None
    review_id: int | None = None
    analysis: ModelAnalysis | None = None


# --- Invocation context ---


class TriggerContext(BaseModel):
    """What fired the invocation and what its payload carried."""

    event_name: str = ""
    head_sha: str | None = None


class PullRequestMetadata(BaseModel):
    """Pull request metadata handed to the action."""

    number: int = Field(gt=0)
    base: str = ""
    ref: str = ""
    url: str = ""


class AnalyzeRequest(BaseModel):
    """Request payload for the analysis endpoint."""

    pr_number: int = Field(gt=0, description="Pull request number")
    head_sha: str | None = Field(
        default=None,
        description="Commit to analyze (defaults to the pull request head)",
    )
    ai_model: str | None = Field(
        default=None, description="AI model to use (overrides AI_MODEL)"
    )
    review_event: Literal["COMMENT", "REQUEST_CHANGES"] | None = Field(
        default=None, description="Review event type (overrides REVIEW_EVENT)"
    )
