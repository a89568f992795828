import os
from typing import NoReturn

import httpx
from fastapi import Depends, FastAPI, HTTPException
from simple_logger.logger import get_logger

from ci_review_insight.ai import get_ai_client
from ci_review_insight.analysis import ModelAnalysisClient
from ci_review_insight.analyzer import run_review
from ci_review_insight.config import Settings, get_settings
from ci_review_insight.errors import ConfigurationError, ResolutionError
from ci_review_insight.github import GitHubClient
from ci_review_insight.models import AnalyzeRequest, ReviewOutcome, TriggerContext
from ci_review_insight.output import send_callback

logger = get_logger(name=__name__, level=os.environ.get("LOG_LEVEL", "INFO"))

app = FastAPI(
    title="CI Review Insight",
    description="Analyzes CI failures of pull requests and posts review comments",
    version="0.1.0",
)


def handle_review_exception(e: Exception, pull_number: int) -> NoReturn:
    """Convert pipeline exceptions to appropriate HTTPExceptions.

    Args:
        e: The exception raised while running the review.
        pull_number: Pull request being reviewed.

    Raises:
        HTTPException: With appropriate status code and detail message.
    """
    if isinstance(e, (ConfigurationError, ValueError)):
        raise HTTPException(status_code=400, detail=str(e))

    if isinstance(e, ResolutionError):
        raise HTTPException(status_code=502, detail=str(e))

    if isinstance(e, httpx.HTTPStatusError):
        if e.response.status_code == 404:
            raise HTTPException(
                status_code=404,
                detail=f"PR #{pull_number} or its CI data was not found on GitHub",
            )
        raise HTTPException(
            status_code=502,
            detail=f"GitHub API error ({e.response.status_code}) while reviewing PR #{pull_number}",
        )

    if isinstance(e, httpx.HTTPError):
        raise HTTPException(
            status_code=502, detail=f"Could not reach GitHub API: {e}"
        )

    raise HTTPException(status_code=500, detail=f"Unexpected error: {e}")


async def deliver_outcome(outcome: ReviewOutcome, settings: Settings) -> None:
    """Deliver a review outcome to the configured callback webhook, if any."""
    if not settings.callback_url:
        return
    try:
        await send_callback(settings.callback_url, outcome, settings.callback_headers)
    except httpx.HTTPError:
        logger.exception("Failed to send callback to %s", settings.callback_url)


@app.post("/analyze", response_model=ReviewOutcome)
async def analyze(
    body: AnalyzeRequest,
    settings: Settings = Depends(get_settings),
) -> ReviewOutcome:
    """Analyze the CI failures of a pull request and post a review."""
    logger.info(f"Analysis request received for PR #{body.pr_number}")
    try:
        ai_client = get_ai_client(settings, model=body.ai_model)
        async with GitHubClient(
            token=settings.github_token.get_secret_value(),
            owner=settings.owner,
            repo=settings.repo,
            api_url=settings.github_api_url,
        ) as github:
            outcome = await run_review(
                github,
                ModelAnalysisClient(ai_client),
                settings,
                body.pr_number,
                TriggerContext(event_name="api", head_sha=body.head_sha),
                review_event=body.review_event,
            )
    except (ConfigurationError, ResolutionError, ValueError, httpx.HTTPError) as e:
        logger.exception(f"Review failed for PR #{body.pr_number}")
        handle_review_exception(e, body.pr_number)

    logger.info(f"Review of PR #{body.pr_number} finished: {outcome.decision.value}")
    await deliver_outcome(outcome, settings)
    return outcome


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}


def run() -> None:
    """Entry point for the CLI."""
    import uvicorn

    reload = os.getenv("DEBUG", "").lower() == "true"
    uvicorn.run(
        "ci_review_insight.main:app", host="0.0.0.0", port=8000, reload=reload
    )
