"""Status text formatting and delivery of review outcomes."""

import os
import uuid
from pathlib import Path

import httpx
from simple_logger.logger import get_logger

from ci_review_insight.models import ModelAnalysis, ReviewOutcome
from ci_review_insight.review import confidence_badge

logger = get_logger(name=__name__, level=os.environ.get("LOG_LEVEL", "INFO"))


def format_no_failures_status() -> str:
    return ":green_circle: No CI failures detected"


def format_skipped_status(fingerprint: str) -> str:
    return (
        ":fast_forward: Skipped - CI failures unchanged since the last review "
        f"(fingerprint {fingerprint})"
    )


def format_error_status(error: BaseException | str) -> str:
    """Status for an analysis that could not be completed."""
    message = str(error) or type(error).__name__
    return f":warning: AI analysis of CI failures could not be completed - {message}"


def format_analysis_status(analysis: ModelAnalysis, posted: bool) -> str:
    """Status for a completed analysis, followed by its summary.

    Args:
        analysis: The validated model analysis.
        posted: Whether the review with inline comments was posted.

    Returns:
        A headline with the confidence badge, a blank line, then the summary.
    """
    badge = confidence_badge(analysis.confidence)
    count = len(analysis.comments)
    confidence = analysis.confidence

    if posted:
        headline = f"{badge} {count} CI failure comment(s) posted (confidence: {confidence})"
    elif count > 0:
        headline = (
            f"{badge} {count} CI failure(s) analyzed but review could not be posted "
            f"(confidence: {confidence})"
        )
    else:
        headline = (
            f"{badge} CI failures analyzed - no code changes identified as the cause "
            f"(confidence: {confidence})"
        )
    return f"{headline}\n\n{analysis.summary}"


def write_action_output(name: str, value: str, output_path: str | None) -> None:
    """Append an output to the GitHub Actions output file.

    Uses the heredoc-style delimiter syntax so multi-line values survive.
    Does nothing when no output file is configured.
    """
    if not output_path:
        logger.debug(f"No GITHUB_OUTPUT configured, not writing output '{name}'")
        return
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    with Path(output_path).open("a", encoding="utf-8") as f:
        f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")


async def send_callback(
    callback_url: str,
    outcome: ReviewOutcome,
    headers: dict[str, str] | None = None,
) -> None:
    """Send a review outcome to a callback webhook.

    Args:
        callback_url: URL to send the outcome to.
        outcome: Outcome to deliver.
        headers: Optional headers to include in the request.
    """
    logger.info(f"Sending callback to {callback_url}")
    async with httpx.AsyncClient() as client:
        response = await client.post(
            callback_url,
            json=outcome.model_dump(mode="json"),
            headers=headers or {},
            timeout=30.0,
        )
        response.raise_for_status()
