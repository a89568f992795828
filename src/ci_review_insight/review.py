"""Pull request review formatting, posting and fingerprint recovery."""

import os
import re
from typing import Literal

from simple_logger.logger import get_logger

from ci_review_insight.github import GitHubClient
from ci_review_insight.models import ModelAnalysis, ReviewComment

logger = get_logger(name=__name__, level=os.environ.get("LOG_LEVEL", "INFO"))

REVIEW_TITLE = "## CI Failure Analysis"

CONFIDENCE_BADGES = {
    "high": ":green_circle:",
    "medium": ":yellow_circle:",
}


def confidence_badge(confidence: str) -> str:
    """Return the emoji shortcode shown next to a confidence level."""
    return CONFIDENCE_BADGES.get(confidence, ":orange_circle:")


def format_fingerprint_marker(fingerprint: str, marker: str) -> str:
    """Render the hidden HTML comment that stores a fingerprint in a review body."""
    return f"<!-- {marker}:{fingerprint} -->"


def extract_fingerprint(body: str | None, marker: str) -> str | None:
    """Return the fingerprint embedded in a review body, if any."""
    if not body:
        return None
    match = re.search(rf"<!--\s*{re.escape(marker)}:([0-9a-f]+)\s*-->", body)
    return match.group(1) if match else None


def format_review_body(analysis: ModelAnalysis, fingerprint: str, marker: str) -> str:
    """Build the top-level review body, ending with the fingerprint marker."""
    badge = confidence_badge(analysis.confidence)
    return (
        f"{REVIEW_TITLE}\n\n"
        f"{badge} **Confidence:** {analysis.confidence}\n\n"
        f"{analysis.summary}\n\n"
        f"{format_fingerprint_marker(fingerprint, marker)}"
    )


def to_review_comments(analysis: ModelAnalysis) -> list[ReviewComment]:
    """Anchor each model comment to the new side of the diff."""
    return [
        ReviewComment(path=comment.path, line=comment.line, body=comment.body)
        for comment in analysis.comments
    ]


async def find_existing_fingerprint(
    github: GitHubClient,
    pull_number: int,
    bot_login: str,
    marker: str,
) -> str | None:
    """Recover the fingerprint of the last review this tool posted.

    Reviews are listed in creation order, so the last matching review wins.
    Reviews by other users, or without a marker, are ignored.

    Args:
        github: GitHub API client.
        pull_number: Pull request number.
        bot_login: Login of the account that posts the reviews.
        marker: Marker token used in the fingerprint comment.

    Returns:
        The most recent fingerprint, or None.
    """
    reviews = await github.list_reviews(pull_number)

    fingerprint = None
    for review in reviews:
        if review.user is None or review.user.login != bot_login:
            continue
        found = extract_fingerprint(review.body, marker)
        if found:
            fingerprint = found

    logger.debug(f"Existing fingerprint on PR #{pull_number}: {fingerprint}")
    return fingerprint


async def post_review(
    github: GitHubClient,
    pull_number: int,
    head_sha: str,
    body: str,
    comments: list[ReviewComment],
    event: Literal["COMMENT", "REQUEST_CHANGES"],
) -> int:
    """Post a review with inline comments and return its ID."""
    logger.info(
        f"Posting {event} review with {len(comments)} inline comment(s) "
        f"on PR #{pull_number}"
    )
    return await github.post_review(pull_number, head_sha, body, comments, event)
