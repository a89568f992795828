"""Run the CI failure review pipeline for one pull request."""

import os
from typing import Literal

import httpx
from pydantic import ValidationError
from simple_logger.logger import get_logger

from ci_review_insight.analysis import ModelAnalysisClient
from ci_review_insight.config import Settings
from ci_review_insight.errors import ResolutionError
from ci_review_insight.failures import aggregate_failures
from ci_review_insight.fingerprint import compute_fingerprint
from ci_review_insight.github import GitHubClient
from ci_review_insight.models import ReviewDecision, ReviewOutcome, TriggerContext
from ci_review_insight.output import (
    format_analysis_status,
    format_error_status,
    format_no_failures_status,
    format_skipped_status,
)
from ci_review_insight.prompt import (
    build_prompt,
    load_prompt_instructions,
    truncate_diff,
)
from ci_review_insight.review import (
    find_existing_fingerprint,
    format_review_body,
    post_review,
    to_review_comments,
)

logger = get_logger(name=__name__, level=os.environ.get("LOG_LEVEL", "INFO"))


async def resolve_head_sha(
    github: GitHubClient, pull_number: int, trigger: TriggerContext
) -> str:
    """Determine the commit to analyze.

    A SHA carried by the trigger payload wins, since the pull request may have
    moved on since the triggering run. Otherwise the current head of the pull
    request is fetched.

    Raises:
        ResolutionError: The pull request head could not be fetched.
    """
    if trigger.head_sha:
        logger.info(f"Head SHA from {trigger.event_name or 'trigger'} payload: {trigger.head_sha}")
        return trigger.head_sha

    logger.info("No head SHA in trigger payload, fetching it from the pull request")
    try:
        return await github.fetch_pull_request_head_sha(pull_number)
    except (httpx.HTTPError, ValidationError, KeyError) as e:
        raise ResolutionError(
            f"Could not determine head commit of PR #{pull_number}: {e}"
        ) from e


async def run_review(
    github: GitHubClient,
    model_client: ModelAnalysisClient,
    settings: Settings,
    pull_number: int,
    trigger: TriggerContext,
    review_event: Literal["COMMENT", "REQUEST_CHANGES"] | None = None,
) -> ReviewOutcome:
    """Analyze the CI failures of a pull request and post a review.

    Steps: resolve the head commit, aggregate failures, skip when the failure
    fingerprint matches the last posted review, ask the model for an analysis,
    then post a review with inline comments.

    Args:
        github: GitHub API client.
        model_client: Model analysis client.
        settings: Application settings.
        pull_number: Pull request number.
        trigger: Invocation context.
        review_event: Review event type overriding ``settings.review_event``.

    Returns:
        The outcome; its ``status`` is the text shown to users.

    Raises:
        ResolutionError: The head commit could not be determined.
        httpx.HTTPError: Listing failures, reviews or the diff failed.
    """
    head_sha = await resolve_head_sha(github, pull_number, trigger)
    logger.info(f"Analyzing PR #{pull_number} (commit: {head_sha[:7]})")

    failures = await aggregate_failures(
        github,
        head_sha,
        log_max_chars=settings.log_max_chars,
        native_app_slug=settings.native_ci_app_slug,
    )
    if failures.is_empty:
        logger.info("No failed jobs found. Nothing to review.")
        return ReviewOutcome(
            decision=ReviewDecision.NO_FAILURES,
            status=format_no_failures_status(),
            head_sha=head_sha,
        )
    logger.info(f"Found {len(failures.jobs)} failed job(s), {len(failures)} failure(s) in total")

    fingerprint = compute_fingerprint(head_sha, failures.jobs, failures.external)
    existing = await find_existing_fingerprint(
        github, pull_number, settings.bot_login, settings.fingerprint_marker
    )
    if existing == fingerprint:
        logger.info(f"Failure fingerprint {fingerprint} already reviewed, skipping")
        return ReviewOutcome(
            decision=ReviewDecision.SKIPPED_DUPLICATE,
            status=format_skipped_status(fingerprint),
            head_sha=head_sha,
            fingerprint=fingerprint,
        )

    raw_diff = await github.fetch_pull_request_diff(pull_number)
    diff = truncate_diff(raw_diff, settings.diff_max_chars)
    logger.info(f"PR diff: {len(raw_diff)} chars ({len(diff)} after truncation)")

    prompt = build_prompt(
        diff,
        failures.jobs,
        failures.external,
        load_prompt_instructions(settings.prompt_file),
    )
    logger.info(f"Prompt size: {len(prompt)} chars")

    try:
        analysis = await model_client.analyze(prompt)
    except Exception as e:
        logger.warning(f"AI analysis failed: {e}")
        return ReviewOutcome(
            decision=ReviewDecision.ANALYSIS_FAILED,
            status=format_error_status(e),
            head_sha=head_sha,
            fingerprint=fingerprint,
        )

    logger.info(
        f"AI analysis: {len(analysis.comments)} comment(s), confidence: {analysis.confidence}"
    )

    comments = to_review_comments(analysis)
    if not comments:
        return ReviewOutcome(
            decision=ReviewDecision.ANALYZED_NO_COMMENTS,
            status=format_analysis_status(analysis, posted=False),
            head_sha=head_sha,
            fingerprint=fingerprint,
            analysis=analysis,
        )

    body = format_review_body(analysis, fingerprint, settings.fingerprint_marker)
    try:
        review_id = await post_review(
            github,
            pull_number,
            head_sha,
            body,
            comments,
            review_event or settings.review_event,
        )
    except Exception as e:
        logger.warning(f"Failed to create review with inline comments: {e}")
        return ReviewOutcome(
            decision=ReviewDecision.POST_FAILED,
            status=format_analysis_status(analysis, posted=False),
            head_sha=head_sha,
            fingerprint=fingerprint,
            analysis=analysis,
        )

    logger.info(f"Posted review #{review_id} with {len(comments)} inline comment(s)")
    return ReviewOutcome(
        decision=ReviewDecision.POSTED_WITH_COMMENTS,
        status=format_analysis_status(analysis, posted=True),
        head_sha=head_sha,
        fingerprint=fingerprint,
        review_id=review_id,
        analysis=analysis,
    )
