"""GitHub Actions entry point."""

import asyncio
import json
import os
import sys
from pathlib import Path

from pydantic import ValidationError
from simple_logger.logger import get_logger

from ci_review_insight.ai import get_ai_client
from ci_review_insight.analysis import ModelAnalysisClient
from ci_review_insight.analyzer import run_review
from ci_review_insight.config import Settings, get_settings
from ci_review_insight.errors import ConfigurationError, ReviewInsightError
from ci_review_insight.github import GitHubClient
from ci_review_insight.models import PullRequestMetadata, ReviewOutcome, TriggerContext
from ci_review_insight.output import write_action_output

logger = get_logger(name=__name__, level=os.environ.get("LOG_LEVEL", "INFO"))


def parse_pull_request_metadata(raw: str | None) -> PullRequestMetadata:
    """Parse the PR_METADATA JSON input.

    Raises:
        ConfigurationError: The input is missing, not JSON, or has no PR number.
    """
    if not raw:
        raise ConfigurationError("PR_METADATA input is required")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError("Failed to parse PR_METADATA input as JSON") from e
    try:
        return PullRequestMetadata.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid PR_METADATA input: {e}") from e


def load_trigger_context(event_name: str, event_path: str | None) -> TriggerContext:
    """Build the trigger context from the workflow event payload file.

    Only ``workflow_run`` payloads carry a head SHA; other events (schedule,
    workflow_dispatch) leave it unset.

    Raises:
        ConfigurationError: The payload file exists but is not valid JSON.
    """
    if not event_path or not Path(event_path).is_file():
        return TriggerContext(event_name=event_name)

    try:
        payload = json.loads(Path(event_path).read_text())
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Failed to parse event payload {event_path}") from e

    workflow_run = payload.get("workflow_run") if isinstance(payload, dict) else None
    head_sha = workflow_run.get("head_sha") if isinstance(workflow_run, dict) else None
    return TriggerContext(event_name=event_name, head_sha=head_sha or None)


async def run_action(settings: Settings) -> ReviewOutcome:
    """Validate the action inputs, then run the review pipeline.

    Raises:
        ConfigurationError: Inputs are invalid; raised before any network call.
    """
    metadata = parse_pull_request_metadata(settings.pr_metadata)
    trigger = load_trigger_context(settings.github_event_name, settings.github_event_path)
    try:
        ai_client = get_ai_client(settings)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    async with GitHubClient(
        token=settings.github_token.get_secret_value(),
        owner=settings.owner,
        repo=settings.repo,
        api_url=settings.github_api_url,
    ) as github:
        return await run_review(
            github, ModelAnalysisClient(ai_client), settings, metadata.number, trigger
        )


def main() -> None:
    """Entry point for the GitHub Action."""
    try:
        settings = get_settings()
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    try:
        outcome = asyncio.run(run_action(settings))
    except ReviewInsightError as e:
        logger.error(f"CI review failed: {e}")
        write_action_output("status", str(e), settings.github_output)
        sys.exit(1)
    except Exception:
        logger.exception("CI review failed")
        sys.exit(1)

    write_action_output("status", outcome.status, settings.github_output)
    write_action_output("decision", outcome.decision.value, settings.github_output)
    logger.info(f"Review decision: {outcome.decision.value}")


if __name__ == "__main__":
    main()
