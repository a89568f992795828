"""Collect CI failures for a commit from jobs, check runs and commit statuses."""

import asyncio
import os

import httpx
from simple_logger.logger import get_logger

from ci_review_insight.config import DEFAULT_LOG_MAX_CHARS
from ci_review_insight.github import GitHubClient
from ci_review_insight.models import ExternalFailure, FailedJob, FailureSet

logger = get_logger(name=__name__, level=os.environ.get("LOG_LEVEL", "INFO"))

FAILED_STATUS_STATES = frozenset({"failure", "error"})


def truncate_logs(logs: str, max_chars: int = DEFAULT_LOG_MAX_CHARS) -> str:
    """Keep the tail of a job log.

    Errors usually show up at the end of a log, so the beginning is dropped.

    Args:
        logs: Full log text.
        max_chars: Maximum number of log characters to keep.

    Returns:
        The log unchanged if short enough, otherwise the last ``max_chars``
        characters prefixed with a truncation marker.
    """
    if len(logs) <= max_chars:
        return logs
    return f"... [truncated, showing last {max_chars} chars] ...\n" + logs[-max_chars:]


async def get_failed_jobs(
    github: GitHubClient,
    head_sha: str,
    log_max_chars: int = DEFAULT_LOG_MAX_CHARS,
) -> list[FailedJob]:
    """Collect failed jobs, with their log tails, across all failed runs of a commit.

    A job whose log cannot be downloaded is skipped with a warning.

    Args:
        github: GitHub API client.
        head_sha: Commit to inspect.
        log_max_chars: Maximum log characters kept per job.

    Returns:
        Failed jobs named ``"<run name> / <job name>"``.
    """
    failed_runs = await github.list_failed_workflow_runs(head_sha)

    if not failed_runs:
        logger.info("No failed workflow runs found for this commit")
        return []

    logger.info(
        f"Found {len(failed_runs)} failed workflow run(s): "
        f"{', '.join(run.name for run in failed_runs)}"
    )

    results: list[FailedJob] = []
    for run in failed_runs:
        jobs = await github.list_jobs_for_run(run.id)
        for job in jobs:
            if job.conclusion != "failure":
                continue
            try:
                logs = await github.fetch_job_log(job.id)
            except httpx.HTTPError as e:
                logger.warning(f"Failed to fetch logs for job '{job.name}' ({job.id}): {e}")
                continue
            results.append(
                FailedJob(
                    id=job.id,
                    name=f"{run.name} / {job.name}",
                    conclusion=job.conclusion,
                    logs=truncate_logs(logs, log_max_chars),
                )
            )

    if not results:
        logger.info("No failed jobs found across workflow runs")

    return results


async def get_failed_check_runs(
    github: GitHubClient,
    head_sha: str,
    native_app_slug: str = "github-actions",
) -> list[ExternalFailure]:
    """Collect failed check runs reported by apps other than the native CI runner."""
    check_runs = await github.list_check_runs(head_sha)

    failures: list[ExternalFailure] = []
    for run in check_runs:
        app_slug = run.app.slug if run.app else ""
        if run.conclusion != "failure" or app_slug == native_app_slug:
            continue
        summary = run.output.summary if run.output else None
        failures.append(
            ExternalFailure(
                source="check-run",
                name=run.name,
                description=summary or f"Check run from {app_slug or 'unknown app'}",
                url=run.details_url or "",
            )
        )
    return failures


async def get_failed_commit_statuses(
    github: GitHubClient, head_sha: str
) -> list[ExternalFailure]:
    """Collect commit statuses in the ``failure`` or ``error`` state."""
    statuses = await github.list_commit_statuses(head_sha)
    return [
        ExternalFailure(
            source="status",
            name=status.context,
            description=status.description or "",
            url=status.target_url or "",
        )
        for status in statuses
        if status.state in FAILED_STATUS_STATES
    ]


async def aggregate_failures(
    github: GitHubClient,
    head_sha: str,
    log_max_chars: int = DEFAULT_LOG_MAX_CHARS,
    native_app_slug: str = "github-actions",
) -> FailureSet:
    """Fetch all three failure sources concurrently and merge them.

    Any error listing one of the sources cancels the other fetches and
    propagates; there is no partial result.

    Returns:
        Jobs first, then check runs, then commit statuses.
    """
    try:
        async with asyncio.TaskGroup() as tg:
            jobs_task = tg.create_task(get_failed_jobs(github, head_sha, log_max_chars))
            check_runs_task = tg.create_task(
                get_failed_check_runs(github, head_sha, native_app_slug)
            )
            statuses_task = tg.create_task(get_failed_commit_statuses(github, head_sha))
    except ExceptionGroup as eg:
        # Callers handle the listing error itself, not the group
        raise eg.exceptions[0] from eg

    failure_set = FailureSet(
        jobs=jobs_task.result(),
        external=[*check_runs_task.result(), *statuses_task.result()],
    )
    if failure_set.external:
        logger.info(
            f"Found {len(failure_set.external)} external CI failure(s): "
            f"{', '.join(failure.name for failure in failure_set.external)}"
        )
    return failure_set
