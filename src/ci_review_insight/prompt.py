"""Build the failure analysis prompt."""

import os
from pathlib import Path

from simple_logger.logger import get_logger

from ci_review_insight.config import DEFAULT_DIFF_MAX_CHARS
from ci_review_insight.models import ExternalFailure, FailedJob

logger = get_logger(name=__name__, level=os.environ.get("LOG_LEVEL", "INFO"))

ANALYSIS_PROMPT = """You are an expert CI failure analyst reviewing a pull request.

You will receive the pull request diff, logs of the CI jobs that failed, and
possibly status information from external CI systems whose logs are not
available. Find the code changes in the diff that most likely caused the
failures and suggest how to fix them.

## Output Format

Respond with a single JSON object and nothing else:

{
  "summary": "2-4 sentences describing the failures and their root cause.",
  "comments": [
    {
      "path": "relative/path/to/file.py",
      "line": 42,
      "body": "Markdown comment explaining the problem and the fix."
    }
  ],
  "confidence": "high" | "medium" | "low"
}

## Rules

1. Only comment on lines present in the diff. "path" must be a file from the
   diff and "line" a line number in the new version of that file.
2. Quote the relevant error from the logs and explain how the change caused it.
3. Propose a concrete fix, ideally as a GitHub suggestion block:
   ```suggestion
   corrected code
   ```
4. Keep comments short and specific.
5. If the failure is not caused by the change (flaky test, infrastructure,
   timeout, network), return an empty "comments" array and say so in "summary".
6. Mention external CI failures without logs in the summary, including their
   URL when available. Comment inline only if the cause is evident from the diff.
7. Confidence:
   - "high": clear causal link between the change and the failure
   - "medium": likely link with some ambiguity
   - "low": the failure may be unrelated to the change"""


def truncate_diff(diff: str, max_chars: int = DEFAULT_DIFF_MAX_CHARS) -> str:
    """Keep the head of a diff.

    Args:
        diff: Full unified diff.
        max_chars: Maximum number of diff characters to keep.

    Returns:
        The diff unchanged if short enough, otherwise its first ``max_chars``
        characters followed by a truncation marker.
    """
    if len(diff) <= max_chars:
        return diff
    return diff[:max_chars] + f"\n... [diff truncated, showing first {max_chars} chars] ..."


def load_prompt_instructions(prompt_file: str | None) -> str:
    """Load additional reviewer instructions from a file.

    Returns:
        The file content, or an empty string when no file is configured or
        it does not exist.
    """
    if not prompt_file:
        return ""
    path = Path(prompt_file)
    if not path.exists():
        logger.warning(f"Prompt file {prompt_file} not found, ignoring")
        return ""
    return path.read_text()


def _format_jobs(failed_jobs: list[FailedJob]) -> str:
    if not failed_jobs:
        return "_No GitHub Actions job logs available._"
    return "\n\n".join(
        f'### Failed Job: "{job.name}" (ID: {job.id})\n```\n{job.logs}\n```'
        for job in failed_jobs
    )


def _format_external(external_failures: list[ExternalFailure]) -> str:
    if not external_failures:
        return ""
    entries = "\n\n".join(
        f'### {"Commit Status" if failure.source == "status" else "Check Run"}: "{failure.name}"\n'
        f"- **Description:** {failure.description or 'No description provided'}\n"
        f"- **Logs:** {failure.url or 'No URL available'}"
        for failure in external_failures
    )
    return (
        "## External CI Failures\n\n"
        "These external CI systems also reported failures. Their logs are not "
        "available; only status information and links are included.\n\n"
        f"{entries}"
    )


def build_prompt(
    diff: str,
    failed_jobs: list[FailedJob],
    external_failures: list[ExternalFailure],
    instructions: str = "",
) -> str:
    """Assemble the full analysis prompt.

    Args:
        diff: Pull request diff, already truncated.
        failed_jobs: Failed workflow jobs with their log tails.
        external_failures: Failed check runs and commit statuses.
        instructions: Additional reviewer instructions.

    Returns:
        The prompt text.
    """
    sections = [
        ANALYSIS_PROMPT,
        f"## Pull Request Diff\n\n```diff\n{diff}\n```",
        f"## Failed CI Job Logs\n\n{_format_jobs(failed_jobs)}",
    ]
    external = _format_external(external_failures)
    if external:
        sections.append(external)
    if instructions.strip():
        sections.append(f"## Additional Instructions\n\n{instructions.strip()}")
    sections.append(
        "## Analysis\n\nAnalyze the CI failures above in the context of the diff "
        "and respond with the JSON object described in the output format."
    )
    return "\n\n".join(sections)
