"""Tests for prompt construction."""

from ci_review_insight.models import ExternalFailure, FailedJob
from ci_review_insight.prompt import (
    ANALYSIS_PROMPT,
    build_prompt,
    load_prompt_instructions,
    truncate_diff,
)

DIFF = "diff --git a/src/app.py b/src/app.py\n+    return user.name"


class TestTruncateDiff:
    """Tests for the truncate_diff function."""

    def test_short_diff_is_unchanged(self) -> None:
        """Test that a short diff is unchanged."""
        assert truncate_diff(DIFF, max_chars=1000) == DIFF

    def test_long_diff_keeps_the_head(self) -> None:
        """Test that a long diff keeps only the head with a notice."""
        diff = "HEAD" + "x" * 500 + "TAIL"
        result = truncate_diff(diff, max_chars=100)
        assert result.startswith("HEAD")
        assert "TAIL" not in result
        assert result.endswith("[diff truncated, showing first 100 chars] ...")
        assert result.split("\n... [diff")[0] == diff[:100]


class TestLoadPromptInstructions:
    """Tests for the load_prompt_instructions function."""

    def test_no_file_configured(self) -> None:
        """Test that no prompt file yields no instructions."""
        assert load_prompt_instructions(None) == ""
        assert load_prompt_instructions("") == ""

    def test_missing_file(self, tmp_path) -> None:
        """Test that a missing prompt file yields no instructions."""
        assert load_prompt_instructions(str(tmp_path / "missing.md")) == ""

    def test_reads_file(self, tmp_path) -> None:
        """Test that the prompt file contents are returned."""
        prompt_file = tmp_path / "review.md"
        prompt_file.write_text("Ignore failures in docs jobs.")
        assert load_prompt_instructions(str(prompt_file)) == "Ignore failures in docs jobs."


class TestBuildPrompt:
    """Tests for the build_prompt function."""

    def test_contains_diff_and_job_logs(self) -> None:
        """Test that the prompt contains the diff and job logs."""
        jobs = [FailedJob(id=101, name="CI / test", logs="AssertionError: boom")]
        prompt = build_prompt(DIFF, jobs, [])

        assert prompt.startswith(ANALYSIS_PROMPT)
        assert f"```diff\n{DIFF}\n```" in prompt
        assert '### Failed Job: "CI / test" (ID: 101)' in prompt
        assert "AssertionError: boom" in prompt
        assert "External CI Failures" not in prompt
        assert "Additional Instructions" not in prompt
        assert prompt.rstrip().endswith("described in the output format.")

    def test_external_failures_only(self, sample_external) -> None:
        """Test that external failures get their own section."""
        prompt = build_prompt(DIFF, [], sample_external)

        assert "_No GitHub Actions job logs available._" in prompt
        assert "## External CI Failures" in prompt
        assert '### Commit Status: "jenkins/e2e"' in prompt
        assert '### Check Run: "packit/rpm-build"' in prompt
        assert "- **Description:** Build #12 failed" in prompt
        assert "- **Logs:** https://packit.example.com/results/5" in prompt

    def test_external_failure_placeholders(self) -> None:
        """Test that missing description and URL use placeholders."""
        failure = ExternalFailure(source="status", name="ci/legacy")
        prompt = build_prompt(DIFF, [], [failure])

        assert "- **Description:** No description provided" in prompt
        assert "- **Logs:** No URL available" in prompt

    def test_sections_in_order(self, sample_jobs, sample_external) -> None:
        """Test that prompt sections appear in order."""
        prompt = build_prompt(DIFF, sample_jobs, sample_external, "Focus on tests.")

        positions = [
            prompt.index(heading)
            for heading in (
                "## Pull Request Diff",
                "## Failed CI Job Logs",
                "## External CI Failures",
                "## Additional Instructions",
                "## Analysis\n",
            )
        ]
        assert positions == sorted(positions)
        assert "Focus on tests." in prompt

    def test_jobs_keep_their_order(self, sample_jobs) -> None:
        """Test that jobs keep their input order."""
        prompt = build_prompt(DIFF, sample_jobs, [])
        assert prompt.index("CI / test") < prompt.index("Lint / ruff") < prompt.index("CI / build")

    def test_blank_instructions_are_omitted(self, sample_jobs) -> None:
        """Test that blank instructions are left out."""
        prompt = build_prompt(DIFF, sample_jobs, [], "  \n ")
        assert "Additional Instructions" not in prompt
