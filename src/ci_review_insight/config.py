"""Configuration settings from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5"
DEFAULT_LOG_MAX_CHARS = 30_000
DEFAULT_DIFF_MAX_CHARS = 50_000


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # GitHub configuration
    github_token: SecretStr
    github_repository: str
    github_api_url: str = "https://api.github.com"

    # AI provider configuration
    ai_provider: Literal["gemini", "claude"] = "gemini"
    # Falls back to the provider default when unset
    ai_model: str | None = None
    gemini_api_key: SecretStr | None = None

    # Claude on Vertex AI (optional)
    google_project_id: str | None = None
    google_region: str = "us-east5"
    google_credentials_json: str | None = None

    # Review behaviour
    review_event: Literal["COMMENT", "REQUEST_CHANGES"] = "COMMENT"
    log_max_chars: int = Field(default=DEFAULT_LOG_MAX_CHARS, gt=0)
    diff_max_chars: int = Field(default=DEFAULT_DIFF_MAX_CHARS, gt=0)
    bot_login: str = "github-actions[bot]"
    fingerprint_marker: str = Field(
        default="ci-review-insight-fingerprint", pattern=r"^[A-Za-z0-9_.-]+$"
    )
    native_ci_app_slug: str = "github-actions"

    # Additional reviewer instructions appended to the prompt
    prompt_file: str | None = None

    # Optional outcome delivery
    callback_url: str | None = None
    callback_headers: dict[str, str] | None = None

    # GitHub Actions runtime context
    pr_metadata: str | None = None
    github_event_name: str = ""
    github_event_path: str | None = None
    github_output: str | None = None

    @field_validator("github_repository")
    @classmethod
    def check_repository_format(cls, value: str) -> str:
        owner, _, repo = value.partition("/")
        if not owner or not repo or "/" in repo:
            raise ValueError(
                f"GITHUB_REPOSITORY must be in 'owner/repo' format, got: {value!r}"
            )
        return value

    @property
    def owner(self) -> str:
        """Repository owner part of GITHUB_REPOSITORY."""
        return self.github_repository.split("/", 1)[0]

    @property
    def repo(self) -> str:
        """Repository name part of GITHUB_REPOSITORY."""
        return self.github_repository.split("/", 1)[1]


@lru_cache
def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
