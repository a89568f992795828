"""AI client factory and implementations."""

from ci_review_insight.ai.base import AIClient
from ci_review_insight.ai.claude import ClaudeClient
from ci_review_insight.ai.gemini import GeminiClient
from ci_review_insight.config import DEFAULT_CLAUDE_MODEL, DEFAULT_MODEL, Settings


def get_ai_client(config: Settings, model: str | None = None) -> AIClient:
    """Return the client for the configured AI provider.

    Args:
        config: The application settings.
        model: Model name overriding ``config.ai_model``.

    Returns:
        An AI client instance.

    Raises:
        ValueError: If the selected provider is missing its credentials.
    """
    model = model or config.ai_model
    if config.ai_provider == "gemini":
        model = model or DEFAULT_MODEL
        if not config.gemini_api_key:
            raise ValueError("AI_PROVIDER is 'gemini' but GEMINI_API_KEY is not set")
        return GeminiClient(
            api_key=config.gemini_api_key.get_secret_value(), model=model
        )
    if config.ai_provider == "claude":
        model = model or DEFAULT_CLAUDE_MODEL
        if not (config.google_project_id and config.google_credentials_json):
            raise ValueError(
                "AI_PROVIDER is 'claude' but GOOGLE_PROJECT_ID and "
                "GOOGLE_CREDENTIALS_JSON are not both set"
            )
        return ClaudeClient(
            project_id=config.google_project_id,
            region=config.google_region,
            credentials_json=config.google_credentials_json,
            model=model,
        )
    raise ValueError(f"Unknown AI provider: {config.ai_provider!r}")


__all__ = ["AIClient", "ClaudeClient", "GeminiClient", "get_ai_client"]
