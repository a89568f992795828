"""Gemini model provider."""

from google import genai

from ci_review_insight.ai.base import AIClient
from ci_review_insight.config import DEFAULT_MODEL


class GeminiClient(AIClient):
    """Model provider backed by the Google Gemini API."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL) -> None:
        self.client = genai.Client(api_key=api_key)
        self.model = model

    def analyze(self, prompt: str, system_prompt: str | None = None) -> str:
        """Request a JSON response from Gemini.

        Returns:
            The response text, or an empty string when Gemini returned none.
        """
        config = {"response_mime_type": "application/json"}
        if system_prompt:
            config["system_instruction"] = system_prompt

        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=config,
        )
        return response.text or ""
