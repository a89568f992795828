"""Claude on Vertex AI model provider."""

import json
import os
import tempfile
from pathlib import Path

from anthropic import AnthropicVertex

from ci_review_insight.ai.base import AIClient

MAX_OUTPUT_TOKENS = 8192


class ClaudeClient(AIClient):
    """Model provider backed by Claude through Vertex AI."""

    def __init__(
        self,
        project_id: str,
        region: str,
        credentials_json: str,
        model: str,
    ) -> None:
        """Initialize the Vertex AI client.

        Args:
            project_id: Google Cloud project ID.
            region: Vertex AI region.
            credentials_json: Path to a service account file, or its raw JSON.
            model: Claude model name.
        """
        if credentials_json.startswith(("/", "./")) or Path(credentials_json).exists():
            os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = credentials_json
        else:
            creds = json.loads(credentials_json)
            with tempfile.NamedTemporaryFile(
                mode="w", suffix=".json", delete=False
            ) as f:
                json.dump(creds, f)
                os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = f.name

        self.client = AnthropicVertex(project_id=project_id, region=region)
        self.model = model

    def analyze(self, prompt: str, system_prompt: str | None = None) -> str:
        """Send the prompt to Claude and join the text blocks of the reply."""
        kwargs = {}
        if system_prompt:
            kwargs["system"] = system_prompt
        response = self.client.messages.create(
            model=self.model,
            max_tokens=MAX_OUTPUT_TOKENS,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
