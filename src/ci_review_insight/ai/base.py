"""Protocol implemented by model providers."""

from typing import Protocol


class AIClient(Protocol):
    """A language model that turns a prompt into raw response text."""

    model: str

    def analyze(self, prompt: str, system_prompt: str | None = None) -> str:
        """Send a prompt and return the raw response text.

        Args:
            prompt: The full analysis prompt.
            system_prompt: Optional system instructions.

        Returns:
            The model's response text, possibly empty.
        """
        ...
