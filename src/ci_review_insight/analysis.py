"""Send the analysis prompt to the model and validate its JSON answer."""

import asyncio
import json
import os
import re
from typing import Any

from pydantic import ValidationError
from simple_logger.logger import get_logger

from ci_review_insight.ai.base import AIClient
from ci_review_insight.errors import (
    EmptyResponse,
    InvalidResponseStructure,
    UnparseableResponse,
)
from ci_review_insight.models import ModelAnalysis

logger = get_logger(name=__name__, level=os.environ.get("LOG_LEVEL", "INFO"))

RAW_PREFIX_CHARS = 500

# Characters that may legally follow a backslash inside a JSON string
VALID_JSON_ESCAPES = frozenset('"\\/bfnrtu')

_ESCAPE_PATTERN = re.compile(r"\\(.)", re.DOTALL)
_FENCED_BLOCK_PATTERN = re.compile(r"```[\w+-]*\s*(.*?)```", re.DOTALL)


def repair_invalid_escapes(text: str) -> str:
    """Drop the backslash from escape sequences JSON does not allow.

    Models sometimes copy code such as ``\\d`` or ``\\.`` into string values
    verbatim. This is a narrow heuristic, not a general JSON repair: it only
    rewrites ``\\<char>`` pairs whose ``<char>`` is not a legal JSON escape.
    Pairs are scanned left to right, so an escaped backslash (``\\\\``) is
    preserved together with whatever follows it.
    """

    def _replace(match: re.Match) -> str:
        char = match.group(1)
        return match.group(0) if char in VALID_JSON_ESCAPES else char

    return _ESCAPE_PATTERN.sub(_replace, text)


# Distinguishes "not JSON" from a JSON document that decodes to None
_UNPARSED = object()


def _try_parse(text: str) -> Any:
    """Parse JSON, retrying once with escape repair. Returns _UNPARSED on failure."""
    for candidate in (text, repair_invalid_escapes(text)):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return _UNPARSED


def parse_model_response(raw_text: str | None) -> ModelAnalysis:
    """Turn raw model output into a validated analysis.

    Tries the whole text as JSON, then with invalid escapes repaired, then the
    contents of the first fenced code block (with the same repair).

    Args:
        raw_text: Raw text returned by the model.

    Returns:
        The validated analysis.

    Raises:
        EmptyResponse: The text is empty or missing.
        UnparseableResponse: No JSON could be recovered from the text.
        InvalidResponseStructure: The JSON does not match the analysis schema.
    """
    if not raw_text or not raw_text.strip():
        raise EmptyResponse("Model returned an empty response")

    data = _try_parse(raw_text)
    if data is _UNPARSED:
        match = _FENCED_BLOCK_PATTERN.search(raw_text)
        if match:
            data = _try_parse(match.group(1).strip())

    if data is _UNPARSED:
        prefix = raw_text[:RAW_PREFIX_CHARS]
        raise UnparseableResponse(
            f"Failed to parse model response as JSON: {prefix}", raw_prefix=prefix
        )

    try:
        return ModelAnalysis.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseStructure(f"Invalid model response structure: {e}") from e


class ModelAnalysisClient:
    """Runs one analysis request against a model provider.

    No retries are attempted; a single failure is reported to the caller.
    """

    def __init__(self, ai_client: AIClient) -> None:
        self.ai_client = ai_client

    async def analyze(self, prompt: str) -> ModelAnalysis:
        """Send the prompt and return the validated analysis.

        Raises:
            AnalysisError: The response was empty, unparseable or invalid.
        """
        logger.info(f"Sending analysis request (model: {self.ai_client.model})")
        raw_text = await asyncio.to_thread(self.ai_client.analyze, prompt)
        logger.info(f"Received model response ({len(raw_text or '')} chars)")
        return parse_model_response(raw_text)
