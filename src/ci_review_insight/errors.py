"""Exception hierarchy for the review pipeline."""


class ReviewInsightError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(ReviewInsightError):
    """Required input is missing or malformed."""


class ResolutionError(ReviewInsightError):
    """The commit under review could not be determined."""


class AnalysisError(ReviewInsightError):
    """The model output could not be turned into a valid analysis."""


class EmptyResponse(AnalysisError):
    """The model returned no text."""


class UnparseableResponse(AnalysisError):
    """The model output is not JSON, even after repair and fence extraction."""

    def __init__(self, message: str, raw_prefix: str = "") -> None:
        super().__init__(message)
        self.raw_prefix = raw_prefix


class InvalidResponseStructure(AnalysisError):
    """The model output parsed as JSON but does not match the analysis schema."""
