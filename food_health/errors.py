"""Errors raised by the analysis pipeline."""


class FoodAnalysisError(Exception):
    """Base class for failures that abort an analysis request."""


class InputError(FoodAnalysisError):
    """Missing, empty or unreadable image payload."""


class AnalysisError(FoodAnalysisError):
    """Image analyzer returned no dish name or no nutrition text."""


class ParseError(FoodAnalysisError):
    """No nutrient could be extracted from the nutrition text."""

    def __init__(self, message: str, text: str):
        super().__init__(message)
        self.text = text


class AggregationError(FoodAnalysisError):
    """Health rating or alternatives stage returned no result."""


class AnalysisTimeoutError(FoodAnalysisError):
    """The whole analysis did not finish within the configured timeout."""
