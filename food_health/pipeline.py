"""
Analysis pipeline:

RawImageInput
  ↓
Step 1: Analyzer  → DishAnalysis (dish name + nutrition text)
  ↓
Step 2: parse_nutrition → ParsedNutrition
  ↓
Step 3: Rater (needs step 2)  ┐ run concurrently,
Step 4: Suggester (needs name) ┘ both must succeed
  ↓
FullAnalysisResult

No retries and no partial results: any failing stage aborts the request.
"""

import asyncio
import logging
import time
from functools import lru_cache
from typing import Any, Awaitable, Dict, Optional

from food_health.config import ANALYSIS_TIMEOUT_S
from food_health.errors import AggregationError, AnalysisError, AnalysisTimeoutError, InputError
from food_health.nutrition_parser import parse_nutrition
from food_health.schemas import FullAnalysisResult, RawImageInput
from food_health.services import (
    Analyzer,
    OpenAIAlternativesSuggester,
    OpenAIHealthRater,
    OpenAIImageAnalyzer,
    Rater,
    Suggester,
)
from food_health.utils import elapsed_ms

logger = logging.getLogger(__name__)


async def _gather_or_cancel(*aws: Awaitable) -> list:
    """Await all; if one fails, cancel the rest before re-raising."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class AnalysisPipeline:
    def __init__(
        self,
        analyzer: Analyzer,
        rater: Rater,
        suggester: Suggester,
        timeout_s: float = ANALYSIS_TIMEOUT_S,
    ):
        self.analyzer = analyzer
        self.rater = rater
        self.suggester = suggester
        self.timeout_s = timeout_s

    async def run(
        self, image: Optional[RawImageInput], timings: Optional[Dict[str, Any]] = None
    ) -> FullAnalysisResult:
        """
        Run all stages for one image.

        If `timings` is given it is filled with per-stage durations in ms.
        Raises InputError, AnalysisError, ParseError, AggregationError,
        AnalysisTimeoutError, or the provider's own error unmodified.
        """
        timings = {} if timings is None else timings
        if not self.timeout_s or self.timeout_s <= 0:
            return await self._run(image, timings)

        try:
            return await asyncio.wait_for(self._run(image, timings), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            logger.error("[PIPELINE] Analysis timed out after %ss", self.timeout_s)
            raise AnalysisTimeoutError(
                f"Analysis did not finish within {self.timeout_s}s"
            ) from None

    async def _run(self, image: Optional[RawImageInput], timings: Dict[str, Any]) -> FullAnalysisResult:
        if image is None or not image.data:
            raise InputError("Image payload is required")

        total_start = time.time()

        # STEP 1: DISH ANALYSIS
        logger.info("[PIPELINE] Step 1: Starting dish analysis")
        step_start = time.time()
        analysis = await self.analyzer.analyze(image)
        timings["analyze_ms"] = elapsed_ms(step_start, time.time())
        if (
            analysis is None
            or not analysis.dish_identification.strip()
            or not analysis.estimated_nutritional_content.strip()
        ):
            logger.error("[PIPELINE] Step 1: Incomplete analysis result: %s", analysis)
            raise AnalysisError("Failed to analyze the food image.")
        logger.info(
            "[PIPELINE] Step 1: Identified %r in %sms",
            analysis.dish_identification,
            timings["analyze_ms"],
        )

        # STEP 2: NUTRITION PARSING
        step_start = time.time()
        parsed = parse_nutrition(analysis.estimated_nutritional_content)
        timings["parse_ms"] = elapsed_ms(step_start, time.time())

        # STEP 3 + 4: RATING AND ALTERNATIVES
        logger.info("[PIPELINE] Step 3/4: Starting health rating and alternatives")
        step_start = time.time()
        rating, alternatives = await _gather_or_cancel(
            self.rater.rate(analysis.dish_identification, parsed),
            self.suggester.suggest(analysis.dish_identification),
        )
        timings["rate_and_suggest_ms"] = elapsed_ms(step_start, time.time())

        if rating is None:
            raise AggregationError("Failed to get health rating.")
        if alternatives is None or alternatives.is_empty():
            raise AggregationError("Failed to get healthy alternatives.")

        timings["total_ms"] = elapsed_ms(total_start, time.time())
        logger.info("[PIPELINE] Analysis timings_ms=%s", timings)

        return FullAnalysisResult(
            analysis=analysis,
            parsed_nutrition=parsed,
            rating=rating,
            alternatives=alternatives,
        )


@lru_cache
def get_default_pipeline() -> AnalysisPipeline:
    return AnalysisPipeline(
        analyzer=OpenAIImageAnalyzer(),
        rater=OpenAIHealthRater(),
        suggester=OpenAIAlternativesSuggester(),
    )


async def perform_analysis(
    image: Optional[RawImageInput], pipeline: Optional[AnalysisPipeline] = None
) -> FullAnalysisResult:
    return await (pipeline or get_default_pipeline()).run(image)
