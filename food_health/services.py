"""Model-backed pipeline stages: dish analysis, health rating, alternatives."""

import logging
import math
from typing import Any, Callable, Dict, Optional, Protocol

from food_health.config import (
    ALTERNATIVES_COUNT,
    ALTERNATIVES_MODE,
    CALORIE_TOLERANCE,
    GPT_MODEL,
    PRICE_CURRENCY,
    RATING_MODEL,
    SUGGEST_MODEL,
)
from food_health.image_sources import ImageResolver, build_image_resolver
from food_health.nutrition_parser import recalculate_calories
from food_health.openai_client import get_openai_client
from food_health.prompts import (
    ALTERNATIVES_PROMPT,
    ANALYZE_PROMPT,
    CALORIE_CONTRADICTION_NOTE,
    RATING_PROMPT,
    SIMPLE_ALTERNATIVES_PROMPT,
)
from food_health.schemas import (
    AlternativeItem,
    DishAnalysis,
    HealthRating,
    HealthyAlternatives,
    ParsedNutrition,
    RawImageInput,
)
from food_health.utils import extract_json

logger = logging.getLogger(__name__)

ALTERNATIVES_MODES = ("structured", "simple")


class Analyzer(Protocol):
    async def analyze(self, image: RawImageInput) -> Optional[DishAnalysis]:
        ...


class Rater(Protocol):
    async def rate(self, food_name: str, nutrition: ParsedNutrition) -> Optional[HealthRating]:
        ...


class Suggester(Protocol):
    async def suggest(self, identified_food: str) -> Optional[HealthyAlternatives]:
        ...


async def _complete_json(
    client, model: str, messages: list, max_tokens: int = 800
) -> Optional[Dict[str, Any]]:
    """
    Run one chat completion and decode its JSON object.

    Returns None when the model produced no usable JSON. Provider errors
    (openai.APIError) are not caught.
    """
    response = await client.chat.completions.create(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=0,
        response_format={"type": "json_object"},
    )
    text = ""
    if response.choices:
        text = response.choices[0].message.content or ""
    logger.info("Model %s raw response: %s", model, text)

    if not text.strip():
        logger.warning("Model %s returned an empty response", model)
        return None
    try:
        return extract_json(text)
    except ValueError as e:
        logger.warning("Model %s returned undecodable JSON: %s", model, e)
        return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        # {"calories": 650, "protein": "25g"} -> "calories: 650, protein: 25g"
        return ", ".join(f"{key}: {val}" for key, val in value.items())
    return str(value).strip()


def _format_number(value: float) -> str:
    return f"{value:g}"


class OpenAIImageAnalyzer:
    """Identify the dish on a photo and describe its nutrition in text."""

    def __init__(self, client_factory: Callable = get_openai_client, model: str = GPT_MODEL):
        self._client_factory = client_factory
        self.model = model

    async def analyze(self, image: RawImageInput) -> Optional[DishAnalysis]:
        logger.info(
            "Analyzing image with content_type=%s, size=%.1fkb, model_used=%s",
            image.media_type,
            len(image.data) / 1024,
            self.model,
        )
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": ANALYZE_PROMPT},
                    {"type": "image_url", "image_url": {"url": image.data_uri}},
                ],
            }
        ]
        data = await _complete_json(self._client_factory(), self.model, messages)
        if data is None:
            return None

        return DishAnalysis(
            dish_identification=_as_text(data.get("dish_identification")),
            estimated_nutritional_content=_as_text(data.get("estimated_nutritional_content")),
        )


class OpenAIHealthRater:
    """
    Score a dish from 1 (very unhealthy) to 10 (very healthy).

    Calorie consistency is checked here, not by the model: when the stated
    calories contradict the macronutrients the model is told so, and
    recalculated_calories is set from the macro estimate. A value the model
    invents without a contradiction is discarded.
    """

    def __init__(
        self,
        client_factory: Callable = get_openai_client,
        model: str = RATING_MODEL,
        calorie_tolerance: float = CALORIE_TOLERANCE,
    ):
        self._client_factory = client_factory
        self.model = model
        self.calorie_tolerance = calorie_tolerance

    async def rate(self, food_name: str, nutrition: ParsedNutrition) -> Optional[HealthRating]:
        recalculated = recalculate_calories(nutrition, self.calorie_tolerance)
        values = {key: _format_number(val) for key, val in nutrition.model_dump().items()}

        calorie_note = ""
        if recalculated is not None:
            logger.info(
                "Calories %s contradict macronutrients, recalculated to %s",
                values["calories"],
                _format_number(recalculated),
            )
            calorie_note = CALORIE_CONTRADICTION_NOTE.format(
                calories=values["calories"], recalculated=_format_number(recalculated)
            )

        prompt = RATING_PROMPT.format(food_name=food_name, calorie_note=calorie_note, **values)
        data = await _complete_json(
            self._client_factory(), self.model, [{"role": "user", "content": prompt}]
        )
        if data is None:
            return None

        try:
            raw_score = float(data.get("health_score"))
        except (TypeError, ValueError):
            raw_score = math.nan
        if not math.isfinite(raw_score):
            logger.warning("Rating response has no numeric health_score: %s", data)
            return None
        # Halves round up: 6.5 -> 7
        score = min(10, max(1, math.floor(raw_score + 0.5)))
        if score != raw_score:
            logger.info("Health score %s adjusted to %s", raw_score, score)

        if data.get("recalculated_calories") is not None and recalculated is None:
            logger.info(
                "Ignoring model recalculated_calories=%s, stated calories are consistent",
                data.get("recalculated_calories"),
            )

        return HealthRating(
            health_score=score,
            explanation=_as_text(data.get("explanation")),
            recalculated_calories=recalculated,
        )


def _alternative_item(entry: Any) -> Optional[AlternativeItem]:
    if isinstance(entry, str):
        return AlternativeItem(name=entry.strip()) if entry.strip() else None
    if not isinstance(entry, dict):
        return None

    name = _as_text(entry.get("name"))
    if not name:
        return None
    return AlternativeItem(
        name=name,
        recipe=_as_text(entry.get("recipe")) or None,
        price=_as_text(entry.get("price")) or None,
        image_url=_as_text(entry.get("image_url")) or None,
    )


def _alternative_items(entries: Any) -> list[AlternativeItem]:
    items = [_alternative_item(entry) for entry in entries or []]
    return [item for item in items if item is not None]


class OpenAIAlternativesSuggester:
    """
    Suggest healthier alternatives for a dish.

    Modes:
    - "structured": cooked alternatives with recipes and packaged alternatives
      with prices; every item gets an image_url from the image resolver
    - "simple": flat list of food names
    """

    def __init__(
        self,
        client_factory: Callable = get_openai_client,
        model: str = SUGGEST_MODEL,
        mode: str = ALTERNATIVES_MODE,
        count: int = ALTERNATIVES_COUNT,
        currency: str = PRICE_CURRENCY,
        image_resolver: Optional[ImageResolver] = None,
    ):
        if mode not in ALTERNATIVES_MODES:
            raise ValueError(f"Unknown ALTERNATIVES_MODE: {mode!r}")
        self._client_factory = client_factory
        self.model = model
        self.mode = mode
        self.count = count
        self.currency = currency
        self.image_resolver = image_resolver or build_image_resolver()

    async def suggest(self, identified_food: str) -> Optional[HealthyAlternatives]:
        if self.mode == "simple":
            prompt = SIMPLE_ALTERNATIVES_PROMPT.format(
                identified_food=identified_food, count=self.count
            )
        else:
            prompt = ALTERNATIVES_PROMPT.format(
                identified_food=identified_food, count=self.count, currency=self.currency
            )

        data = await _complete_json(
            self._client_factory(), self.model, [{"role": "user", "content": prompt}]
        )
        if data is None:
            return None

        if self.mode == "simple":
            suggestions = [_as_text(item) for item in data.get("suggestions") or []]
            return HealthyAlternatives(suggestions=[item for item in suggestions if item])

        alternatives = HealthyAlternatives(
            cooked_alternatives=_alternative_items(data.get("cooked_alternatives")),
            packaged_alternatives=_alternative_items(data.get("packaged_alternatives")),
        )
        await self.image_resolver.attach_images(alternatives.all_items())
        logger.info(
            "Suggested %s cooked and %s packaged alternatives for %r",
            len(alternatives.cooked_alternatives),
            len(alternatives.packaged_alternatives),
            identified_food,
        )
        return alternatives
