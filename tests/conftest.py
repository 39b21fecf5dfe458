import asyncio
import json
from io import BytesIO
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from food_health.pipeline import AnalysisPipeline
from food_health.schemas import (
    AlternativeItem,
    DishAnalysis,
    HealthRating,
    HealthyAlternatives,
    RawImageInput,
)

PIZZA_NUTRITION = "Calories: 800, Protein: 30g, Carbohydrates: 90g, Sugar: 8g, Fat: 28g"


class FakeAnalyzer:
    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = []

    async def analyze(self, image):
        self.calls.append(image)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


class FakeRater:
    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = []

    async def rate(self, food_name, nutrition):
        self.calls.append((food_name, nutrition))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


class FakeSuggester:
    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = []
        self.cancelled = False

    async def suggest(self, identified_food):
        self.calls.append(identified_food)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error:
            raise self.error
        return self.result


def chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_openai_client(*contents, images=None):
    """Fake AsyncOpenAI: each chat call returns the next content (dicts are JSON-encoded)."""
    responses = [
        chat_response(json.dumps(c) if isinstance(c, dict) else c) for c in contents
    ]
    return SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(side_effect=responses))),
        images=SimpleNamespace(generate=images or AsyncMock()),
    )


@pytest.fixture
def fakes():
    return SimpleNamespace(
        Analyzer=FakeAnalyzer,
        Rater=FakeRater,
        Suggester=FakeSuggester,
        openai_client=make_openai_client,
    )


@pytest.fixture
def image():
    return RawImageInput(data=b"\xff\xd8\xff fake jpeg", media_type="image/jpeg")


@pytest.fixture
def pizza_analysis():
    return DishAnalysis(
        dish_identification="Margherita Pizza",
        estimated_nutritional_content=PIZZA_NUTRITION,
    )


@pytest.fixture
def rating():
    return HealthRating(health_score=4, explanation="High in refined carbs and fat.")


@pytest.fixture
def alternatives():
    return HealthyAlternatives(
        cooked_alternatives=[
            AlternativeItem(
                name="Whole Wheat Veggie Pizza",
                recipe="Top a whole wheat base with vegetables and bake.",
                image_url="https://picsum.photos/seed/1/400/400",
            )
        ],
        packaged_alternatives=[
            AlternativeItem(
                name="Multigrain Crackers",
                price="₹120",
                image_url="https://picsum.photos/seed/2/400/400",
            )
        ],
    )


@pytest.fixture
def make_pipeline(pizza_analysis, rating, alternatives):
    def _make(analyzer=None, rater=None, suggester=None, timeout_s=0):
        return AnalysisPipeline(
            analyzer=analyzer or FakeAnalyzer(pizza_analysis),
            rater=rater or FakeRater(rating),
            suggester=suggester or FakeSuggester(alternatives),
            timeout_s=timeout_s,
        )

    return _make


@pytest.fixture
def jpeg_bytes():
    out = BytesIO()
    Image.new("RGB", (64, 48), color=(200, 120, 40)).save(out, format="JPEG")
    return out.getvalue()
