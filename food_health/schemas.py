"""Request-scoped value objects passed between pipeline stages."""

import base64
from typing import Optional

from pydantic import BaseModel, Field


class RawImageInput(BaseModel):
    data: bytes
    media_type: str

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    @property
    def data_uri(self) -> str:
        return f"data:{self.media_type};base64,{self.b64}"


class DishAnalysis(BaseModel):
    dish_identification: str = ""
    estimated_nutritional_content: str = ""


class ParsedNutrition(BaseModel):
    calories: float = Field(0, ge=0)
    protein: float = Field(0, ge=0)
    carbohydrates: float = Field(0, ge=0)
    sugar: float = Field(0, ge=0)
    fat: float = Field(0, ge=0)


class HealthRating(BaseModel):
    health_score: int = Field(..., ge=1, le=10)
    explanation: str
    # Set only when stated calories contradict protein*4 + carbs*4 + fat*9
    recalculated_calories: Optional[float] = None


class AlternativeItem(BaseModel):
    name: str
    recipe: Optional[str] = None
    price: Optional[str] = None
    image_url: Optional[str] = None


class HealthyAlternatives(BaseModel):
    """
    Suggested alternatives in one of two shapes:
    - structured: cooked_alternatives (with recipes) + packaged_alternatives (with prices)
    - simple: a flat list of food names in `suggestions`
    """

    cooked_alternatives: list[AlternativeItem] = Field(default_factory=list)
    packaged_alternatives: list[AlternativeItem] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.cooked_alternatives or self.packaged_alternatives or self.suggestions)

    def all_items(self) -> list[AlternativeItem]:
        return [*self.cooked_alternatives, *self.packaged_alternatives]


class FullAnalysisResult(BaseModel):
    analysis: DishAnalysis
    parsed_nutrition: ParsedNutrition
    rating: HealthRating
    alternatives: HealthyAlternatives
