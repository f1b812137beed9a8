"""Models for food analysis results."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class HealthRating(StrEnum):
    """Simple health rating for a single ingredient."""

    GOOD = "GOOD"
    MODERATE = "MODERATE"
    POOR = "POOR"
    NEUTRAL = "NEUTRAL"


class Language(StrEnum):
    """Languages an analysis can be rendered in."""

    EN = "en"
    ES = "es"
    FR = "fr"
    DE = "de"
    IT = "it"
    ZH_TW = "zh-TW"
    ZH_CN = "zh-CN"
    JA = "ja"

    @property
    def display_name(self) -> str:
        """English name of the language, as used in prompts."""
        return LANGUAGE_NAMES[self]


LANGUAGE_NAMES: dict[Language, str] = {
    Language.EN: "English",
    Language.ES: "Spanish",
    Language.FR: "French",
    Language.DE: "German",
    Language.IT: "Italian",
    Language.ZH_TW: "Traditional Chinese",
    Language.ZH_CN: "Simplified Chinese",
    Language.JA: "Japanese",
}


class CamelModel(BaseModel):
    """Immutable model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Ingredient(CamelModel):
    """Single ingredient found on a product label."""

    name: str
    rating: HealthRating
    reason: str


class FoodAnalysis(CamelModel):
    """Structured analysis of a packaged food product."""

    product_name: str = Field(min_length=1)
    price: str
    summary: str
    ingredients: list[Ingredient]
