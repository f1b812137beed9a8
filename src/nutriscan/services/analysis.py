"""Food analysis service using LLMs with structured outputs."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import ValidationError

from nutriscan.domain.analysis import FoodAnalysis, HealthRating, Language
from nutriscan.domain.errors import (
    AnalysisError,
    AnalysisErrorKind,
    AnalysisSource,
    GenerationError,
)

logger = logging.getLogger(__name__)

ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "productName": {
            "type": "string",
            "description": (
                "The full name of the food product. Keep original language, "
                "append translation in parens if different."
            ),
        },
        "price": {
            "type": "string",
            "description": (
                "The price of the product, if visible. E.g., '$4.99'. "
                "If not visible, return 'N/A'."
            ),
        },
        "summary": {
            "type": "string",
            "description": (
                "A 2-3 sentence overall summary of the product's healthiness, "
                "highlighting major pros and cons."
            ),
        },
        "ingredients": {
            "type": "array",
            "description": "A list of ingredients found on the nutrition label.",
            "items": {
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": (
                            "The name of the ingredient. Keep original language, "
                            "append translation in parens if different."
                        ),
                    },
                    "rating": {
                        "type": "string",
                        "enum": [rating.value for rating in HealthRating],
                        "description": "A simple health rating for the ingredient.",
                    },
                    "reason": {
                        "type": "string",
                        "description": (
                            "A brief, one-sentence explanation for the "
                            "ingredient's rating."
                        ),
                    },
                },
                "required": ["name", "rating", "reason"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["productName", "price", "summary", "ingredients"],
    "additionalProperties": False,
}


@dataclass(frozen=True)
class GenerationPart:
    """One input part of a generation request: text or inline image bytes."""

    text: str | None = None
    data: bytes | None = None
    mime_type: str | None = None

    @classmethod
    def from_text(cls, text: str) -> "GenerationPart":
        return cls(text=text)

    @classmethod
    def from_image(cls, data: bytes) -> "GenerationPart":
        return cls(data=data, mime_type=detect_mime_type(data))


class GenerationClient(Protocol):
    """Interface for structured-output LLM generation."""

    async def generate(
        self,
        *,
        model: str,
        parts: list[GenerationPart],
        schema: dict[str, object],
    ) -> str:
        """Return the raw JSON text produced by the model.

        Raises GenerationError for any failed call.
        """


@dataclass
class AnalysisService:
    """Builds analysis prompts, retries transient failures, validates results."""

    client: GenerationClient
    model: str
    max_retries: int = 3
    initial_delay_seconds: float = 2.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    async def analyze_image(
        self, image_bytes: bytes, language: Language = Language.EN
    ) -> FoodAnalysis:
        """Analyze a photo of a product label."""
        parts = [
            GenerationPart.from_image(image_bytes),
            GenerationPart.from_text(_image_prompt(language)),
        ]
        return await self._analyze(parts, AnalysisSource.IMAGE)

    async def analyze_text(
        self, description: str, language: Language = Language.EN
    ) -> FoodAnalysis:
        """Analyze a free-text product description."""
        parts = [GenerationPart.from_text(_text_prompt(description, language))]
        return await self._analyze(parts, AnalysisSource.TEXT)

    async def translate(
        self, analysis: FoodAnalysis, language: Language
    ) -> FoodAnalysis:
        """Re-render an analysis in another language.

        Best effort: any failure returns the input analysis unchanged.
        """
        try:
            raw = await self.client.generate(
                model=self.model,
                parts=[GenerationPart.from_text(_translate_prompt(analysis, language))],
                schema=ANALYSIS_SCHEMA,
            )
            translated = _parse_analysis(raw)
            return _keep_fixed_fields(analysis, translated)
        except Exception:
            logger.exception("Translation to %s failed", language.value)
            return analysis

    async def _analyze(
        self, parts: list[GenerationPart], source: AnalysisSource
    ) -> FoodAnalysis:
        raw = await self._generate_with_retry(parts, source)
        try:
            return _parse_analysis(raw)
        except ValueError as exc:
            logger.error("Invalid %s analysis response: %s", source.value, exc)
            raise AnalysisError(AnalysisErrorKind.UNPROCESSABLE, source) from exc

    async def _generate_with_retry(
        self, parts: list[GenerationPart], source: AnalysisSource
    ) -> str:
        delay = self.initial_delay_seconds
        attempt = 0
        while True:
            try:
                return await self.client.generate(
                    model=self.model, parts=parts, schema=ANALYSIS_SCHEMA
                )
            except GenerationError as exc:
                if not exc.is_transient:
                    logger.error("Model could not process %s: %s", source.value, exc)
                    raise AnalysisError(AnalysisErrorKind.UNPROCESSABLE, source) from exc
                if attempt >= self.max_retries:
                    logger.error(
                        "Model service still busy after %s retries", self.max_retries
                    )
                    raise AnalysisError(AnalysisErrorKind.BUSY, source) from exc
                attempt += 1
                logger.warning(
                    "Model service busy (attempt %s/%s). Retrying in %.1fs",
                    attempt,
                    self.max_retries,
                    delay,
                )
                await self.sleep(delay)
                delay *= 2


def _parse_analysis(raw: str) -> FoodAnalysis:
    """Decode and validate a model response; ValueError on any mismatch."""
    text = raw.strip() if raw else ""
    if not text:
        raise ValueError("Empty response from model")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError("Response is not valid JSON") from exc
    try:
        return FoodAnalysis.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Response does not match schema: {exc}") from exc


def _keep_fixed_fields(original: FoodAnalysis, translated: FoodAnalysis) -> FoodAnalysis:
    """Restore price and ratings, which translation must not touch."""
    if len(translated.ingredients) != len(original.ingredients):
        raise ValueError("Translation changed the number of ingredients")
    ingredients = [
        new.model_copy(update={"rating": old.rating})
        for old, new in zip(original.ingredients, translated.ingredients, strict=True)
    ]
    return translated.model_copy(
        update={"price": original.price, "ingredients": ingredients}
    )


def _translation_rules(language: Language, *, source: str) -> str:
    target = language.display_name
    return (
        f"Translation Rules for {target}:\n"
        f'1. "productName": Keep the original name {source}. If the target '
        f"language ({target}) is different from the original language, "
        "append the translation in parentheses.\n"
        '2. "ingredients.name": Keep the original ingredient name. If the '
        f"target language ({target}) is different, append the translation "
        "in parentheses.\n"
        f'3. "summary" and "ingredients.reason": Translate these FULLY into {target}.'
    )


def _image_prompt(language: Language) -> str:
    return (
        "You are an expert nutritionist. Analyze this image of a food product. "
        "Identify its name, price (if visible), and ingredients from the label. "
        "Provide a health rating for each ingredient and an overall summary.\n\n"
        "IMPORTANT: Respond ONLY with a JSON object that strictly follows the "
        "provided schema.\n\n"
        f"{_translation_rules(language, source='found on the packaging')}\n\n"
        "Do not include markdown or any text outside the JSON object."
    )


def _text_prompt(description: str, language: Language) -> str:
    return (
        "You are an expert nutritionist. Analyze the following text description "
        "of a food product (ingredients list, nutritional info, or name).\n\n"
        f'Text to analyze:\n"{description}"\n\n'
        "Identify its name (if mentioned, otherwise infer or use "
        "'Unknown Product'), price (if mentioned, otherwise 'N/A'), and "
        "ingredients. Provide a health rating for each ingredient and an "
        "overall summary.\n\n"
        "IMPORTANT: Respond ONLY with a JSON object that strictly follows the "
        "provided schema.\n\n"
        f"{_translation_rules(language, source='if evident')}\n\n"
        "Do not include markdown or any text outside the JSON object."
    )


def _translate_prompt(analysis: FoodAnalysis, language: Language) -> str:
    target = language.display_name
    payload = analysis.model_dump_json(by_alias=True)
    return (
        "You are a professional translator for a food nutrition app. "
        f"Translate the following JSON content into {target}.\n\n"
        f"{_translation_rules(language, source='if evident')}\n"
        '4. "price": Keep exactly as is.\n'
        '5. "rating": Keep exactly as is (GOOD, MODERATE, POOR, NEUTRAL).\n\n'
        f"Input JSON:\n{payload}\n\n"
        "Respond ONLY with the valid JSON object matching the schema."
    )


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:4] == b"GIF8":
        return "image/gif"
    return "image/jpeg"
