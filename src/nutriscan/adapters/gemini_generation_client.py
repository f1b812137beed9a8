"""Google Gemini client for structured analysis output (google-genai SDK)."""

from dataclasses import dataclass

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from nutriscan.domain.errors import GenerationError, GenerationErrorKind
from nutriscan.services.analysis import GenerationClient, GenerationPart


@dataclass
class GeminiGenerationClient(GenerationClient):
    """Generation client backed by the Gemini API."""

    client: genai.Client

    @classmethod
    def create(cls, api_key: str) -> "GeminiGenerationClient":
        """Create a Gemini generation client."""
        return cls(client=genai.Client(api_key=api_key))

    async def generate(
        self,
        *,
        model: str,
        parts: list[GenerationPart],
        schema: dict[str, object],
    ) -> str:
        """Call Gemini with a JSON response schema."""
        config = genai_types.GenerateContentConfig(
            response_mime_type="application/json",
            response_json_schema=schema,
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=[_to_part(part) for part in parts],
                config=config,
            )
        except genai_errors.APIError as exc:
            raise GenerationError(_kind_for_error(exc), str(exc), exc.code) from exc
        return response.text or ""


def _kind_for_error(exc: genai_errors.APIError) -> GenerationErrorKind:
    status = (exc.status or "").upper()
    if exc.code == 429 or status == "RESOURCE_EXHAUSTED":
        return GenerationErrorKind.RATE_LIMITED
    if exc.code == 503 or status == "UNAVAILABLE":
        return GenerationErrorKind.UNAVAILABLE
    return GenerationErrorKind.FAILED


def _to_part(part: GenerationPart) -> genai_types.Part:
    if part.data is not None:
        return genai_types.Part.from_bytes(
            data=part.data, mime_type=part.mime_type or "image/jpeg"
        )
    return genai_types.Part.from_text(text=part.text or "")
