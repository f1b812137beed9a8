"""OpenAI Responses API client for structured analysis output."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from nutriscan.domain.errors import GenerationError, GenerationErrorKind
from nutriscan.domain.items import to_data_url
from nutriscan.services.analysis import GenerationClient, GenerationPart

_HTTP_TOO_MANY_REQUESTS = 429
_HTTP_SERVICE_UNAVAILABLE = 503


@dataclass
class OpenAIGenerationClient(GenerationClient):
    """Generation client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    reasoning_effort: str | None = None
    store: bool = False

    @classmethod
    def create(
        cls, api_key: str, reasoning_effort: str | None = None, store: bool = False
    ) -> "OpenAIGenerationClient":
        """Create an OpenAI generation client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key),
            reasoning_effort=reasoning_effort,
            store=store,
        )

    async def generate(
        self,
        *,
        model: str,
        parts: list[GenerationPart],
        schema: dict[str, object],
    ) -> str:
        """Call OpenAI Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [{"role": "user", "content": [_to_content(part) for part in parts]}],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "food_analysis",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": self.store,
        }
        if self.reasoning_effort:
            request_payload["reasoning"] = {"effort": self.reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.RateLimitError as exc:
            raise GenerationError(
                GenerationErrorKind.RATE_LIMITED, str(exc), _HTTP_TOO_MANY_REQUESTS
            ) from exc
        except openai.APIStatusError as exc:
            raise GenerationError(
                _kind_for_status(exc.status_code), str(exc), exc.status_code
            ) from exc
        except openai.APIError as exc:
            raise GenerationError(GenerationErrorKind.FAILED, str(exc)) from exc
        return response.output_text or ""


def _kind_for_status(status: int) -> GenerationErrorKind:
    if status == _HTTP_TOO_MANY_REQUESTS:
        return GenerationErrorKind.RATE_LIMITED
    if status == _HTTP_SERVICE_UNAVAILABLE:
        return GenerationErrorKind.UNAVAILABLE
    return GenerationErrorKind.FAILED


def _to_content(part: GenerationPart) -> dict[str, object]:
    if part.data is not None:
        return {
            "type": "input_image",
            "image_url": to_data_url(part.data, part.mime_type or "image/jpeg"),
        }
    return {"type": "input_text", "text": part.text or ""}
