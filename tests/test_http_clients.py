"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import openai
import pytest
from google.genai import errors as genai_errors

from nutriscan.adapters.gemini_generation_client import GeminiGenerationClient
from nutriscan.adapters.image_fetcher import HttpxImageFetcher
from nutriscan.adapters.openai_generation_client import OpenAIGenerationClient
from nutriscan.domain.errors import GenerationError, GenerationErrorKind
from nutriscan.services.analysis import ANALYSIS_SCHEMA, GenerationPart
from tests.conftest import analysis_payload

PNG_BYTES = b"\x89PNG\r\n\x1a\nrest"
OPENAI_URL = "https://api.openai.com/v1/responses"


class _FakeResponses:
    def __init__(self, error: Exception | None = None) -> None:
        self.last_payload: dict[str, object] | None = None
        self.error = error

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if self.error is not None:
            raise self.error
        return type("Resp", (), {"output_text": json.dumps(analysis_payload())})()


class _FakeOpenAI:
    def __init__(self, error: Exception | None = None) -> None:
        self.responses = _FakeResponses(error)


def _status_error(status: int) -> openai.APIStatusError:
    response = httpx.Response(status, request=httpx.Request("POST", OPENAI_URL))
    if status == 429:
        return openai.RateLimitError("rate limited", response=response, body=None)
    return openai.APIStatusError("status error", response=response, body=None)


def _parts() -> list[GenerationPart]:
    return [GenerationPart.from_image(PNG_BYTES), GenerationPart.from_text("Analyze")]


def test_openai_client_sends_structured_request() -> None:
    fake = _FakeOpenAI()
    client = OpenAIGenerationClient(client=fake, reasoning_effort="low")

    raw = asyncio.run(
        client.generate(model="gpt-5.2", parts=_parts(), schema=ANALYSIS_SCHEMA)
    )

    assert json.loads(raw)["productName"] == "Lemon Soda"
    payload = fake.responses.last_payload
    assert payload is not None
    assert payload["model"] == "gpt-5.2"
    assert payload["store"] is False
    assert payload["reasoning"] == {"effort": "low"}
    text_format = payload["text"]["format"]
    assert text_format["type"] == "json_schema"
    assert text_format["strict"] is True
    assert text_format["schema"] is ANALYSIS_SCHEMA
    image, text = payload["input"][0]["content"]
    assert image["type"] == "input_image"
    assert image["image_url"].startswith("data:image/png;base64,")
    assert text == {"type": "input_text", "text": "Analyze"}


def test_openai_client_omits_reasoning_by_default() -> None:
    fake = _FakeOpenAI()
    client = OpenAIGenerationClient(client=fake)

    asyncio.run(client.generate(model="m", parts=_parts(), schema={}))

    assert "reasoning" not in fake.responses.last_payload


@pytest.mark.parametrize(
    ("error", "kind", "status"),
    [
        (_status_error(429), GenerationErrorKind.RATE_LIMITED, 429),
        (_status_error(503), GenerationErrorKind.UNAVAILABLE, 503),
        (_status_error(400), GenerationErrorKind.FAILED, 400),
        (
            openai.APIConnectionError(request=httpx.Request("POST", OPENAI_URL)),
            GenerationErrorKind.FAILED,
            None,
        ),
    ],
)
def test_openai_client_maps_errors(error, kind, status) -> None:
    client = OpenAIGenerationClient(client=_FakeOpenAI(error))

    with pytest.raises(GenerationError) as excinfo:
        asyncio.run(client.generate(model="m", parts=_parts(), schema={}))

    assert excinfo.value.kind == kind
    assert excinfo.value.status == status


class _FakeGeminiModels:
    def __init__(self, error: Exception | None = None) -> None:
        self.last_call: dict[str, object] | None = None
        self.error = error

    async def generate_content(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_call = kwargs
        if self.error is not None:
            raise self.error
        return type("Resp", (), {"text": json.dumps(analysis_payload())})()


class _FakeGemini:
    def __init__(self, error: Exception | None = None) -> None:
        self.models = _FakeGeminiModels(error)
        self.aio = self


def test_gemini_client_sends_json_schema_config() -> None:
    fake = _FakeGemini()
    client = GeminiGenerationClient(client=fake)

    raw = asyncio.run(
        client.generate(
            model="gemini-2.5-flash", parts=_parts(), schema=ANALYSIS_SCHEMA
        )
    )

    assert json.loads(raw)["productName"] == "Lemon Soda"
    call = fake.models.last_call
    assert call["model"] == "gemini-2.5-flash"
    config = call["config"]
    assert config.response_mime_type == "application/json"
    assert config.response_json_schema == ANALYSIS_SCHEMA
    image, text = call["contents"]
    assert image.inline_data.data == PNG_BYTES
    assert image.inline_data.mime_type == "image/png"
    assert text.text == "Analyze"


@pytest.mark.parametrize(
    ("code", "status", "kind"),
    [
        (429, "RESOURCE_EXHAUSTED", GenerationErrorKind.RATE_LIMITED),
        (503, "UNAVAILABLE", GenerationErrorKind.UNAVAILABLE),
        (400, "INVALID_ARGUMENT", GenerationErrorKind.FAILED),
    ],
)
def test_gemini_client_maps_errors(code, status, kind) -> None:
    error = genai_errors.APIError(
        code, {"error": {"code": code, "message": "failed", "status": status}}
    )
    client = GeminiGenerationClient(client=_FakeGemini(error))

    with pytest.raises(GenerationError) as excinfo:
        asyncio.run(client.generate(model="m", parts=_parts(), schema={}))

    assert excinfo.value.kind == kind
    assert excinfo.value.status == code


def test_image_fetcher_downloads_and_follows_redirects() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old.jpg":
            return httpx.Response(302, headers={"location": "https://cdn.test/new.jpg"})
        return httpx.Response(200, content=b"jpeg")

    fetcher = HttpxImageFetcher(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    assert asyncio.run(fetcher.fetch("https://cdn.test/old.jpg")) == b"jpeg"


def test_image_fetcher_raises_for_missing_image() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    fetcher = HttpxImageFetcher(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(fetcher.fetch("https://cdn.test/missing.jpg"))
