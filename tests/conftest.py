"""Shared test fixtures."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from nutriscan.adapters.image_fetcher import HttpxImageFetcher
from nutriscan.config import Settings
from nutriscan.containers import AppContainer
from nutriscan.domain.analysis import FoodAnalysis
from nutriscan.domain.errors import AuthError
from nutriscan.domain.items import FoodItem
from nutriscan.domain.users import Principal
from nutriscan.services.analysis import (
    AnalysisService,
    GenerationClient,
    GenerationPart,
)
from nutriscan.services.auth import AuthListener, IdentityProvider, Unsubscribe
from nutriscan.services.controller import SessionController
from nutriscan.services.food_store import (
    FoodRepository,
    FoodStore,
    ImageStorage,
    ProfileRepository,
)

BASE_TIME = datetime(2025, 3, 14, 12, 0, tzinfo=UTC)


def analysis_payload(
    product_name: str = "Lemon Soda",
    ingredients: list[tuple[str, str]] | None = None,
) -> dict[str, object]:
    """Build a model response in the camelCase wire format."""
    pairs = ingredients or [
        ("Water", "NEUTRAL"),
        ("Sugar", "POOR"),
        ("Citric Acid", "MODERATE"),
    ]
    return {
        "productName": product_name,
        "price": "N/A",
        "summary": "A sweet soft drink. High in sugar.",
        "ingredients": [
            {"name": name, "rating": rating, "reason": f"{name} explained."}
            for name, rating in pairs
        ],
    }


def make_analysis(product_name: str = "Lemon Soda") -> FoodAnalysis:
    return FoodAnalysis.model_validate(analysis_payload(product_name))


def make_item(
    item_id: str,
    scan_date: datetime = BASE_TIME,
    image: str = "data:image/png;base64,iVBORw0KGgo=",
    product_name: str = "Lemon Soda",
) -> FoodItem:
    return FoodItem(
        id=item_id,
        image=image,
        analysis=make_analysis(product_name),
        location="Test Store",
        scan_date=scan_date,
    )


@dataclass
class FakeGenerationClient(GenerationClient):
    """Generation client replaying scripted results in order.

    Each result is either response text or an exception to raise. When the
    script runs out the last result is repeated.
    """

    results: list[object] = field(
        default_factory=lambda: [json.dumps(analysis_payload())]
    )
    calls: list[dict[str, object]] = field(default_factory=list)

    async def generate(
        self,
        *,
        model: str,
        parts: list[GenerationPart],
        schema: dict[str, object],
    ) -> str:
        self.calls.append({"model": model, "parts": parts, "schema": schema})
        index = min(len(self.calls) - 1, len(self.results) - 1)
        result = self.results[index]
        if isinstance(result, Exception):
            raise result
        return str(result)


@dataclass
class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@dataclass
class InMemoryFoodRepository(FoodRepository):
    """In-memory food document store for tests."""

    documents: dict[str, dict[str, dict[str, object]]] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    fail: bool = False

    def save_item(self, user_id: str, document: dict[str, object]) -> None:
        self.calls.append("save_item")
        if self.fail:
            raise RuntimeError("store unavailable")
        self.documents.setdefault(user_id, {})[str(document["id"])] = document

    def list_items(self, user_id: str) -> list[dict[str, object]]:
        self.calls.append("list_items")
        if self.fail:
            raise RuntimeError("store unavailable")
        documents = list(self.documents.get(user_id, {}).values())
        return sorted(documents, key=lambda doc: str(doc["scanDate"]), reverse=True)

    def delete_item(self, user_id: str, item_id: str) -> None:
        self.calls.append("delete_item")
        if self.fail:
            raise RuntimeError("store unavailable")
        self.documents.get(user_id, {}).pop(item_id, None)


@dataclass
class InMemoryImageStorage(ImageStorage):
    """In-memory blob store for tests."""

    objects: dict[str, bytes] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    fail: bool = False

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        self.calls.append("upload")
        if self.fail:
            raise RuntimeError("upload failed")
        self.objects[path] = data
        return path

    def get_download_url(self, reference: str) -> str:
        self.calls.append("get_download_url")
        return f"https://cdn.example.com/{reference}"


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile store for tests."""

    profiles: dict[str, dict[str, object]] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def save_profile(self, user_id: str, profile: dict[str, object]) -> None:
        self.calls.append("save_profile")
        existing = self.profiles.get(user_id)
        if existing is None:
            self.profiles[user_id] = dict(profile)
            return
        updates = {key: value for key, value in profile.items() if key != "created_at"}
        self.profiles[user_id] = {**existing, **updates}


@dataclass
class FakeIdentityProvider(IdentityProvider):
    """Identity provider that signs in immediately and notifies listeners."""

    principal: Principal = field(
        default_factory=lambda: Principal(
            uid="user-1", display_name="Ada", email="ada@example.com"
        )
    )
    restored: Principal | None = None
    error: AuthError | None = None
    listeners: list[AuthListener] = field(default_factory=list)
    sign_out_calls: int = 0

    def current_principal(self) -> Principal | None:
        return self.restored

    def sign_in_interactive(self, id_token: str) -> Principal:
        return self._sign_in()

    def sign_in_with_credentials(self, email: str, password: str) -> Principal:
        return self._sign_in()

    def create_account(self, email: str, password: str) -> Principal:
        return self._sign_in()

    def sign_out(self) -> None:
        self.sign_out_calls += 1
        self._notify(None)

    def on_auth_change(self, callback: AuthListener) -> Unsubscribe:
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    def _sign_in(self) -> Principal:
        if self.error is not None:
            raise self.error
        self._notify(self.principal)
        return self.principal

    def _notify(self, principal: Principal | None) -> None:
        for listener in list(self.listeners):
            listener(principal)


def mock_fetcher(
    images: dict[str, bytes] | None = None,
) -> HttpxImageFetcher:
    """Image fetcher serving ``images`` by URL and 404 for anything else."""
    served = images or {}

    def handler(request: httpx.Request) -> httpx.Response:
        content = served.get(str(request.url))
        if content is None:
            return httpx.Response(404)
        return httpx.Response(200, content=content)

    return HttpxImageFetcher(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )


@dataclass
class Clock:
    """Deterministic clock advancing one second per call."""

    now: datetime = BASE_TIME

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@dataclass
class ControllerHarness:
    """A controller with handles on all of its fakes."""

    controller: SessionController
    generation_client: FakeGenerationClient
    food_repository: InMemoryFoodRepository
    image_storage: InMemoryImageStorage
    profile_repository: InMemoryProfileRepository
    identity_provider: FakeIdentityProvider

    @property
    def remote_calls(self) -> list[str]:
        return (
            self.food_repository.calls
            + self.image_storage.calls
            + self.profile_repository.calls
        )


def build_harness(
    generation_client: FakeGenerationClient | None = None,
    images: dict[str, bytes] | None = None,
    translate_history_on_language_change: bool = False,
) -> ControllerHarness:
    client = generation_client or FakeGenerationClient()
    food_repository = InMemoryFoodRepository()
    image_storage = InMemoryImageStorage()
    profile_repository = InMemoryProfileRepository()
    identity_provider = FakeIdentityProvider()
    controller = SessionController(
        analysis_service=AnalysisService(
            client=client, model="test-model", sleep=RecordingSleep()
        ),
        food_store=FoodStore(
            food_repository=food_repository,
            image_storage=image_storage,
            profile_repository=profile_repository,
            clock=lambda: BASE_TIME,
        ),
        identity_provider=identity_provider,
        image_fetcher=mock_fetcher(images),
        translate_history_on_language_change=translate_history_on_language_change,
        clock=Clock(),
    )
    return ControllerHarness(
        controller=controller,
        generation_client=client,
        food_repository=food_repository,
        image_storage=image_storage,
        profile_repository=profile_repository,
        identity_provider=identity_provider,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_key="test.service.key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def harness() -> ControllerHarness:
    return build_harness()


@pytest.fixture
def container(harness: ControllerHarness, settings: Settings) -> AppContainer:
    controller = harness.controller

    async def close_resources() -> None:
        await controller.stop()

    return AppContainer(
        settings=settings,
        analysis_service=controller.analysis_service,
        food_store=controller.food_store,
        controller=controller,
        close_resources=close_resources,
    )
