"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutriscan.adapters.gemini_generation_client import GeminiGenerationClient
from nutriscan.adapters.image_fetcher import HttpxImageFetcher
from nutriscan.adapters.openai_generation_client import OpenAIGenerationClient
from nutriscan.adapters.supabase_food_repository import SupabaseFoodRepository
from nutriscan.adapters.supabase_identity_provider import SupabaseIdentityProvider
from nutriscan.adapters.supabase_image_storage import SupabaseImageStorage
from nutriscan.adapters.supabase_profile_repository import SupabaseProfileRepository
from nutriscan.config import Settings
from nutriscan.services.analysis import AnalysisService, GenerationClient
from nutriscan.services.controller import SessionController
from nutriscan.services.food_store import FoodStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    analysis_service: AnalysisService
    food_store: FoodStore
    controller: SessionController
    close_resources: Callable[[], Awaitable[None]]


def build_generation_client(settings: Settings) -> tuple[GenerationClient, str]:
    """Return the configured generation client and the model it should use."""
    if settings.analysis_provider == "openai":
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required for the openai provider")
        client = OpenAIGenerationClient.create(
            settings.openai_api_key,
            reasoning_effort=settings.openai_reasoning_effort,
            store=settings.openai_store,
        )
        return client, settings.openai_model
    if settings.analysis_provider == "gemini":
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required for the gemini provider")
        return GeminiGenerationClient.create(settings.gemini_api_key), settings.gemini_model
    raise ValueError(f"Unknown analysis provider: {settings.analysis_provider}")


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_key
    )
    generation_client, model = build_generation_client(resolved_settings)
    analysis_service = AnalysisService(
        client=generation_client,
        model=model,
        max_retries=resolved_settings.analysis_max_retries,
        initial_delay_seconds=resolved_settings.analysis_retry_delay_seconds,
    )
    food_store = FoodStore(
        food_repository=SupabaseFoodRepository(supabase_client),
        image_storage=SupabaseImageStorage(
            supabase_client, bucket=resolved_settings.storage_bucket
        ),
        profile_repository=SupabaseProfileRepository(supabase_client),
    )
    image_fetcher = HttpxImageFetcher.create(
        timeout=resolved_settings.image_fetch_timeout_seconds
    )
    controller = SessionController(
        analysis_service=analysis_service,
        food_store=food_store,
        identity_provider=SupabaseIdentityProvider(
            supabase_client, oauth_provider=resolved_settings.oauth_provider
        ),
        image_fetcher=image_fetcher,
        language=resolved_settings.default_language,
        translate_history_on_language_change=(
            resolved_settings.translate_history_on_language_change
        ),
    )

    async def close_resources() -> None:
        await controller.stop()
        await image_fetcher.close()

    return AppContainer(
        settings=resolved_settings,
        analysis_service=analysis_service,
        food_store=food_store,
        controller=controller,
        close_resources=close_resources,
    )
