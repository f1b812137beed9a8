"""Session state machine coordinating analysis, history and remote storage."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from nutriscan.adapters.image_fetcher import ImageFetcher
from nutriscan.domain.analysis import FoodAnalysis, Language
from nutriscan.domain.errors import AnalysisError, AuthError
from nutriscan.domain.guest import PLACEHOLDER_IMAGE, guest_history
from nutriscan.domain.items import (
    FoodItem,
    decode_data_url,
    is_data_url,
    make_item_id,
    to_data_url,
)
from nutriscan.domain.users import (
    Principal,
    User,
    UserTier,
    guest_user,
    user_from_principal,
)
from nutriscan.services.analysis import AnalysisService, detect_mime_type
from nutriscan.services.auth import (
    AuthAction,
    IdentityProvider,
    Unsubscribe,
    auth_error_message,
)
from nutriscan.services.food_store import FoodStore
from nutriscan.services.history import History

logger = logging.getLogger(__name__)

IMAGE_SCAN_LOCATION = "Your Location"
TEXT_SCAN_LOCATION = "Manual Input"


class View(StrEnum):
    """Views available to a signed-in user."""

    SCAN = "scan"
    HISTORY = "history"
    DETAIL = "detail"
    PRICING = "pricing"


class AuthScreen(StrEnum):
    """Screens shown while nobody is signed in."""

    HOME = "home"
    LOGIN = "login"


@dataclass(frozen=True)
class ImageUpload:
    """Source photo to store alongside a new item."""

    data: bytes
    filename: str
    content_type: str


@dataclass
class SessionController:
    """Owns the active user, history and selection for one app session.

    Local state changes are applied before any remote call is issued and are
    never rolled back when the remote call fails. Nothing is ever persisted for
    the guest user. Results of slow operations started under a previous
    sign-in are discarded.
    """

    analysis_service: AnalysisService
    food_store: FoodStore
    identity_provider: IdentityProvider
    image_fetcher: ImageFetcher
    language: Language = Language.EN
    translate_history_on_language_change: bool = False
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(tz=UTC))

    view: View = View.SCAN
    auth_screen: AuthScreen = AuthScreen.HOME
    user: User | None = None
    history: History = field(default_factory=History)
    auth_loading: bool = True
    is_logging_in: bool = False
    login_error: str | None = None
    is_analyzing: bool = False
    scan_error: str | None = None
    is_translating: bool = False
    pending_delete_id: str | None = None

    _selected_id: str | None = field(default=None, init=False, repr=False)
    _epoch: int = field(default=0, init=False, repr=False)
    _rescans_in_flight: int = field(default=0, init=False, repr=False)
    _tasks: set[asyncio.Task[None]] = field(
        default_factory=set, init=False, repr=False
    )
    _loop: asyncio.AbstractEventLoop | None = field(
        default=None, init=False, repr=False
    )
    _unsubscribe: Unsubscribe | None = field(default=None, init=False, repr=False)

    @property
    def selected_item(self) -> FoodItem | None:
        """The item shown in the detail view, if any."""
        if self._selected_id is None:
            return None
        return self.history.get(self._selected_id)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_rescanning(self) -> bool:
        """True while any rescan is in flight."""
        return self._rescans_in_flight > 0

    # Lifecycle

    async def start(self) -> None:
        """Subscribe to auth changes and apply the restored session."""
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = self.identity_provider.on_auth_change(self._on_auth_change)
        try:
            principal = self.identity_provider.current_principal()
        except Exception:
            logger.exception("Failed to restore auth session")
            principal = None
        await self.handle_auth_change(principal)

    async def stop(self) -> None:
        """Unsubscribe from auth changes and wait for background work."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.drain()

    async def drain(self) -> None:
        """Wait until every background task has finished."""
        await asyncio.sleep(0)
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await asyncio.sleep(0)

    def _on_auth_change(self, principal: Principal | None) -> None:
        # Providers may notify from their own threads.
        if self._loop is None:
            logger.warning("Auth change received before the controller started")
            return
        self._loop.call_soon_threadsafe(
            self._spawn_auth_change,
            principal,
        )

    def _spawn_auth_change(self, principal: Principal | None) -> None:
        self._spawn(self.handle_auth_change(principal))

    async def handle_auth_change(self, principal: Principal | None) -> None:
        """Apply a sign-in change reported by the identity provider."""
        if principal is not None:
            user = user_from_principal(principal)
            self._begin_session(user)
            try:
                items = self.food_store.load_history(user.id)
            except Exception:
                logger.exception("Failed to load history for user %s", user.id)
                items = []
            self.history = History.from_items(items)
        elif self.user is None or not self.user.is_guest:
            # Guest sessions are not managed by the identity provider.
            self._end_session()
        self.auth_loading = False

    def _begin_session(self, user: User) -> None:
        self._epoch += 1
        self.user = user
        self.history = History()
        self._selected_id = None
        self.pending_delete_id = None
        self.login_error = None
        self.scan_error = None
        self.view = View.SCAN
        self.auth_screen = AuthScreen.HOME

    def _end_session(self) -> None:
        self._epoch += 1
        self.user = None
        self.history = History()
        self._selected_id = None
        self.pending_delete_id = None

    # Navigation

    def show_login(self) -> None:
        self.auth_screen = AuthScreen.LOGIN
        self.login_error = None

    def back_to_home(self) -> None:
        self.auth_screen = AuthScreen.HOME

    def navigate(self, view: View) -> None:
        """Switch views; the detail view needs a selection, so it falls back."""
        self._selected_id = None
        self.view = View.HISTORY if view == View.DETAIL else view

    def select_item(self, item_id: str) -> FoodItem | None:
        """Open an item in the detail view."""
        item = self.history.get(item_id)
        if item is None:
            return None
        self._selected_id = item_id
        self.view = View.DETAIL
        return item

    # Authentication

    def sign_in_interactive(self, id_token: str) -> bool:
        return self._sign_in(
            AuthAction.INTERACTIVE,
            lambda: self.identity_provider.sign_in_interactive(id_token),
            save_profile=True,
        )

    def sign_in_with_password(self, email: str, password: str) -> bool:
        return self._sign_in(
            AuthAction.PASSWORD,
            lambda: self.identity_provider.sign_in_with_credentials(email, password),
            save_profile=False,
        )

    def sign_up(self, email: str, password: str) -> bool:
        return self._sign_in(
            AuthAction.SIGN_UP,
            lambda: self.identity_provider.create_account(email, password),
            save_profile=True,
        )

    def _sign_in(
        self,
        action: AuthAction,
        attempt: Callable[[], Principal],
        *,
        save_profile: bool,
    ) -> bool:
        self.is_logging_in = True
        self.login_error = None
        try:
            principal = attempt()
        except AuthError as exc:
            logger.warning("Sign-in via %s failed: %s", action.value, exc.kind.value)
            self.login_error = auth_error_message(exc.kind, action)
            return False
        finally:
            self.is_logging_in = False
        if save_profile:
            try:
                self.food_store.save_profile(principal)
            except Exception:
                logger.exception("Failed to save profile for user %s", principal.uid)
        return True

    def continue_as_guest(self) -> None:
        """Start a local-only session seeded with sample history."""
        self._begin_session(guest_user())
        self.history = History.from_items(guest_history())
        self.auth_loading = False

    def sign_out(self) -> None:
        """Sign out; the provider reports the change back for real users."""
        if self.user is not None and self.user.is_guest:
            self._end_session()
        else:
            try:
                self.identity_provider.sign_out()
            except Exception:
                logger.exception("Sign-out failed")
                return
        self.view = View.SCAN
        self.auth_screen = AuthScreen.HOME

    def upgrade(self, tier: UserTier) -> bool:
        """Switch the active user to another plan."""
        if self.user is None:
            return False
        self.user = self.user.with_tier(tier)
        self.view = View.SCAN
        return True

    # Capture

    async def scan_image(
        self, image_bytes: bytes, filename: str = "photo.jpg"
    ) -> FoodItem | None:
        """Analyze a product photo and add it to history.

        Raises AnalysisError, after recording its message in ``scan_error``.
        Returns None if the session changed while the analysis was running.
        """
        analysis = await self._run_analysis(
            self.analysis_service.analyze_image(image_bytes, self.language)
        )
        if analysis is None:
            return None
        mime_type = detect_mime_type(image_bytes)
        item = self._new_item(
            analysis,
            image=to_data_url(image_bytes, mime_type),
            location=IMAGE_SCAN_LOCATION,
        )
        self.add_item(item, ImageUpload(image_bytes, filename, mime_type))
        return item

    async def scan_text(self, description: str) -> FoodItem | None:
        """Analyze a product description and add it to history."""
        cleaned = description.strip()
        if not cleaned:
            raise ValueError("Description must not be empty")
        analysis = await self._run_analysis(
            self.analysis_service.analyze_text(cleaned, self.language)
        )
        if analysis is None:
            return None
        item = self._new_item(
            analysis, image=PLACEHOLDER_IMAGE, location=TEXT_SCAN_LOCATION
        )
        self.add_item(item)
        return item

    async def _run_analysis(
        self, pending: Awaitable[FoodAnalysis]
    ) -> FoodAnalysis | None:
        epoch = self._epoch
        self.is_analyzing = True
        self.scan_error = None
        try:
            analysis = await pending
        except AnalysisError as exc:
            if epoch == self._epoch:
                self.scan_error = exc.user_message
            raise
        finally:
            self.is_analyzing = False
        if epoch != self._epoch:
            # Started under another sign-in; never add it to this history.
            logger.info("Discarding analysis started in a previous session")
            return None
        return analysis

    def _new_item(self, analysis: FoodAnalysis, *, image: str, location: str) -> FoodItem:
        scanned_at = self.clock()
        return FoodItem(
            id=make_item_id(scanned_at, self.history.ids()),
            image=image,
            analysis=analysis,
            location=location,
            scan_date=scanned_at,
        )

    def add_item(self, item: FoodItem, upload: ImageUpload | None = None) -> None:
        """Show a freshly analyzed item, then store it in the background."""
        self.history.add(item)
        self._selected_id = item.id
        self.view = View.DETAIL
        if self._should_persist():
            self._spawn(self._persist_new_item(self.user.id, item, upload, self._epoch))

    async def _persist_new_item(
        self, user_id: str, item: FoodItem, upload: ImageUpload | None, epoch: int
    ) -> None:
        stored = item
        try:
            if upload is not None:
                url = self.food_store.upload_image(
                    user_id, upload.data, upload.filename, upload.content_type
                )
                stored = item.with_image(url)
            self.food_store.save_item(user_id, stored)
        except Exception:
            logger.exception("Failed to save food item %s to the cloud", item.id)
            return
        if epoch != self._epoch:
            return
        current = self.history.get(item.id)
        if current is not None and current.image != stored.image:
            self.history.replace(current.with_image(stored.image))

    # Delete

    def request_delete(self, item_id: str) -> bool:
        """Ask for confirmation before deleting an item."""
        if item_id not in self.history:
            return False
        self.pending_delete_id = item_id
        return True

    def cancel_delete(self) -> None:
        self.pending_delete_id = None

    def confirm_delete(self) -> FoodItem | None:
        """Delete the pending item locally, then remotely in the background."""
        item_id = self.pending_delete_id
        self.pending_delete_id = None
        if item_id is None:
            return None
        removed = self.history.remove(item_id)
        if self._selected_id == item_id:
            self._selected_id = None
            self.view = View.HISTORY
        if removed is not None and self._should_persist():
            self._spawn(self._delete_remote(self.user.id, item_id))
        return removed

    async def _delete_remote(self, user_id: str, item_id: str) -> None:
        try:
            self.food_store.delete_item(user_id, item_id)
        except Exception:
            logger.exception("Failed to delete food item %s from the cloud", item_id)

    # Rescan and translation

    async def rescan(self, item_id: str) -> FoodItem | None:
        """Re-analyze an item's image in the current language.

        Failures are logged and leave the item untouched.
        """
        item = self.history.get(item_id)
        if item is None:
            return None
        epoch = self._epoch
        self._rescans_in_flight += 1
        try:
            image_bytes = await self._load_image_bytes(item.image)
            analysis = await self.analysis_service.analyze_image(
                image_bytes, self.language
            )
        except Exception:
            logger.exception("Rescan of food item %s failed", item_id)
            return None
        finally:
            self._rescans_in_flight -= 1

        current = self.history.get(item_id)
        if epoch != self._epoch or current is None:
            logger.info("Discarding stale rescan result for %s", item_id)
            return None
        updated = current.with_analysis(analysis)
        self.history.replace(updated)
        if self._should_persist():
            try:
                self.food_store.save_item(self.user.id, updated)
            except Exception:
                logger.exception("Failed to save rescanned item %s", item_id)
        return updated

    async def _load_image_bytes(self, image: str) -> bytes:
        if is_data_url(image):
            return decode_data_url(image)
        return await self.image_fetcher.fetch(image)

    async def change_language(self, language: Language) -> None:
        """Switch the analysis language, optionally translating history."""
        self.language = language
        if not self.translate_history_on_language_change or not len(self.history):
            return
        epoch = self._epoch
        items = self.history.items()
        self.is_translating = True
        try:
            translated = await asyncio.gather(
                *(self.analysis_service.translate(item.analysis, language) for item in items)
            )
        except Exception:
            logger.exception("Translating history to %s failed", language.value)
            return
        finally:
            self.is_translating = False
        if epoch != self._epoch:
            return
        for item, analysis in zip(items, translated, strict=True):
            current = self.history.get(item.id)
            if current is not None:
                self.history.replace(current.with_analysis(analysis))

    # Helpers

    def _should_persist(self) -> bool:
        return self.user is not None and not self.user.is_guest

    def _spawn(self, coro: Coroutine[object, object, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
