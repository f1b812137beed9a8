"""Per-user persistence of scanned food items and their images."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from pydantic import ValidationError

from nutriscan.domain.items import FoodItem
from nutriscan.domain.users import Principal

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.]")


class FoodRepository(Protocol):
    """Document store for a user's food items."""

    def save_item(self, user_id: str, document: dict[str, object]) -> None:
        """Create or overwrite a food item document."""

    def list_items(self, user_id: str) -> list[dict[str, object]]:
        """Return the user's food item documents, newest scan first."""

    def delete_item(self, user_id: str, item_id: str) -> None:
        """Delete a food item document."""


class ImageStorage(Protocol):
    """Blob store for uploaded product photos."""

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Upload bytes and return a reference to the stored object."""

    def get_download_url(self, reference: str) -> str:
        """Return a durable URL for a stored object."""


class ProfileRepository(Protocol):
    """Document store for user profile records."""

    def save_profile(self, user_id: str, profile: dict[str, object]) -> None:
        """Create or merge a user profile record.

        ``created_at`` is only written when the record does not exist yet.
        """


def sanitize_filename(filename: str) -> str:
    """Replace every character outside ``[A-Za-z0-9.]`` with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def image_path(user_id: str, filename: str, uploaded_at: datetime) -> str:
    """Build the storage path for an uploaded image."""
    timestamp_ms = int(uploaded_at.timestamp() * 1000)
    return f"users/{user_id}/{timestamp_ms}_{sanitize_filename(filename)}"


@dataclass
class FoodStore:
    """Application service for remote history persistence."""

    food_repository: FoodRepository
    image_storage: ImageStorage
    profile_repository: ProfileRepository
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(tz=UTC))

    def upload_image(
        self, user_id: str, data: bytes, filename: str, content_type: str
    ) -> str:
        """Upload a product photo and return its durable URL."""
        path = image_path(user_id, filename, self.clock())
        reference = self.image_storage.upload(path, data, content_type)
        return self.image_storage.get_download_url(reference)

    def save_item(self, user_id: str, item: FoodItem) -> None:
        self.food_repository.save_item(user_id, item.to_document())

    def delete_item(self, user_id: str, item_id: str) -> None:
        self.food_repository.delete_item(user_id, item_id)

    def load_history(self, user_id: str) -> list[FoodItem]:
        """Return the user's items, newest first, skipping malformed documents."""
        items: list[FoodItem] = []
        for document in self.food_repository.list_items(user_id):
            try:
                items.append(FoodItem.model_validate(document))
            except ValidationError:
                logger.warning(
                    "Skipping malformed food item %s for user %s",
                    document.get("id"),
                    user_id,
                )
        return items

    def save_profile(self, principal: Principal) -> None:
        """Record the signed-in user's profile, refreshing the login time."""
        now = self.clock().isoformat()
        email = principal.email or ""
        self.profile_repository.save_profile(
            principal.uid,
            {
                "uid": principal.uid,
                "email": principal.email,
                "display_name": principal.display_name
                or (email.split("@")[0] if email else "User"),
                "photo_url": principal.photo_url,
                "created_at": now,
                "last_login": now,
            },
        )
