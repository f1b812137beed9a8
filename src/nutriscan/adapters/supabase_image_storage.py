"""Supabase Storage bucket for product photos."""

from dataclasses import dataclass

from supabase import Client

from nutriscan.services.food_store import ImageStorage


@dataclass
class SupabaseImageStorage(ImageStorage):
    """Uploads images to a Supabase Storage bucket."""

    client: Client
    bucket: str

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Upload bytes to ``path`` and return the path as the reference."""
        self.client.storage.from_(self.bucket).upload(
            path,
            data,
            {"content-type": content_type, "upsert": "true"},
        )
        return path

    def get_download_url(self, reference: str) -> str:
        """Return the public URL of an uploaded object."""
        return self.client.storage.from_(self.bucket).get_public_url(reference)
