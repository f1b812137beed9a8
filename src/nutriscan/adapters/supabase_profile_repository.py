"""Supabase-backed user profile repository."""

from dataclasses import dataclass

from supabase import Client

from nutriscan.services.food_store import ProfileRepository


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Merges profile records into the ``users`` table."""

    client: Client

    def save_profile(self, user_id: str, profile: dict[str, object]) -> None:
        """Upsert the profile row, keeping the creation time of existing rows."""
        existing = (
            self.client.table("users")
            .select("id")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        row = {**profile, "id": user_id}
        if existing.data:
            row.pop("created_at", None)
        self.client.table("users").upsert(row, on_conflict="id").execute()
