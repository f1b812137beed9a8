"""Supabase-backed food item repository."""

from dataclasses import dataclass

from supabase import Client

from nutriscan.services.food_store import FoodRepository


@dataclass
class SupabaseFoodRepository(FoodRepository):
    """Stores each food item document in the ``foods`` table, keyed by user."""

    client: Client

    def save_item(self, user_id: str, document: dict[str, object]) -> None:
        """Upsert a food item document."""
        self.client.table("foods").upsert(
            {
                "user_id": user_id,
                "id": document["id"],
                "scan_date": document["scanDate"],
                "data": document,
            },
            on_conflict="user_id,id",
        ).execute()

    def list_items(self, user_id: str) -> list[dict[str, object]]:
        """Return the user's documents, newest scan first."""
        response = (
            self.client.table("foods")
            .select("data")
            .eq("user_id", user_id)
            .order("scan_date", desc=True)
            .execute()
        )
        return [row["data"] for row in response.data or [] if row.get("data")]

    def delete_item(self, user_id: str, item_id: str) -> None:
        """Delete one of the user's documents."""
        self.client.table("foods").delete().eq("user_id", user_id).eq(
            "id", item_id
        ).execute()
