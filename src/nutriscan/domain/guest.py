"""Fixed local history shown to guest users."""

from datetime import UTC, datetime

from nutriscan.domain.analysis import FoodAnalysis, HealthRating, Ingredient
from nutriscan.domain.items import FoodItem

PLACEHOLDER_IMAGE = (
    "data:image/svg+xml;base64,PHN2ZyB4bWxucz0iaHR0cDovL3d3dy53My5vcmcvMjAwMC9zdmciIHdp"
    "ZHRoPSI2MDAiIGhlaWdodD0iNDAwIiB2aWV3Qm94PSIwIDAgNjAwIDQwMCI+CiAgPHJlY3Qgd2lkdGg9"
    "IjEwMCUiIGhlaWdodD0iMTAwJSIgZmlsbD0iI2YwZmRmNCIgLz4KICA8dGV4dCB4PSI1MCUiIHk9IjUw"
    "JSIgZG9taW5hbnQtYmFzZWxpbmU9Im1pZGRsZSIgdGV4dC1hbmNob3I9Im1pZGRsZSIgZm9udC1mYW1p"
    "bHk9InNhbnMtc2VyaWYiIGZvbnQtc2l6ZT0iMjQiIGZpbGw9IiMzNzQxNTEiPlRleHQgU2NhbiBSZXN1"
    "bHQ8L3RleHQ+Cjwvc3ZnPg=="
)


def guest_history() -> list[FoodItem]:
    """Return the sample items seeded into a guest session."""
    return [
        FoodItem(
            id="guest-oat-bar",
            image=PLACEHOLDER_IMAGE,
            analysis=FoodAnalysis(
                product_name="Honey Oat Granola Bar",
                price="$1.49",
                summary=(
                    "A convenient snack with whole grains, but high in added "
                    "sugars. Best enjoyed occasionally."
                ),
                ingredients=[
                    Ingredient(
                        name="Whole Grain Oats",
                        rating=HealthRating.GOOD,
                        reason="A good source of fiber and slow-release energy.",
                    ),
                    Ingredient(
                        name="Sugar",
                        rating=HealthRating.POOR,
                        reason="Added sugar contributes empty calories.",
                    ),
                    Ingredient(
                        name="Honey",
                        rating=HealthRating.MODERATE,
                        reason="A natural sweetener that is still mostly sugar.",
                    ),
                    Ingredient(
                        name="Soy Lecithin",
                        rating=HealthRating.NEUTRAL,
                        reason="An emulsifier used in small, harmless amounts.",
                    ),
                ],
            ),
            location="Sample Store",
            scan_date=datetime(2024, 5, 2, 9, 30, tzinfo=UTC),
        ),
        FoodItem(
            id="guest-greek-yogurt",
            image=PLACEHOLDER_IMAGE,
            analysis=FoodAnalysis(
                product_name="Plain Greek Yogurt",
                price="N/A",
                summary=(
                    "A high-protein dairy product with live cultures and no "
                    "added sugar. A healthy everyday choice."
                ),
                ingredients=[
                    Ingredient(
                        name="Cultured Pasteurized Milk",
                        rating=HealthRating.GOOD,
                        reason="Provides protein, calcium and probiotics.",
                    ),
                    Ingredient(
                        name="Live Active Cultures",
                        rating=HealthRating.GOOD,
                        reason="Supports healthy digestion.",
                    ),
                ],
            ),
            location="Sample Store",
            scan_date=datetime(2024, 5, 1, 18, 5, tzinfo=UTC),
        ),
    ]
