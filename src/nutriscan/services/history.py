"""In-memory scan history, newest first."""

from collections.abc import Iterable, Iterator

from nutriscan.domain.items import FoodItem


class History:
    """Ordered collection of food items with unique ids.

    Items are kept sorted by ``scan_date`` descending; among equal dates the
    most recently inserted item comes first.
    """

    def __init__(self) -> None:
        self._items: list[FoodItem] = []

    @classmethod
    def from_items(cls, items: Iterable[FoodItem]) -> "History":
        """Build a history, dropping later duplicates of an id."""
        history = cls()
        for item in items:
            if item.id not in history:
                history._insert(item)
        return history

    def add(self, item: FoodItem) -> None:
        """Insert a new item at its position by scan date."""
        if item.id in self:
            raise ValueError(f"Duplicate food item id: {item.id}")
        self._insert(item)

    def replace(self, item: FoodItem) -> bool:
        """Replace the item with the same id in place."""
        for index, existing in enumerate(self._items):
            if existing.id == item.id:
                if existing.scan_date == item.scan_date:
                    self._items[index] = item
                else:
                    del self._items[index]
                    self._insert(item)
                return True
        return False

    def remove(self, item_id: str) -> FoodItem | None:
        """Remove and return the item with the given id, if present."""
        for index, existing in enumerate(self._items):
            if existing.id == item_id:
                return self._items.pop(index)
        return None

    def get(self, item_id: str) -> FoodItem | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def clear(self) -> None:
        self._items.clear()

    def ids(self) -> set[str]:
        return {item.id for item in self._items}

    def items(self) -> list[FoodItem]:
        """Return a snapshot list of the items, newest first."""
        return list(self._items)

    def _insert(self, item: FoodItem) -> None:
        position = len(self._items)
        for index, existing in enumerate(self._items):
            if existing.scan_date <= item.scan_date:
                position = index
                break
        self._items.insert(position, item)

    def __contains__(self, item_id: object) -> bool:
        return any(item.id == item_id for item in self._items)

    def __iter__(self) -> Iterator[FoodItem]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)
