"""Models for scanned food items."""

import base64
import binascii
from datetime import datetime

from pydantic import AwareDatetime

from nutriscan.domain.analysis import CamelModel, FoodAnalysis

DATA_URL_PREFIX = "data:"


class FoodItem(CamelModel):
    """A scanned product with its analysis, as kept in history."""

    id: str
    image: str
    analysis: FoodAnalysis
    location: str
    scan_date: AwareDatetime

    @property
    def has_inline_image(self) -> bool:
        """Return True if the image is embedded as a data URL."""
        return is_data_url(self.image)

    def with_analysis(self, analysis: FoodAnalysis) -> "FoodItem":
        """Return a copy with the analysis replaced."""
        return self.model_copy(update={"analysis": analysis})

    def with_image(self, image: str) -> "FoodItem":
        """Return a copy pointing at a different image."""
        return self.model_copy(update={"image": image})

    def to_document(self) -> dict[str, object]:
        """Serialize to the camelCase document stored per user."""
        return self.model_dump(mode="json", by_alias=True)


def is_data_url(value: str) -> bool:
    """Return True for inline ``data:`` URLs."""
    return value.startswith(DATA_URL_PREFIX)


def to_data_url(data: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 data URL."""
    encoded = base64.b64encode(data).decode("utf-8")
    return f"{DATA_URL_PREFIX}{mime_type};base64,{encoded}"


def decode_data_url(value: str) -> bytes:
    """Decode the payload of a base64 data URL."""
    header, sep, payload = value.partition(",")
    if not sep or not header.startswith(DATA_URL_PREFIX):
        raise ValueError("Not a data URL")
    if not header.endswith(";base64"):
        raise ValueError("Only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError("Invalid base64 payload in data URL") from exc


def make_item_id(scan_date: datetime, existing: set[str]) -> str:
    """Derive a unique item id from the scan time."""
    base = scan_date.isoformat()
    candidate = base
    suffix = 1
    while candidate in existing:
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate
