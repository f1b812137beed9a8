"""Share links for a scanned item."""

from dataclasses import dataclass
from urllib.parse import quote

from nutriscan.domain.items import FoodItem


@dataclass(frozen=True)
class ShareLinks:
    """Prebuilt social share links."""

    url: str
    text: str
    facebook: str
    twitter: str
    whatsapp: str


def build_share_links(item: FoodItem, share_url: str) -> ShareLinks:
    """Build share links pointing at ``share_url``."""
    text = (
        f"Check out this nutritional analysis for {item.analysis.product_name} "
        "on NutriScan AI!"
    )
    encoded_url = quote(share_url, safe="")
    encoded_text = quote(text, safe="")
    return ShareLinks(
        url=share_url,
        text=text,
        facebook=f"https://www.facebook.com/sharer/sharer.php?u={encoded_url}",
        twitter=f"https://twitter.com/intent/tweet?text={encoded_text}&url={encoded_url}",
        whatsapp=f"https://wa.me/?text={quote(f'{text} {share_url}', safe='')}",
    )
