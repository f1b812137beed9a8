"""HTTP download of stored product images."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class ImageFetcher(Protocol):
    """Interface for downloading an image by URL."""

    async def fetch(self, url: str) -> bytes:
        """Download an image and return its bytes."""


@dataclass
class HttpxImageFetcher(ImageFetcher):
    """Image fetcher using httpx."""

    http_client: httpx.AsyncClient
    timeout: float = 20.0

    @classmethod
    def create(cls, timeout: float = 20.0) -> "HttpxImageFetcher":
        """Create an image fetcher with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(), timeout=timeout)

    async def fetch(self, url: str) -> bytes:
        """Download image bytes, raising for non-2xx responses."""
        response = await self.http_client.get(
            url, timeout=self.timeout, follow_redirects=True
        )
        response.raise_for_status()
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
