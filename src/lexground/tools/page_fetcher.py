"""Page fetching utilities."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from lexground.config import Settings
from lexground.errors import FetchError
from lexground.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FetchedPage:
    """Fetched page payload."""

    url: str
    content: bytes
    content_type: str | None
    encoding: str | None = None

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", errors="ignore")


class PageFetcher:
    """Fetch pages over HTTP with a hard timeout and a response size cap.

    Any transport error, non-2xx status, or oversized body surfaces as
    :class:`FetchError` so that callers can treat it as one failed candidate.
    """

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._settings = settings
        self._max_bytes = settings.max_response_bytes
        self._client = httpx.Client(
            timeout=httpx.Timeout(settings.http_timeout_s),
            headers={
                "User-Agent": settings.http_user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
            follow_redirects=True,
            transport=transport,
        )

    def fetch(self, url: str) -> FetchedPage:
        """Fetch a URL (synchronous)."""

        try:
            with self._client.stream("GET", url) as resp:
                if not resp.is_success:
                    raise FetchError(url, f"HTTP {resp.status_code}")
                chunks: list[bytes] = []
                total = 0
                for chunk in resp.iter_bytes():
                    total += len(chunk)
                    if total > self._max_bytes:
                        raise FetchError(url, f"response exceeds {self._max_bytes} bytes")
                    chunks.append(chunk)
                return FetchedPage(
                    url=str(resp.url),
                    content=b"".join(chunks),
                    content_type=resp.headers.get("content-type"),
                    encoding=resp.charset_encoding,
                )
        except httpx.TimeoutException as e:
            raise FetchError(url, f"timed out after {self._settings.http_timeout_s}s") from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

    async def fetch_async(self, url: str) -> FetchedPage:
        """Async variant of :meth:`fetch`."""

        return await asyncio.to_thread(self.fetch, url)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> PageFetcher:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
