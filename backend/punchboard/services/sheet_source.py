"""
Fetches the published attendance sheet as CSV text.

This is the I/O edge in front of the engine: timeouts, redirects, caching and
the one-time "publish your sheet" hint live here. Any failure yields an empty
blob, which the engine turns into empty/zero artifacts.
"""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from punchboard.core.config import settings
from punchboard.services.csv_parser import decode_blob

logger = logging.getLogger(__name__)

_SETUP_HINT = (
    "Google Sheet is not published to the web yet. Open the sheet, then "
    "File → Share → Publish to web → 'Comma-separated values (.csv)' → Publish, "
    "and set SHEET_CSV_URL to the published link."
)


class StaticSource:
    """Serves a fixed CSV blob (local files, tests)."""

    def __init__(self, text: str) -> None:
        self.text = text

    async def fetch_text(self) -> str:
        return self.text

    async def aclose(self) -> None:
        return None


class SheetSource:
    def __init__(
        self,
        url: str = "",
        timeout: float = 10.0,
        cache_ttl: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.cache_ttl = cache_ttl
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._lock = asyncio.Lock()
        self._cached: tuple[float, str] | None = None
        self._setup_warning_shown = False

    @classmethod
    def from_settings(cls) -> "SheetSource":
        return cls(
            url=settings.SHEET_CSV_URL,
            timeout=settings.SHEET_FETCH_TIMEOUT_SEC,
            cache_ttl=settings.SHEET_CACHE_TTL_SEC,
        )

    async def fetch_text(self) -> str:
        if not self.url:
            logger.debug("SHEET_CSV_URL is not configured; serving empty dataset")
            return ""

        async with self._lock:
            if self._cached is not None:
                fetched_at, text = self._cached
                if time.monotonic() - fetched_at < self.cache_ttl:
                    return text

            text = await self._download()
            if text:
                self._cached = (time.monotonic(), text)
            return text

    async def _download(self) -> str:
        try:
            resp = await self._client.get(self.url)
        except httpx.HTTPError as exc:
            logger.warning("Sheet request failed: %s", exc)
            return ""

        if resp.status_code in (401, 403):
            if not self._setup_warning_shown:
                logger.warning(_SETUP_HINT)
                self._setup_warning_shown = True
            return ""

        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("Sheet request failed: %s", exc)
            return ""

        text = decode_blob(resp.content)
        head = text.lstrip()
        if head.startswith("<") or "<!DOCTYPE" in text[:1024]:
            logger.warning("Received HTML instead of CSV; the sheet may not be published correctly")
            return ""

        logger.info("Fetched %d line(s) from Google Sheet", text.count("\n") + 1)
        return text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
