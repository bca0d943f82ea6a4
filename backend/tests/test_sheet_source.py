"""
Sheet download tests (no network: httpx.MockTransport stands in for Google).

Tests:
  - TestSheetSource : success, caching, error statuses, HTML pages, transport errors
"""

from __future__ import annotations

import logging

import httpx
import pytest

from punchboard.services.sheet_source import SheetSource, StaticSource
from tests.conftest import SAMPLE_CSV

SHEET_URL = "https://docs.google.com/spreadsheets/d/e/test/pub?output=csv"


def _source(handler, cache_ttl: float = 30.0) -> tuple[SheetSource, list[httpx.Request]]:
    calls: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return SheetSource(url=SHEET_URL, cache_ttl=cache_ttl, client=client), calls


class TestSheetSource:
    async def test_fetch_csv(self) -> None:
        source, calls = _source(lambda r: httpx.Response(200, content=SAMPLE_CSV.encode()))
        assert await source.fetch_text() == SAMPLE_CSV
        assert len(calls) == 1
        assert str(calls[0].url) == SHEET_URL

    async def test_bom_is_stripped(self) -> None:
        source, _ = _source(lambda r: httpx.Response(200, content=b"\xef\xbb\xbfEmployee ID,Timestamp\n"))
        assert await source.fetch_text() == "Employee ID,Timestamp\n"

    async def test_cached_within_ttl(self) -> None:
        source, calls = _source(lambda r: httpx.Response(200, content=b"Employee ID,Timestamp\n"))
        await source.fetch_text()
        await source.fetch_text()
        assert len(calls) == 1

    async def test_refetched_when_ttl_is_zero(self) -> None:
        source, calls = _source(
            lambda r: httpx.Response(200, content=b"Employee ID,Timestamp\n"), cache_ttl=0
        )
        await source.fetch_text()
        await source.fetch_text()
        assert len(calls) == 2

    async def test_unpublished_sheet_warns_once(self, caplog: pytest.LogCaptureFixture) -> None:
        source, calls = _source(lambda r: httpx.Response(403))
        with caplog.at_level(logging.WARNING, logger="punchboard.services.sheet_source"):
            assert await source.fetch_text() == ""
            assert await source.fetch_text() == ""
        assert len(calls) == 2
        hints = [r for r in caplog.records if "Publish to web" in r.getMessage()]
        assert len(hints) == 1

    async def test_server_error_gives_empty_blob(self) -> None:
        source, _ = _source(lambda r: httpx.Response(500))
        assert await source.fetch_text() == ""

    async def test_html_page_is_rejected(self) -> None:
        html = b"<!DOCTYPE html><html><body>Sign in</body></html>"
        source, _ = _source(lambda r: httpx.Response(200, content=html))
        assert await source.fetch_text() == ""

    async def test_transport_error_gives_empty_blob(self) -> None:
        def _boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        source, _ = _source(_boom)
        assert await source.fetch_text() == ""

    async def test_failures_are_not_cached(self) -> None:
        responses = iter([httpx.Response(500), httpx.Response(200, content=b"Employee ID,Timestamp\n")])
        source, calls = _source(lambda r: next(responses))
        assert await source.fetch_text() == ""
        assert await source.fetch_text() == "Employee ID,Timestamp\n"
        assert len(calls) == 2

    async def test_no_url_means_no_request(self) -> None:
        source, calls = _source(lambda r: httpx.Response(200, content=b"x"))
        source.url = ""
        assert await source.fetch_text() == ""
        assert calls == []

    async def test_injected_client_is_not_closed(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        source = SheetSource(url=SHEET_URL, client=client)
        await source.aclose()
        assert not client.is_closed
        await client.aclose()

    async def test_static_source(self) -> None:
        source = StaticSource(SAMPLE_CSV)
        assert await source.fetch_text() == SAMPLE_CSV
        await source.aclose()
