"""
Tests for the Fathom API loader.

Requests are served by ``httpx.MockTransport``; sleeps are captured by an
``AsyncMock`` so pagination delays run instantly.
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from app.core.exceptions import FathomAPIError
from app.ingestion.loaders.fathom_loader import FathomLoader, _is_retryable


BASE_URL = "https://api.fathom.test/external/v1"


def make_loader(handler, sleep=None):
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return FathomLoader(client=client, sleep=sleep or AsyncMock())


def paged_handler(pages, seen):
    """Serve ``pages`` in order, keyed by the cursor each page returns."""
    by_cursor = {None: pages[0]}
    for index, page in enumerate(pages[:-1]):
        by_cursor[page["next_cursor"]] = pages[index + 1]

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=by_cursor[request.url.params.get("cursor")])

    return handler


class TestIsRetryable:

    def _status_error(self, code):
        request = httpx.Request("GET", BASE_URL)
        response = httpx.Response(code, request=request)
        return httpx.HTTPStatusError("boom", request=request, response=response)

    @pytest.mark.parametrize("code", [429, 500, 502, 503, 504])
    def test_retryable_statuses(self, code):
        assert _is_retryable(self._status_error(code))

    @pytest.mark.parametrize("code", [400, 401, 404])
    def test_client_errors_not_retried(self, code):
        assert not _is_retryable(self._status_error(code))

    def test_transport_errors_retried(self):
        assert _is_retryable(httpx.ConnectError("down"))

    def test_other_errors_not_retried(self):
        assert not _is_retryable(ValueError("x"))


class TestListMeetings:

    @pytest.mark.asyncio
    async def test_sends_key_and_params(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"items": [{"id": 1}], "next_cursor": "abc"})

        loader = make_loader(handler)
        page = await loader.list_meetings(
            cursor="c1",
            created_after="2025-03-01T00:00:00Z",
            filters={"calendar_invitees_domains[]": "acme.com"},
        )
        await loader.close()

        assert page == {"items": [{"id": 1}], "next_cursor": "abc"}
        request = seen[0]
        assert request.url.path == "/external/v1/meetings"
        assert request.headers["X-Api-Key"] == loader.api_key
        assert request.url.params["include_transcript"] == "true"
        assert request.url.params["cursor"] == "c1"
        assert request.url.params["created_after"] == "2025-03-01T00:00:00Z"
        assert request.url.params["calendar_invitees_domains[]"] == "acme.com"

    @pytest.mark.asyncio
    async def test_missing_items_normalized(self):
        loader = make_loader(lambda request: httpx.Response(200, json={}))
        page = await loader.list_meetings()
        assert page == {"items": [], "next_cursor": None}

    @pytest.mark.asyncio
    async def test_client_error_raises_fathom_error(self):
        loader = make_loader(lambda request: httpx.Response(401, json={"error": "bad key"}))

        with pytest.raises(FathomAPIError) as exc_info:
            await loader.list_meetings()

        assert exc_info.value.upstream_status == 401
        assert exc_info.value.code == "FATHOM_API_ERROR"
        assert "bad key" in exc_info.value.message


class TestFetchAllMeetings:

    @pytest.mark.asyncio
    async def test_follows_cursor_until_exhausted(self):
        pages = [
            {"items": [{"id": 1}, {"id": 2}], "next_cursor": "p2"},
            {"items": [{"id": 3}], "next_cursor": "p3"},
            {"items": [{"id": 4}], "next_cursor": None},
        ]
        seen = []
        sleep = AsyncMock()
        loader = make_loader(paged_handler(pages, seen), sleep=sleep)

        meetings = await loader.fetch_all_meetings(created_after="2025-03-01T00:00:00Z")

        assert [m["id"] for m in meetings] == [1, 2, 3, 4]
        assert len(seen) == 3
        assert all(r.url.params["created_after"] == "2025-03-01T00:00:00Z" for r in seen)
        # Delay between pages, none after the last
        assert sleep.await_count == 2
        sleep.assert_awaited_with(loader.request_delay)

    @pytest.mark.asyncio
    async def test_stops_on_empty_page(self):
        pages = [
            {"items": [{"id": 1}], "next_cursor": "p2"},
            {"items": [], "next_cursor": "p3"},
            {"items": [{"id": 99}], "next_cursor": None},
        ]
        seen = []
        loader = make_loader(paged_handler(pages, seen))

        meetings = await loader.fetch_all_meetings()

        assert [m["id"] for m in meetings] == [1]
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_pauses_when_request_budget_spent(self):
        pages = [{"items": [{"id": i}], "next_cursor": f"p{i + 1}"} for i in range(3)]
        pages.append({"items": [{"id": 3}], "next_cursor": None})
        seen = []
        sleep = AsyncMock()
        loader = make_loader(paged_handler(pages, seen), sleep=sleep)
        loader.max_requests_per_minute = 2

        meetings = await loader.fetch_all_meetings()

        assert len(meetings) == 4
        waits = [call.args[0] for call in sleep.await_args_list]
        assert waits.count(loader.rate_limit_pause) == 1


class TestConnection:

    @pytest.mark.asyncio
    async def test_reports_page_summary(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"items": [{"id": 1}, {"id": 2}], "next_cursor": "more"})

        loader = make_loader(handler)
        result = await loader.test_connection()

        assert result == {"api_working": True, "meetings_found": 2, "has_more": True}
        assert seen[0].url.params["include_transcript"] == "false"

    @pytest.mark.asyncio
    async def test_not_found_raises(self):
        loader = make_loader(lambda request: httpx.Response(404, text="nope"))
        with pytest.raises(FathomAPIError):
            await loader.test_connection()
