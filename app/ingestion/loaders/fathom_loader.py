from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from app.core.config import settings
from app.core.exceptions import FathomAPIError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, httpx.TransportError)


class FathomLoader:
    """
    Low-level Fathom external API loader.
    Meetings are listed with their transcripts inline and paginated by cursor.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        self.base_url = settings.FATHOM_BASE_URL
        self.api_key = settings.FATHOM_API_KEY

        self.headers = {
            "Content-Type": "application/json",
            "X-Api-Key": self.api_key,
        }

        self.timeout = httpx.Timeout(settings.FATHOM_TIMEOUT_SECONDS, connect=5.0)
        self.request_delay = settings.FATHOM_REQUEST_DELAY_SECONDS
        self.max_requests_per_minute = settings.FATHOM_MAX_REQUESTS_PER_MINUTE
        self.rate_limit_pause = settings.FATHOM_RATE_LIMIT_PAUSE_SECONDS

        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )
        self._sleep = sleep or asyncio.sleep

    async def close(self) -> None:
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    )
    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = await self.client.get(path, headers=self.headers, params=params or {})

        if response.status_code == 429:
            logger.warning("Fathom rate limit hit, backing off")
        response.raise_for_status()
        return response.json()

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            return await self._get(path, params)
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            try:
                detail = e.response.json()
            except ValueError:
                detail = e.response.text
            raise FathomAPIError(
                f"Fathom API error (HTTP {status_code}): {detail}",
                status_code=status_code,
            ) from e
        except httpx.TransportError as e:
            raise FathomAPIError(f"Fathom API unreachable: {e}") from e

    # -----------------------------
    # Connectivity / sanity check
    # -----------------------------

    async def test_connection(self) -> Dict[str, Any]:
        data = await self._request("/meetings", {"include_transcript": "false"})
        items = data.get("items") or []
        return {
            "api_working": True,
            "meetings_found": len(items),
            "has_more": bool(data.get("next_cursor")),
        }

    # -----------------------------
    # Meetings (LIST)
    # -----------------------------

    async def list_meetings(
        self,
        cursor: Optional[str] = None,
        created_after: Optional[str] = None,
        include_transcript: bool = True,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Fetch one page of meetings.

        Args:
            cursor: Pagination cursor returned by the previous page
            created_after: ISO-8601 lower bound for incremental syncs
            include_transcript: Ask Fathom to inline the transcript
            filters: Extra query parameters passed through unchanged
        """
        params: Dict[str, Any] = {
            "include_transcript": "true" if include_transcript else "false",
            **(filters or {}),
        }
        if cursor:
            params["cursor"] = cursor
        if created_after:
            params["created_after"] = created_after

        data = await self._request("/meetings", params)
        return {
            "items": data.get("items") or [],
            "next_cursor": data.get("next_cursor"),
        }

    async def fetch_all_meetings(
        self,
        created_after: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Follow pagination until Fathom stops returning a cursor.

        Waits between pages and pauses once the per-minute request budget
        is spent.
        """
        meetings: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        requests_this_window = 0

        logger.info("Starting fetch of meetings from Fathom...")

        while True:
            if requests_this_window >= self.max_requests_per_minute:
                logger.info(f"Request budget reached, pausing {self.rate_limit_pause}s before continuing...")
                await self._sleep(self.rate_limit_pause)
                requests_this_window = 0

            page = await self.list_meetings(
                cursor=cursor,
                created_after=created_after,
                filters=filters,
            )
            requests_this_window += 1

            items = page["items"]
            meetings.extend(items)
            logger.info(f"Fetched {len(items)} meetings (total so far: {len(meetings)})")

            cursor = page["next_cursor"]
            if not cursor or not items:
                break

            await self._sleep(self.request_delay)

        logger.info(f"Fetch complete: {len(meetings)} meetings from Fathom")
        return meetings
