"""
Client for the upstream social content API (twitterapi.io-compatible).

Items can be resolved by an explicit id batch or by author handle. Payloads
are validated through pydantic before they become `Item` objects.
"""

import logging
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from newsdesk.core.config import get_settings
from newsdesk.core.errors import UpstreamFetchError, ValidationError
from newsdesk.schemas.common import UpstreamTweet
from newsdesk.services.ingestion.common import Item, item_from_upstream

logger = logging.getLogger(__name__)

TWEETS_PATH = "/twitter/tweets"
LAST_TWEETS_PATH = "/twitter/user/last_tweets"
AUTH_HEADER = "X-API-Key"


class UpstreamClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.upstream_api_key
        self.base_url = (base_url or settings.upstream_base_url).rstrip("/")
        self.timeout = timeout or settings.ingest_http_timeout_seconds
        self.max_attempts = max_attempts or settings.upstream_max_attempts
        self._transport = transport

    async def _get(self, path: str, params: dict) -> Any:
        headers = {AUTH_HEADER: self.api_key or ""}
        try:
            async for attempt in AsyncRetrying(
                wait=wait_exponential(multiplier=1, min=1, max=8),
                stop=stop_after_attempt(self.max_attempts),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    async with httpx.AsyncClient(
                        base_url=self.base_url, timeout=self.timeout, transport=self._transport
                    ) as client:
                        response = await client.get(path, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"Upstream request failed: {exc}") from exc

        if response.status_code >= 400:
            raise UpstreamFetchError(f"Upstream API request failed ({response.status_code})")
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFetchError("Upstream API returned a non-JSON body") from exc
        if isinstance(payload, dict) and str(payload.get("status", "")).lower() == "error":
            message = payload.get("msg") or payload.get("message") or "unknown error"
            raise UpstreamFetchError(f"Upstream API error: {message}")
        return payload

    async def fetch_by_ids(self, ids: Iterable[str]) -> list[Item]:
        """Resolve a batch of ids in one call. Unknown ids are silently omitted upstream."""
        id_list = [i for i in dict.fromkeys(str(i).strip() for i in ids) if i]
        if not id_list:
            raise ValidationError("At least one item id is required")

        payload = await self._get(TWEETS_PATH, {"tweet_ids": ",".join(id_list)})
        raw_tweets = payload.get("tweets") if isinstance(payload, dict) else None
        if not isinstance(raw_tweets, list):
            raise UpstreamFetchError("Upstream payload has no 'tweets' list")
        return _parse_tweets(raw_tweets)

    async def fetch_by_author(self, handle: str) -> list[Item]:
        """Latest items for an author, most recent first, as paged by the upstream API."""
        handle = (handle or "").strip().lstrip("@")
        if not handle:
            raise ValidationError("An author handle is required")

        payload = await self._get(LAST_TWEETS_PATH, {"userName": handle})
        return _parse_tweets(_extract_author_tweets(payload))


def _extract_author_tweets(payload: Any) -> list:
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    for candidate in (
        payload.get("tweets"),
        data.get("tweets") if isinstance(data, dict) else None,
        payload.get("items"),
    ):
        if candidate is not None:
            return candidate if isinstance(candidate, list) else []
    return []


def _parse_tweets(raw_tweets: list) -> list[Item]:
    items: list[Item] = []
    for raw in raw_tweets:
        try:
            tweet = UpstreamTweet.model_validate(raw)
        except PydanticValidationError as exc:
            logger.warning("Dropping malformed upstream entry: %s", exc.errors()[:1])
            continue
        items.append(item_from_upstream(tweet))
    return items
