"""Fetchers that turn one channel link into a batch of candidate items."""

from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote

import feedparser
import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from .base import CandidateItem, FetchNetworkError, FetchParseError

logger = logging.getLogger(__name__)

REDDIT_FEED_URL = "https://reddit.com/r/{}/new.rss"
YOUTUBE_PLAYLIST_ITEMS_URL = "https://www.googleapis.com/youtube/v3/playlistItems"
YOUTUBE_READONLY_SCOPE = "https://www.googleapis.com/auth/youtube.readonly"
YOUTUBE_WATCH_URL = "https://youtube.com/watch?v={}"


def encode_link_identifier(identifier: str) -> str:
    """Percent-encode an identifier for use as a single URL path segment."""
    return quote(identifier, safe="")


# ==================== Syndication feeds ====================


def _first(entry: Any, key: str) -> dict:
    values = entry.get(key) or []
    return values[0] if values else {}


def parse_feed(body: bytes) -> list[CandidateItem]:
    """Map RSS/Atom entries to candidate items.

    entry id -> item id, first author -> author, first category label ->
    category, first link -> URL.
    """
    parsed = feedparser.parse(io.BytesIO(body))
    if parsed.bozo and not parsed.entries:
        raise FetchParseError(f"Malformed feed: {parsed.get('bozo_exception')}")

    items: list[CandidateItem] = []
    for entry in parsed.entries:
        url = _first(entry, "links").get("href") or entry.get("link") or ""
        item_id = entry.get("id") or url
        if not item_id:
            logger.debug("Skipping feed entry without id or link")
            continue

        tag = _first(entry, "tags")
        items.append(
            CandidateItem(
                item_id=item_id,
                url=url,
                author=_first(entry, "authors").get("name"),
                category=tag.get("label") or None,
            )
        )
    return items


class SyndicationFetcher:
    """HTTP GET + feed parse for sources addressed by a URL template."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url_template: str = REDDIT_FEED_URL,
        *,
        user_agent: str | None = None,
    ) -> None:
        self.client = client
        self.url_template = url_template
        self.user_agent = user_agent

    def url_for(self, link_identifier: str) -> str:
        return self.url_template.format(encode_link_identifier(link_identifier))

    async def fetch(self, link_identifier: str) -> list[CandidateItem]:
        url = self.url_for(link_identifier)
        headers = {"User-Agent": self.user_agent} if self.user_agent else None
        try:
            response = await self.client.get(url, headers=headers, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchNetworkError(f"GET {url} failed: {type(e).__name__}: {e}") from e

        return parse_feed(response.content)


# ==================== YouTube Data API ====================


class TokenSource(Protocol):
    async def token(self) -> str:
        ...


class ServiceAccountTokenSource:
    """OAuth bearer tokens from a Google service-account key file.

    google-auth refreshes synchronously, so the refresh runs in a worker
    thread as a task of its own. A caller cancelled mid-refresh (a fetch
    timeout) leaves that task running, and the next caller awaits it instead
    of starting a second refresh on the same credentials.
    """

    def __init__(self, credentials: service_account.Credentials) -> None:
        self._credentials = credentials
        self._lock = asyncio.Lock()
        self._refresh: asyncio.Task | None = None

    @classmethod
    def from_file(cls, path: str | Path) -> ServiceAccountTokenSource:
        credentials = service_account.Credentials.from_service_account_file(
            str(path), scopes=[YOUTUBE_READONLY_SCOPE]
        )
        return cls(credentials)

    async def token(self) -> str:
        async with self._lock:
            if self._refresh is None and not self._credentials.valid:
                self._refresh = asyncio.create_task(
                    asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
                )
            if self._refresh is not None:
                try:
                    await asyncio.shield(self._refresh)
                except GoogleAuthError as e:
                    raise FetchNetworkError(f"Service account auth failed: {e}") from e
                finally:
                    if self._refresh.done():
                        self._refresh = None
            return self._credentials.token


class YouTubePlaylistFetcher:
    """Lists the items of a YouTube playlist (an uploads playlist in practice)."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        tokens: TokenSource,
        *,
        max_results: int | None = None,
    ) -> None:
        self.client = client
        self.tokens = tokens
        self.max_results = max_results

    async def fetch(self, link_identifier: str) -> list[CandidateItem]:
        token = await self.tokens.token()
        params = {"part": "contentDetails", "playlistId": link_identifier}
        if self.max_results:
            params["maxResults"] = str(self.max_results)

        try:
            response = await self.client.get(
                YOUTUBE_PLAYLIST_ITEMS_URL,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise FetchNetworkError(
                f"YouTube API error for {link_identifier}: {type(e).__name__}: {e}"
            ) from e
        except ValueError as e:
            raise FetchNetworkError(f"YouTube API returned invalid JSON: {e}") from e

        items: list[CandidateItem] = []
        for item in payload.get("items") or []:
            video_id = (item.get("contentDetails") or {}).get("videoId")
            if not video_id:
                continue
            items.append(CandidateItem(item_id=video_id, url=YOUTUBE_WATCH_URL.format(video_id)))
        return items
