"""YouTube uploads checker."""

from __future__ import annotations

import httpx

from feedbell.models import Platform

from .base import ChannelLinkStore, DedupStore
from .checker import PlatformChecker
from .dispatcher import Dispatcher, MentionMode, format_video_upload
from .fetchers import TokenSource, YouTubePlaylistFetcher


def build_youtube_checker(
    client: httpx.AsyncClient,
    tokens: TokenSource,
    links: ChannelLinkStore,
    notified: DedupStore,
    *,
    debug_mode: bool = False,
    mention_mode: MentionMode = MentionMode.EVERYONE,
    max_results: int | None = None,
    fetch_timeout: float = 30.0,
    dispatch_timeout: float = 15.0,
    concurrency: int = 1,
) -> PlatformChecker:
    """Poll the playlist named by each link (usually a channel's uploads list).

    ``max_results`` sets the page size; None keeps the API default of 5.
    Only the first page of the playlist is read, so an item that scrolls out
    of it between two cycles is never announced.
    """
    return PlatformChecker(
        Platform.YOUTUBE,
        YouTubePlaylistFetcher(client, tokens, max_results=max_results),
        links,
        notified,
        Dispatcher(
            format_video_upload,
            debug_mode=debug_mode,
            mention_mode=mention_mode,
            timeout=dispatch_timeout,
        ),
        fetch_timeout=fetch_timeout,
        concurrency=concurrency,
    )
