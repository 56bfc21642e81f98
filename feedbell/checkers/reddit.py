"""Subreddit feed checker."""

from __future__ import annotations

import httpx

from feedbell.models import Platform

from .base import ChannelLinkStore, DedupStore
from .checker import PlatformChecker
from .dispatcher import Dispatcher, MentionMode, format_feed_post
from .fetchers import REDDIT_FEED_URL, SyndicationFetcher


def build_reddit_checker(
    client: httpx.AsyncClient,
    links: ChannelLinkStore,
    notified: DedupStore,
    *,
    user_agent: str,
    debug_mode: bool = False,
    mention_mode: MentionMode = MentionMode.POLICY,
    fetch_timeout: float = 30.0,
    dispatch_timeout: float = 15.0,
    concurrency: int = 1,
) -> PlatformChecker:
    """Poll ``/r/<name>/new.rss`` for each linked subreddit.

    Reddit rejects feed requests without a descriptive User-Agent.
    """
    return PlatformChecker(
        Platform.REDDIT,
        SyndicationFetcher(client, REDDIT_FEED_URL, user_agent=user_agent),
        links,
        notified,
        Dispatcher(
            format_feed_post,
            debug_mode=debug_mode,
            mention_mode=mention_mode,
            timeout=dispatch_timeout,
        ),
        fetch_timeout=fetch_timeout,
        concurrency=concurrency,
    )
