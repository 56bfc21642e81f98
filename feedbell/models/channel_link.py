"""Data models for platforms and channel links."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Platform(str, Enum):
    """External content source; values match ``platforms.name``."""

    YOUTUBE = "YouTube"
    REDDIT = "Reddit"


@dataclass
class ChannelLink:
    """Binding of one external source to one Discord channel.

    ``link_identifier`` is platform specific: a playlist ID for YouTube, a
    subreddit name for Reddit.
    """

    id: int
    link_identifier: str
    display_name: str
    destination_id: int
    platform: Platform
    should_mention: bool = True
    mention_role_id: int | None = None
    created_at: datetime | None = None
