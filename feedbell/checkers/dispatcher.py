"""Notification formatting, mention resolution and delivery."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from feedbell.models import ChannelLink

from .base import CandidateItem, DeliveryError, MentionDirective, Messenger

UNKNOWN_AUTHOR = "<unknown>"


class MentionMode(str, Enum):
    """How a platform's notifications decide who gets pinged.

    ``policy`` honours the link's ``should_mention`` / role settings.
    ``everyone`` always addresses @everyone (only debug mode silences it),
    which is how YouTube uploads have always been announced.
    """

    POLICY = "policy"
    EVERYONE = "everyone"


@dataclass(frozen=True)
class Notification:
    text: str
    mentions: MentionDirective


def resolve_mention(link: ChannelLink, *, debug_mode: bool, mode: MentionMode) -> MentionDirective:
    """Decide which mentions may ping.

    Debug mode never pings. Otherwise ``everyone`` mode pings everyone, and
    ``policy`` mode pings nobody when the link has mentions off, only the
    configured role when one is set, and everyone otherwise.
    """
    if debug_mode:
        return MentionDirective.none()
    if mode is MentionMode.EVERYONE:
        return MentionDirective.everyone()
    if not link.should_mention:
        return MentionDirective.none()
    if link.mention_role_id is not None:
        return MentionDirective.role(link.mention_role_id)
    return MentionDirective.everyone()


def mention_text(link: ChannelLink, mode: MentionMode) -> str:
    # The text keeps the mention even when pings are suppressed.
    if mode is MentionMode.POLICY and link.mention_role_id is not None:
        return f"<@&{link.mention_role_id}>"
    return "@everyone"


def format_video_upload(link: ChannelLink, item: CandidateItem, mention: str) -> str:
    return f"Hey {mention}, **{link.display_name}** has released a new video!\n{item.url}"


def format_feed_post(link: ChannelLink, item: CandidateItem, mention: str) -> str:
    author = item.author or UNKNOWN_AUTHOR
    where = item.category or link.display_name
    return f"Hey {mention}, user **{author}** has posted on **{where}**!\n{item.url}"


Formatter = Callable[[ChannelLink, CandidateItem, str], str]


class Dispatcher:
    """Builds the message for a new item and hands it to a Messenger."""

    def __init__(
        self,
        formatter: Formatter,
        *,
        debug_mode: bool = False,
        mention_mode: MentionMode = MentionMode.POLICY,
        timeout: float = 15.0,
    ) -> None:
        self.formatter = formatter
        self.debug_mode = debug_mode
        self.mention_mode = mention_mode
        self.timeout = timeout

    def build(self, link: ChannelLink, item: CandidateItem) -> Notification:
        text = self.formatter(link, item, mention_text(link, self.mention_mode))
        mentions = resolve_mention(link, debug_mode=self.debug_mode, mode=self.mention_mode)
        return Notification(text=text, mentions=mentions)

    async def dispatch(self, messenger: Messenger, link: ChannelLink, item: CandidateItem) -> None:
        """Send one notification. Raises DeliveryError."""
        notification = self.build(link, item)
        try:
            await asyncio.wait_for(
                messenger.send(link.destination_id, notification.text, notification.mentions),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            raise DeliveryError(
                f"Sending to channel {link.destination_id} timed out after {self.timeout}s"
            ) from e
