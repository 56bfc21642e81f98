"""Delivers checker notifications to Discord channels."""

from __future__ import annotations

import logging

import aiohttp
import discord

from feedbell.checkers.base import DeliveryError, MentionDirective

logger = logging.getLogger(__name__)


def to_allowed_mentions(directive: MentionDirective) -> discord.AllowedMentions:
    """Translate a directive into discord.py's allowed-mentions filter."""
    if directive.kind == "everyone":
        return discord.AllowedMentions(everyone=True, users=False, roles=False)
    if directive.kind == "role" and directive.role_id is not None:
        return discord.AllowedMentions(
            everyone=False, users=False, roles=[discord.Object(id=directive.role_id)]
        )
    return discord.AllowedMentions.none()


class DiscordMessenger:
    """Messenger backed by a connected discord.py client."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def _resolve_channel(self, destination_id: int) -> discord.abc.Messageable:
        channel = self.client.get_channel(destination_id)
        if channel is None:
            channel = await self.client.fetch_channel(destination_id)
        if not isinstance(channel, discord.abc.Messageable):
            raise DeliveryError(f"Channel {destination_id} cannot receive messages")
        return channel

    async def send(self, destination_id: int, text: str, mentions: MentionDirective) -> None:
        try:
            channel = await self._resolve_channel(destination_id)
            await channel.send(text, allowed_mentions=to_allowed_mentions(mentions))
            logger.debug(f"Sent notification to {destination_id} (mentions: {mentions.kind})")
        except discord.Forbidden as e:
            raise DeliveryError(f"Missing permission to post in {destination_id}: {e}") from e
        except discord.NotFound as e:
            raise DeliveryError(f"Channel {destination_id} no longer exists: {e}") from e
        except discord.DiscordException as e:
            raise DeliveryError(f"Discord error posting to {destination_id}: {e}") from e
        except aiohttp.ClientError as e:
            raise DeliveryError(f"Connection error posting to {destination_id}: {e}") from e
