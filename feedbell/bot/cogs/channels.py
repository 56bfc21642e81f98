"""Channel link management commands."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from feedbell.database import StoreError
from feedbell.models import ChannelLink, Platform

if TYPE_CHECKING:
    from feedbell.bot.bot import FeedbellClient

logger = logging.getLogger(__name__)

EMBED_COLOUR = discord.Colour.from_rgb(149, 66, 245)
MAX_EMBED_FIELDS = 25

PLATFORM_CHOICES = [app_commands.Choice(name=p.value, value=p.value) for p in Platform]


def describe_link(link: ChannelLink) -> str:
    """Embed field body for one link."""
    mentions = f"<@&{link.mention_role_id}>" if link.mention_role_id else "@everyone"
    pings = "Yes" if link.should_mention else "No"
    return f"**ID:** {link.link_identifier}\n**Mentions:** {mentions}\n**Pings:** {pings}"


def build_links_embed(
    links: list[ChannelLink], channel_mention: str, platform: Platform | None = None
) -> discord.Embed:
    filter_text = f" filtered by **{platform.value}**" if platform else ""
    embed = discord.Embed(
        title="Linked Channels",
        description=f"The list of active channel links in {channel_mention}{filter_text}.",
        colour=EMBED_COLOUR,
    )
    for link in links[:MAX_EMBED_FIELDS]:
        embed.add_field(name=link.display_name, value=describe_link(link), inline=True)
    return embed


class Channels(commands.Cog):
    """Register, list and remove channel links"""

    def __init__(self, bot: FeedbellClient):
        self.bot = bot

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.MissingPermissions):
            message = "You need the Administrator permission to use this command."
        elif isinstance(error, app_commands.NoPrivateMessage):
            message = "This command can only be used in a server."
        elif isinstance(error, app_commands.CommandInvokeError) and isinstance(
            error.original, StoreError
        ):
            command = interaction.command.name if interaction.command else "?"
            logger.error(f"Database error in /{command}: {error.original}")
            message = "Database error, please try again later."
        else:
            logger.error(f"Command error: {error}", exc_info=error)
            message = "Something went wrong while running this command."

        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)

    @app_commands.command(
        name="add_channel", description="Link a YouTube playlist or subreddit to this channel"
    )
    @app_commands.describe(
        platform="Platform",
        channel_id="Playlist ID or subreddit name",
        channel_name="Channel name",
        should_ping="Should ping",
        mention_role="Mentioned role",
    )
    @app_commands.choices(platform=PLATFORM_CHOICES)
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    @app_commands.checks.has_permissions(administrator=True)
    async def add_channel(
        self,
        interaction: discord.Interaction,
        platform: app_commands.Choice[str],
        channel_id: str,
        channel_name: str,
        should_ping: bool | None = None,
        mention_role: discord.Role | None = None,
    ):
        selected = Platform(platform.value)
        identifier = channel_id.strip()
        destination_id = interaction.channel_id
        limit = self.bot.config.max_links_per_channel

        # The key has no platform, so an upsert would rewrite the other platform's link.
        existing = await self.bot.links.get(identifier, destination_id)
        if existing is not None and existing.platform is not selected:
            await interaction.response.send_message(
                f"**{identifier}** is already linked here for platform "
                f"**{existing.platform.value}**. Remove it first.",
                allowed_mentions=discord.AllowedMentions.none(),
            )
            return

        if existing is None:
            count = await self.bot.links.count_for_destination(destination_id, selected)
            if count >= limit:
                await interaction.response.send_message(
                    f"Too many linked channels in this Discord channel (limit: {limit})."
                )
                return

        link = await self.bot.links.upsert(
            selected,
            identifier,
            channel_name,
            destination_id,
            should_mention=True if should_ping is None else should_ping,
            mention_role_id=mention_role.id if mention_role else None,
        )
        if link is None:
            await interaction.response.send_message("No such platform.")
            return

        logger.info(
            f"Linked {selected.value} {link.link_identifier} -> {destination_id} "
            f"(by {interaction.user}, ping={link.should_mention}, role={link.mention_role_id})"
        )
        await interaction.response.send_message(
            f"Channel configuration updated: **{channel_name}** -> <#{destination_id}>.",
            allowed_mentions=discord.AllowedMentions.none(),
        )

    @app_commands.command(name="list_channels", description="List channel links in this channel")
    @app_commands.describe(platform="Platform")
    @app_commands.choices(platform=PLATFORM_CHOICES)
    async def list_channels(
        self,
        interaction: discord.Interaction,
        platform: app_commands.Choice[str] | None = None,
    ):
        selected = Platform(platform.value) if platform else None
        links = await self.bot.links.list_for_destination(interaction.channel_id, selected)
        if not links:
            await interaction.response.send_message("No channel links found.")
            return

        embed = build_links_embed(links, f"<#{interaction.channel_id}>", selected)
        await interaction.response.send_message(
            embed=embed, allowed_mentions=discord.AllowedMentions.none()
        )

    @app_commands.command(
        name="remove_channel", description="Remove a channel link from this channel"
    )
    @app_commands.describe(platform="Platform", channel_id="Playlist ID or subreddit name")
    @app_commands.choices(platform=PLATFORM_CHOICES)
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    @app_commands.checks.has_permissions(administrator=True)
    async def remove_channel(
        self,
        interaction: discord.Interaction,
        platform: app_commands.Choice[str],
        channel_id: str,
    ):
        selected = Platform(platform.value)
        link = await self.bot.links.delete(selected, channel_id.strip(), interaction.channel_id)
        if link is None:
            await interaction.response.send_message("No such channel found.")
            return

        logger.info(f"Removed {selected.value} {link.link_identifier} from {link.destination_id}")
        await interaction.response.send_message(
            f"Channel **{link.display_name}** from platform **{selected.value}** deleted."
        )

    @app_commands.command(name="account_age", description="Show when an account was created")
    @app_commands.describe(user="Selected user")
    async def account_age(self, interaction: discord.Interaction, user: discord.User | None = None):
        target = user or interaction.user
        created = int(target.created_at.timestamp())
        await interaction.response.send_message(
            f"{target.mention}'s account was created at <t:{created}:f>",
            allowed_mentions=discord.AllowedMentions.none(),
        )


async def setup(bot: FeedbellClient):
    await bot.add_cog(Channels(bot))
