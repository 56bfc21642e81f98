"""
feedbell Discord bot
discord.py 2.x with slash commands; polls YouTube and Reddit in the background
"""

from __future__ import annotations

import asyncio
import logging

import discord
import httpx
from discord.ext import commands
from dotenv import load_dotenv

from feedbell.bot.config import BotConfig, ConfigError, load_reddit_user_agent, load_youtube_tokens
from feedbell.bot.logging import setup_logging
from feedbell.bot.messenger import DiscordMessenger
from feedbell.checkers import PlatformChecker, Scheduler, build_reddit_checker, build_youtube_checker
from feedbell.database import DatabaseManager, PoolConfig
from feedbell.migrations import MigrationRunner
from feedbell.repositories import ChannelLinkRepository, NotifiedItemRepository

logger = logging.getLogger("feedbell")


class FeedbellClient(commands.Bot):
    """feedbell Discord client"""

    def __init__(self, config: BotConfig):
        intents = discord.Intents.default()

        super().__init__(
            command_prefix=commands.when_mentioned_or(">"),
            intents=intents,
            help_command=None,
        )

        self.config = config
        self.db = DatabaseManager(
            config.database_url, PoolConfig.for_service("bot", ssl=config.database_ssl)
        )
        self.http_client = httpx.AsyncClient(timeout=config.fetch_timeout)
        self.links: ChannelLinkRepository | None = None
        self.scheduler: Scheduler | None = None

        self.initial_extensions = [
            "feedbell.bot.cogs.channels",
        ]

    def build_checkers(
        self, links: ChannelLinkRepository, notified: NotifiedItemRepository
    ) -> list[PlatformChecker]:
        """Build one checker per platform. Credential problems raise ConfigError."""
        cfg = self.config
        user_agent = load_reddit_user_agent(cfg.reddit_config_path)
        tokens = load_youtube_tokens(cfg.youtube_credentials_path)

        common = {
            "debug_mode": cfg.debug_mode,
            "fetch_timeout": cfg.fetch_timeout,
            "dispatch_timeout": cfg.dispatch_timeout,
            "concurrency": cfg.link_concurrency,
        }
        return [
            build_youtube_checker(
                self.http_client,
                tokens,
                links,
                notified,
                mention_mode=cfg.youtube_mention_mode,
                max_results=cfg.youtube_max_results,
                **common,
            ),
            build_reddit_checker(
                self.http_client,
                links,
                notified,
                user_agent=user_agent,
                mention_mode=cfg.reddit_mention_mode,
                **common,
            ),
        ]

    async def setup_hook(self):
        """One-time startup: database, checkers, commands, polling loops."""
        await self.db.connect()
        await MigrationRunner(self.db.pool).run_pending()

        self.links = ChannelLinkRepository(self.db.pool)
        checkers = self.build_checkers(self.links, NotifiedItemRepository(self.db.pool))

        loaded = []
        failed = []
        for extension in self.initial_extensions:
            try:
                await self.load_extension(extension)
                loaded.append(extension.split(".")[-1])
            except commands.ExtensionError as e:
                failed.append(f"{extension.split('.')[-1]} ({e})")

        if loaded:
            logger.info(f"Loaded cogs: {', '.join(loaded)}")
        if failed:
            logger.error(f"Failed to load cogs: {', '.join(failed)}")

        if self.config.guild_id:
            guild = discord.Object(id=self.config.guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logger.info(f"Synced slash commands to test guild {self.config.guild_id}")
        else:
            await self.tree.sync()
            logger.info("Synced slash commands globally")

        self.scheduler = Scheduler(
            checkers,
            DiscordMessenger(self),
            interval=self.config.poll_interval,
            wait_ready=self.wait_until_ready,
        )
        self.scheduler.start()

        if self.config.debug_mode:
            logger.warning("Testing mode is on: notifications will not ping anyone")

    async def on_ready(self):
        logger.info(f"Bot ready: {self.user} (ID: {self.user.id if self.user else '?'})")
        logger.info(f"Connected to {len(self.guilds)} guild(s) | discord.py {discord.__version__}")

    async def close(self):
        if self.scheduler is not None:
            await self.scheduler.stop()
        await super().close()
        await self.http_client.aclose()
        await self.db.disconnect()


async def main() -> None:
    config = BotConfig.from_env()

    async with FeedbellClient(config) as bot:
        await bot.start(config.token)


def run() -> None:
    load_dotenv()
    setup_logging()

    try:
        asyncio.run(main())
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        raise SystemExit(1) from e
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Bot stopped manually")


if __name__ == "__main__":
    run()
