"""Bot configuration, read once at startup."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from feedbell.checkers.dispatcher import MentionMode
from feedbell.checkers.fetchers import ServiceAccountTokenSource

KEYS_DIR = Path("keys")

_TRUE_VALUES = {"yes", "on", "1", "true"}


class ConfigError(Exception):
    """Startup configuration is missing or invalid."""


def env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUE_VALUES


def _number(env: Mapping[str, str], name: str, default: float, cast=float):
    raw = env.get(name, "").strip()
    if not raw:
        return cast(default)
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def _mention_mode(env: Mapping[str, str], name: str, default: MentionMode) -> MentionMode:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    try:
        return MentionMode(raw)
    except ValueError as e:
        choices = ", ".join(m.value for m in MentionMode)
        raise ConfigError(f"{name} must be one of: {choices}; got {raw!r}") from e


def _page_size(env: Mapping[str, str], name: str) -> int | None:
    if not env.get(name, "").strip():
        return None
    value = _number(env, name, 0, int)
    if value > 50:
        raise ConfigError(f"{name} must be between 1 and 50, got {value}")
    return value


@dataclass(frozen=True)
class BotConfig:
    token: str
    database_url: str
    guild_id: int | None = None
    database_ssl: str | None = "require"
    # BOT_TESTING_MODE: send notifications without pinging anyone
    debug_mode: bool = False
    poll_interval: float = 300.0
    fetch_timeout: float = 30.0
    dispatch_timeout: float = 15.0
    link_concurrency: int = 1
    youtube_credentials_path: Path = KEYS_DIR / "youtube-service-account.json"
    reddit_config_path: Path = KEYS_DIR / "reddit-rss.json"
    youtube_mention_mode: MentionMode = MentionMode.EVERYONE
    reddit_mention_mode: MentionMode = MentionMode.POLICY
    max_links_per_channel: int = 12
    # YOUTUBE_MAX_RESULTS: playlistItems page size, None for the API default
    youtube_max_results: int | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> BotConfig:
        env = os.environ if env is None else env

        required_vars = {
            "DISCORD_BOT_TOKEN": "Discord bot token",
            "DATABASE_URL": "Database connection URL",
        }
        missing_vars = [
            f"{var} ({description})"
            for var, description in required_vars.items()
            if not env.get(var, "").strip()
        ]
        if missing_vars:
            raise ConfigError(
                "Missing or empty required environment variables:\n"
                + "\n".join(f"  - {var}" for var in missing_vars)
            )

        database_url = env["DATABASE_URL"].strip()
        if not database_url.startswith(("postgresql://", "postgres://")):
            raise ConfigError("DATABASE_URL must start with 'postgresql://'")

        guild_raw = env.get("DISCORD_GUILD_ID", "").strip()
        if guild_raw and not guild_raw.isdigit():
            raise ConfigError(f"DISCORD_GUILD_ID must be numeric, got {guild_raw!r}")

        ssl_raw = env.get("DATABASE_SSL", "require").strip().lower()

        return cls(
            token=env["DISCORD_BOT_TOKEN"].strip(),
            database_url=database_url,
            guild_id=int(guild_raw) if guild_raw else None,
            database_ssl=None if ssl_raw in {"", "disable", "off", "false"} else ssl_raw,
            debug_mode=env_flag(env.get("BOT_TESTING_MODE")),
            poll_interval=_number(env, "POLL_INTERVAL_SECONDS", 300.0),
            fetch_timeout=_number(env, "FETCH_TIMEOUT_SECONDS", 30.0),
            dispatch_timeout=_number(env, "DISPATCH_TIMEOUT_SECONDS", 15.0),
            link_concurrency=_number(env, "LINK_CONCURRENCY", 1, int),
            youtube_credentials_path=Path(
                env.get("YOUTUBE_CREDENTIALS_PATH") or KEYS_DIR / "youtube-service-account.json"
            ),
            reddit_config_path=Path(env.get("REDDIT_CONFIG_PATH") or KEYS_DIR / "reddit-rss.json"),
            youtube_mention_mode=_mention_mode(env, "YOUTUBE_MENTION_MODE", MentionMode.EVERYONE),
            reddit_mention_mode=_mention_mode(env, "REDDIT_MENTION_MODE", MentionMode.POLICY),
            max_links_per_channel=_number(env, "MAX_LINKS_PER_CHANNEL", 12, int),
            youtube_max_results=_page_size(env, "YOUTUBE_MAX_RESULTS"),
        )


def load_reddit_user_agent(path: Path) -> str:
    """Read the feed client's User-Agent from ``{"user_agent": "..."}``."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read Reddit client config {path}: {e}") from e

    user_agent = data.get("user_agent") if isinstance(data, dict) else None
    if not isinstance(user_agent, str) or not user_agent.strip():
        raise ConfigError(f"{path} must contain a non-empty 'user_agent' string")
    return user_agent.strip()


def load_youtube_tokens(path: Path) -> ServiceAccountTokenSource:
    """Load the YouTube service-account key file."""
    try:
        return ServiceAccountTokenSource.from_file(path)
    except (OSError, ValueError, KeyError) as e:
        raise ConfigError(f"Cannot load YouTube service account {path}: {e}") from e
