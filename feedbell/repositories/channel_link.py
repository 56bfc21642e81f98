"""Repository for the platforms and channel_links tables."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import asyncpg

from feedbell.database import DRIVER_ERRORS, StoreError
from feedbell.models import ChannelLink, Platform

logger = logging.getLogger(__name__)

_LINK_COLUMNS = """
    cl.id, cl.link_identifier, cl.display_name, cl.destination_id,
    p.name AS platform, cl.should_mention, cl.mention_role_id, cl.created_at
"""


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise driver failures as StoreError."""
    try:
        yield
    except DRIVER_ERRORS as e:
        raise StoreError(f"{operation} failed: {type(e).__name__}: {e}") from e


def _row_to_link(row: Any) -> ChannelLink:
    data = dict(row)
    data["platform"] = Platform(data["platform"])
    return ChannelLink(**data)


class ChannelLinkRepository:
    """SQL operations for channel links.

    The checkers only ever read through ``list_for_platform``; the other
    methods back the admin slash commands.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def list_for_platform(self, platform: Platform) -> list[ChannelLink]:
        """All links for one platform, re-read on every poll cycle."""
        with translate_errors("list_for_platform"):
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {_LINK_COLUMNS}
                    FROM channel_links cl
                    JOIN platforms p ON p.id = cl.platform_id
                    WHERE p.name = $1
                    ORDER BY cl.id
                    """,
                    platform.value,
                )
        return [_row_to_link(row) for row in rows]

    async def list_for_destination(
        self, destination_id: int, platform: Platform | None = None
    ) -> list[ChannelLink]:
        with translate_errors("list_for_destination"):
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {_LINK_COLUMNS}
                    FROM channel_links cl
                    JOIN platforms p ON p.id = cl.platform_id
                    WHERE cl.destination_id = $1
                      AND ($2::text IS NULL OR p.name = $2)
                    ORDER BY cl.id
                    """,
                    destination_id,
                    platform.value if platform else None,
                )
        return [_row_to_link(row) for row in rows]

    async def get(self, link_identifier: str, destination_id: int) -> ChannelLink | None:
        """The link on the ``(link_identifier, destination_id)`` key, any platform."""
        with translate_errors("get"):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    SELECT {_LINK_COLUMNS}
                    FROM channel_links cl
                    JOIN platforms p ON p.id = cl.platform_id
                    WHERE cl.link_identifier = $1 AND cl.destination_id = $2
                    """,
                    link_identifier,
                    destination_id,
                )
        return _row_to_link(row) if row else None

    async def count_for_destination(self, destination_id: int, platform: Platform) -> int:
        with translate_errors("count_for_destination"):
            async with self.pool.acquire() as conn:
                count = await conn.fetchval(
                    """
                    SELECT COUNT(*)
                    FROM channel_links cl
                    JOIN platforms p ON p.id = cl.platform_id
                    WHERE cl.destination_id = $1 AND p.name = $2
                    """,
                    destination_id,
                    platform.value,
                )
        return int(count or 0)

    async def upsert(
        self,
        platform: Platform,
        link_identifier: str,
        display_name: str,
        destination_id: int,
        should_mention: bool = True,
        mention_role_id: int | None = None,
    ) -> ChannelLink | None:
        """Create a link or update its policy fields.

        Re-registering the same source in the same channel updates the display
        name and mention policy instead of adding a duplicate. Returns None
        when the platform row does not exist.
        """
        with translate_errors("upsert"):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    WITH upserted AS (
                        INSERT INTO channel_links (
                            link_identifier, display_name, destination_id,
                            platform_id, should_mention, mention_role_id
                        )
                        SELECT $1, $2, $3, p.id, $5, $6
                        FROM platforms p
                        WHERE p.name = $4
                        ON CONFLICT (link_identifier, destination_id) DO UPDATE SET
                            display_name = EXCLUDED.display_name,
                            should_mention = EXCLUDED.should_mention,
                            mention_role_id = EXCLUDED.mention_role_id
                        RETURNING *
                    )
                    SELECT u.id, u.link_identifier, u.display_name, u.destination_id,
                           p.name AS platform, u.should_mention, u.mention_role_id,
                           u.created_at
                    FROM upserted u
                    JOIN platforms p ON p.id = u.platform_id
                    """,
                    link_identifier,
                    display_name,
                    destination_id,
                    platform.value,
                    should_mention,
                    mention_role_id,
                )
        if row is None:
            logger.warning(f"Platform not found while linking {link_identifier}: {platform.value}")
            return None
        return _row_to_link(row)

    async def delete(
        self, platform: Platform, link_identifier: str, destination_id: int
    ) -> ChannelLink | None:
        """Delete a link; its notified items go with it (ON DELETE CASCADE)."""
        with translate_errors("delete"):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    DELETE FROM channel_links cl
                    USING platforms p
                    WHERE p.id = cl.platform_id
                      AND p.name = $1
                      AND cl.link_identifier = $2
                      AND cl.destination_id = $3
                    RETURNING cl.id, cl.link_identifier, cl.display_name,
                              cl.destination_id, p.name AS platform,
                              cl.should_mention, cl.mention_role_id, cl.created_at
                    """,
                    platform.value,
                    link_identifier,
                    destination_id,
                )
        return _row_to_link(row) if row else None
