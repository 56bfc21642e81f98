"""Repository for the notified_items table (the dedup store)."""

from __future__ import annotations

from datetime import datetime

import asyncpg

from .channel_link import translate_errors


class NotifiedItemRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def record_if_new(
        self, item_id: str, channel_link_id: int, discovered_at: datetime
    ) -> bool:
        """Insert ``item_id`` unless it is already stored.

        Returns True when this call inserted the row (the caller should
        notify) and False when another writer got there first. Uniqueness is
        on ``item_id`` alone and is enforced by the table constraint, so
        concurrent cycles never both see True for the same item.
        """
        with translate_errors("record_if_new"):
            async with self.pool.acquire() as conn:
                inserted_id = await conn.fetchval(
                    """
                    INSERT INTO notified_items (item_id, channel_link_id, discovered_at)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (item_id) DO NOTHING
                    RETURNING id
                    """,
                    item_id,
                    channel_link_id,
                    discovered_at,
                )
        return inserted_id is not None
