"""Repository layer over the asyncpg pool."""

from .channel_link import ChannelLinkRepository
from .notified_item import NotifiedItemRepository

__all__ = [
    "ChannelLinkRepository",
    "NotifiedItemRepository",
]
