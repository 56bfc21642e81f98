"""Shared types for the platform checkers.

Checkers are composed from a fetcher, the two repositories and a dispatcher.
The protocols below are the only contract the platforms share; there is no
checker base class.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Protocol

from feedbell.database import StoreError
from feedbell.models import ChannelLink, Platform

__all__ = [
    "CandidateItem",
    "Checker",
    "CheckerError",
    "ChannelLinkStore",
    "CycleReport",
    "DeliveryError",
    "DispatchError",
    "DedupStore",
    "FetchError",
    "FetchNetworkError",
    "FetchParseError",
    "Fetcher",
    "MentionDirective",
    "Messenger",
    "StoreError",
    "StoreUnavailableError",
]


# ==================== Errors ====================


class FetchError(Exception):
    """A link could not be fetched this cycle."""


class FetchNetworkError(FetchError):
    """Transport, HTTP status or API (including auth) failure."""


class FetchParseError(FetchError):
    """The response body was not a usable feed."""


class DispatchError(Exception):
    """A notification could not be delivered."""


class DeliveryError(DispatchError):
    """The messaging platform rejected or dropped the message."""


class CheckerError(Exception):
    """A whole cycle had to stop early."""


class StoreUnavailableError(CheckerError):
    def __init__(self, platform: Platform, cause: Exception) -> None:
        super().__init__(f"Cannot load {platform.value} channel links: {cause}")
        self.platform = platform
        self.cause = cause


# ==================== Values ====================


@dataclass(frozen=True)
class CandidateItem:
    """One item returned by a fetcher, not yet checked for novelty."""

    item_id: str
    url: str
    author: str | None = None
    category: str | None = None


@dataclass(frozen=True)
class MentionDirective:
    """Which mentions in the message text may actually ping."""

    kind: Literal["none", "everyone", "role"]
    role_id: int | None = None

    @classmethod
    def none(cls) -> MentionDirective:
        return cls("none")

    @classmethod
    def everyone(cls) -> MentionDirective:
        return cls("everyone")

    @classmethod
    def role(cls, role_id: int) -> MentionDirective:
        return cls("role", role_id)


@dataclass
class CycleReport:
    """Counters for one pass over a platform's links."""

    platform: Platform
    links: int = 0
    fetch_failures: int = 0
    candidates: int = 0
    new_items: int = 0
    store_failures: int = 0
    dispatch_failures: int = 0

    def summary(self) -> str:
        return (
            f"{self.platform.value}: {self.links} links, {self.candidates} candidates, "
            f"{self.new_items} new, {self.fetch_failures} fetch / "
            f"{self.store_failures} store / {self.dispatch_failures} dispatch failures"
        )


# ==================== Protocols ====================


class Fetcher(Protocol):
    async def fetch(self, link_identifier: str) -> list[CandidateItem]:
        """Return the current candidates for one source.

        Raises FetchError.
        """
        ...


class Messenger(Protocol):
    async def send(self, destination_id: int, text: str, mentions: MentionDirective) -> None:
        """Post ``text`` to a channel. Raises DeliveryError."""
        ...


class ChannelLinkStore(Protocol):
    async def list_for_platform(self, platform: Platform) -> list[ChannelLink]:
        ...


class DedupStore(Protocol):
    async def record_if_new(
        self, item_id: str, channel_link_id: int, discovered_at: datetime
    ) -> bool:
        ...


class Checker(Protocol):
    @property
    def name(self) -> str:
        ...

    async def run_cycle(self, messenger: Messenger) -> CycleReport:
        """Poll every link once. Raises only StoreUnavailableError."""
        ...
