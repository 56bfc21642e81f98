"""Pytest fixtures and in-memory fakes for feedbell tests."""

from __future__ import annotations

from datetime import datetime

import pytest

from feedbell.checkers.base import (
    CandidateItem,
    DeliveryError,
    MentionDirective,
    StoreError,
)
from feedbell.models import ChannelLink, Platform


def make_link(
    id: int = 1,
    link_identifier: str = "python",
    display_name: str = "r/python",
    destination_id: int = 1000,
    platform: Platform = Platform.REDDIT,
    should_mention: bool = True,
    mention_role_id: int | None = None,
) -> ChannelLink:
    return ChannelLink(
        id=id,
        link_identifier=link_identifier,
        display_name=display_name,
        destination_id=destination_id,
        platform=platform,
        should_mention=should_mention,
        mention_role_id=mention_role_id,
    )


class FakeLinkStore:
    def __init__(self, links: list[ChannelLink] | None = None, error: Exception | None = None):
        self.links = links or []
        self.error = error
        self.calls: list[Platform] = []

    async def list_for_platform(self, platform: Platform) -> list[ChannelLink]:
        self.calls.append(platform)
        if self.error:
            raise self.error
        return [link for link in self.links if link.platform == platform]


class FakeDedupStore:
    """Insert-if-absent keyed on item id, like the notified_items table."""

    def __init__(self, failing_ids: set[str] | None = None):
        self.records: dict[str, tuple[int, datetime]] = {}
        self.failing_ids = failing_ids or set()
        self.attempts: list[str] = []

    async def record_if_new(self, item_id: str, channel_link_id: int, discovered_at: datetime) -> bool:
        self.attempts.append(item_id)
        if item_id in self.failing_ids:
            raise StoreError(f"insert of {item_id} failed")
        if item_id in self.records:
            return False
        self.records[item_id] = (channel_link_id, discovered_at)
        return True


class FakeFetcher:
    """Returns canned items per identifier; exceptions are raised instead."""

    def __init__(self, results: dict[str, list[CandidateItem] | Exception]):
        self.results = results
        self.calls: list[str] = []

    async def fetch(self, link_identifier: str) -> list[CandidateItem]:
        self.calls.append(link_identifier)
        result = self.results.get(link_identifier, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeMessenger:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[int, str, MentionDirective]] = []

    async def send(self, destination_id: int, text: str, mentions: MentionDirective) -> None:
        if self.fail:
            raise DeliveryError("channel unavailable")
        self.sent.append((destination_id, text, mentions))


@pytest.fixture
def reddit_link() -> ChannelLink:
    return make_link()


@pytest.fixture
def youtube_link() -> ChannelLink:
    return make_link(
        id=2,
        link_identifier="UUabc",
        display_name="Some Creator",
        destination_id=2000,
        platform=Platform.YOUTUBE,
    )


@pytest.fixture
def messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture
def dedup() -> FakeDedupStore:
    return FakeDedupStore()
