"""Tests for PlatformChecker poll cycles."""

import asyncio

import pytest

from conftest import FakeDedupStore, FakeFetcher, FakeLinkStore, FakeMessenger, make_link
from feedbell.checkers.base import (
    CandidateItem,
    FetchNetworkError,
    FetchParseError,
    StoreError,
    StoreUnavailableError,
)
from feedbell.checkers.checker import PlatformChecker
from feedbell.checkers.dispatcher import Dispatcher, MentionMode, format_feed_post, format_video_upload
from feedbell.checkers.fetchers import YOUTUBE_WATCH_URL
from feedbell.models import Platform


def _video(video_id: str) -> CandidateItem:
    return CandidateItem(item_id=video_id, url=YOUTUBE_WATCH_URL.format(video_id))


def _post(post_id: str, author: str | None = "/u/alice") -> CandidateItem:
    return CandidateItem(
        item_id=post_id,
        url=f"https://www.reddit.com/comments/{post_id}/",
        author=author,
        category="r/python",
    )


def _checker(platform, fetcher, links, dedup, formatter=format_feed_post, **kwargs):
    return PlatformChecker(
        platform,
        fetcher,
        links,
        dedup,
        Dispatcher(formatter, mention_mode=MentionMode.POLICY),
        **kwargs,
    )


class TestFirstAndRepeatDiscovery:
    @pytest.mark.asyncio
    async def test_first_discovery_records_and_dispatches_once(self, youtube_link, dedup, messenger):
        fetcher = FakeFetcher({"UUabc": [_video("abc123")]})
        checker = _checker(
            Platform.YOUTUBE, fetcher, FakeLinkStore([youtube_link]), dedup, format_video_upload
        )

        report = await checker.run_cycle(messenger)

        assert dedup.attempts == ["abc123"]
        assert set(dedup.records) == {"abc123"}
        assert dedup.records["abc123"][0] == youtube_link.id
        assert len(messenger.sent) == 1
        assert "https://youtube.com/watch?v=abc123" in messenger.sent[0][1]
        assert report.new_items == 1

    @pytest.mark.asyncio
    async def test_repeat_cycle_dispatches_only_once(self, youtube_link, dedup, messenger):
        fetcher = FakeFetcher({"UUabc": [_video("abc123")]})
        checker = _checker(
            Platform.YOUTUBE, fetcher, FakeLinkStore([youtube_link]), dedup, format_video_upload
        )

        await checker.run_cycle(messenger)
        second = await checker.run_cycle(messenger)

        assert len(messenger.sent) == 1
        assert second.new_items == 0
        assert second.candidates == 1

    @pytest.mark.asyncio
    async def test_every_candidate_is_checked_without_early_stop(self, reddit_link, dedup, messenger):
        # An already-seen item first in the batch must not hide newer ones after it.
        dedup.records["old"] = (reddit_link.id, None)
        fetcher = FakeFetcher({"python": [_post("old"), _post("new1"), _post("new2")]})
        checker = _checker(Platform.REDDIT, fetcher, FakeLinkStore([reddit_link]), dedup)

        report = await checker.run_cycle(messenger)

        assert dedup.attempts == ["old", "new1", "new2"]
        assert report.new_items == 2
        assert len(messenger.sent) == 2

    @pytest.mark.asyncio
    async def test_same_item_on_two_links_is_announced_once(self, dedup, messenger):
        first = make_link(id=1, link_identifier="python", destination_id=10)
        second = make_link(id=2, link_identifier="python", destination_id=20)
        fetcher = FakeFetcher({"python": [_post("shared")]})
        checker = _checker(Platform.REDDIT, fetcher, FakeLinkStore([first, second]), dedup)

        await checker.run_cycle(messenger)

        assert len(messenger.sent) == 1
        assert messenger.sent[0][0] == 10

    @pytest.mark.asyncio
    async def test_only_links_for_own_platform_are_polled(self, reddit_link, youtube_link, dedup, messenger):
        fetcher = FakeFetcher({"python": [_post("p1")]})
        links = FakeLinkStore([reddit_link, youtube_link])
        checker = _checker(Platform.REDDIT, fetcher, links, dedup)

        report = await checker.run_cycle(messenger)

        assert links.calls == [Platform.REDDIT]
        assert fetcher.calls == ["python"]
        assert report.links == 1


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_partial_batch_failure(self, dedup, messenger):
        broken = make_link(id=1, link_identifier="broken", destination_id=10)
        healthy = make_link(id=2, link_identifier="healthy", destination_id=20)
        fetcher = FakeFetcher(
            {
                "broken": FetchNetworkError("connection reset"),
                "healthy": [_post("p1")],
            }
        )
        checker = _checker(Platform.REDDIT, fetcher, FakeLinkStore([broken, healthy]), dedup)

        report = await checker.run_cycle(messenger)

        assert report.fetch_failures == 1
        assert [dest for dest, _, _ in messenger.sent] == [20]
        assert set(dedup.records) == {"p1"}

    @pytest.mark.asyncio
    async def test_parse_error_skips_link(self, reddit_link, dedup, messenger):
        fetcher = FakeFetcher({"python": FetchParseError("not a feed")})
        checker = _checker(Platform.REDDIT, fetcher, FakeLinkStore([reddit_link]), dedup)

        report = await checker.run_cycle(messenger)

        assert report.fetch_failures == 1
        assert messenger.sent == []

    @pytest.mark.asyncio
    async def test_slow_fetch_times_out_without_blocking_other_links(self, dedup, messenger):
        class SlowFetcher(FakeFetcher):
            async def fetch(self, link_identifier):
                if link_identifier == "slow":
                    await asyncio.sleep(10)
                return await super().fetch(link_identifier)

        slow = make_link(id=1, link_identifier="slow", destination_id=10)
        fast = make_link(id=2, link_identifier="fast", destination_id=20)
        fetcher = SlowFetcher({"fast": [_post("p1")]})
        checker = _checker(
            Platform.REDDIT, fetcher, FakeLinkStore([slow, fast]), dedup, fetch_timeout=0.05
        )

        report = await checker.run_cycle(messenger)

        assert report.fetch_failures == 1
        assert len(messenger.sent) == 1

    @pytest.mark.asyncio
    async def test_store_error_skips_only_that_item(self, reddit_link, messenger):
        dedup = FakeDedupStore(failing_ids={"bad"})
        fetcher = FakeFetcher({"python": [_post("bad"), _post("good")]})
        checker = _checker(Platform.REDDIT, fetcher, FakeLinkStore([reddit_link]), dedup)

        report = await checker.run_cycle(messenger)

        assert report.store_failures == 1
        assert report.new_items == 1
        assert len(messenger.sent) == 1
        assert "comments/good/" in messenger.sent[0][1]

    @pytest.mark.asyncio
    async def test_dispatch_failure_keeps_record_and_is_not_retried(self, reddit_link, dedup):
        fetcher = FakeFetcher({"python": [_post("p1")]})
        checker = _checker(Platform.REDDIT, fetcher, FakeLinkStore([reddit_link]), dedup)

        failing = FakeMessenger(fail=True)
        report = await checker.run_cycle(failing)
        assert report.dispatch_failures == 1
        assert "p1" in dedup.records

        working = FakeMessenger()
        await checker.run_cycle(working)
        assert working.sent == []

    @pytest.mark.asyncio
    async def test_link_load_failure_raises_store_unavailable(self, dedup, messenger):
        links = FakeLinkStore(error=StoreError("connection refused"))
        fetcher = FakeFetcher({})
        checker = _checker(Platform.REDDIT, fetcher, links, dedup)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await checker.run_cycle(messenger)

        assert exc_info.value.platform is Platform.REDDIT
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_link_error_does_not_abort_cycle(self, dedup, messenger):
        odd = make_link(id=1, link_identifier="odd", destination_id=10)
        fine = make_link(id=2, link_identifier="fine", destination_id=20)
        fetcher = FakeFetcher({"odd": RuntimeError("bug"), "fine": [_post("p1")]})
        checker = _checker(Platform.REDDIT, fetcher, FakeLinkStore([odd, fine]), dedup)

        await checker.run_cycle(messenger)

        assert len(messenger.sent) == 1


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_links_all_processed(self, dedup, messenger):
        links = [
            make_link(id=i, link_identifier=f"sub{i}", destination_id=100 + i) for i in range(5)
        ]
        fetcher = FakeFetcher({f"sub{i}": [_post(f"p{i}")] for i in range(5)})
        checker = _checker(
            Platform.REDDIT, fetcher, FakeLinkStore(links), dedup, concurrency=3
        )

        report = await checker.run_cycle(messenger)

        assert report.new_items == 5
        assert sorted(dest for dest, _, _ in messenger.sent) == [100, 101, 102, 103, 104]

    def test_concurrency_must_be_positive(self, dedup):
        with pytest.raises(ValueError):
            _checker(Platform.REDDIT, FakeFetcher({}), FakeLinkStore(), dedup, concurrency=0)

    def test_name_is_platform_value(self, dedup):
        checker = _checker(Platform.YOUTUBE, FakeFetcher({}), FakeLinkStore(), dedup)
        assert checker.name == "YouTube"
