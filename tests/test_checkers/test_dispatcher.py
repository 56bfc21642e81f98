"""Tests for notification formatting and mention resolution."""

import asyncio

import pytest

from conftest import FakeMessenger, make_link
from feedbell.checkers.base import CandidateItem, DeliveryError, MentionDirective
from feedbell.checkers.dispatcher import (
    Dispatcher,
    MentionMode,
    format_feed_post,
    format_video_upload,
    mention_text,
    resolve_mention,
)
from feedbell.models import Platform

ROLE_ID = 555


class TestResolveMentionPolicy:
    """Mention matrix for MentionMode.POLICY (feed posts)."""

    @pytest.mark.parametrize("should_mention", [True, False])
    @pytest.mark.parametrize("role", [None, ROLE_ID])
    def test_debug_mode_never_pings(self, should_mention, role):
        link = make_link(should_mention=should_mention, mention_role_id=role)
        directive = resolve_mention(link, debug_mode=True, mode=MentionMode.POLICY)
        assert directive == MentionDirective.none()

    @pytest.mark.parametrize("role", [None, ROLE_ID])
    def test_mentions_off_suppresses_pings(self, role):
        link = make_link(should_mention=False, mention_role_id=role)
        directive = resolve_mention(link, debug_mode=False, mode=MentionMode.POLICY)
        assert directive.kind == "none"

    def test_role_target_allows_only_that_role(self):
        link = make_link(should_mention=True, mention_role_id=ROLE_ID)
        directive = resolve_mention(link, debug_mode=False, mode=MentionMode.POLICY)
        assert directive == MentionDirective.role(ROLE_ID)

    def test_no_role_allows_everyone(self):
        link = make_link(should_mention=True, mention_role_id=None)
        directive = resolve_mention(link, debug_mode=False, mode=MentionMode.POLICY)
        assert directive == MentionDirective.everyone()


class TestResolveMentionEveryone:
    """MentionMode.EVERYONE ignores the link policy; only debug mode matters."""

    def test_ignores_disabled_mentions_and_role(self):
        link = make_link(should_mention=False, mention_role_id=ROLE_ID)
        directive = resolve_mention(link, debug_mode=False, mode=MentionMode.EVERYONE)
        assert directive == MentionDirective.everyone()

    def test_debug_mode_still_wins(self):
        link = make_link(should_mention=True)
        directive = resolve_mention(link, debug_mode=True, mode=MentionMode.EVERYONE)
        assert directive == MentionDirective.none()


class TestMentionText:
    def test_role_mention_in_policy_mode(self):
        link = make_link(mention_role_id=ROLE_ID)
        assert mention_text(link, MentionMode.POLICY) == f"<@&{ROLE_ID}>"

    def test_role_mention_kept_when_pings_are_off(self):
        link = make_link(should_mention=False, mention_role_id=ROLE_ID)
        assert mention_text(link, MentionMode.POLICY) == f"<@&{ROLE_ID}>"

    def test_everyone_without_role(self):
        assert mention_text(make_link(), MentionMode.POLICY) == "@everyone"

    def test_everyone_mode_ignores_role(self):
        link = make_link(mention_role_id=ROLE_ID)
        assert mention_text(link, MentionMode.EVERYONE) == "@everyone"


class TestFormatting:
    def test_feed_post_with_author_and_category(self):
        link = make_link(display_name="Python")
        item = CandidateItem(
            item_id="t3_abc",
            url="https://www.reddit.com/r/python/comments/abc/",
            author="/u/alice",
            category="r/python",
        )
        text = format_feed_post(link, item, "@everyone")
        assert text == (
            "Hey @everyone, user **/u/alice** has posted on **r/python**!\n"
            "https://www.reddit.com/r/python/comments/abc/"
        )

    def test_feed_post_falls_back_to_unknown_author_and_display_name(self):
        link = make_link(display_name="Python")
        item = CandidateItem(item_id="t3_abc", url="https://example.com/p")
        text = format_feed_post(link, item, "@everyone")
        assert "user **<unknown>**" in text
        assert "posted on **Python**!" in text

    def test_video_upload(self, youtube_link):
        item = CandidateItem(item_id="abc123", url="https://youtube.com/watch?v=abc123")
        text = format_video_upload(youtube_link, item, "@everyone")
        assert text == (
            "Hey @everyone, **Some Creator** has released a new video!\n"
            "https://youtube.com/watch?v=abc123"
        )


class TestDispatcher:
    @pytest.mark.asyncio
    async def test_dispatch_sends_to_link_destination(self):
        link = make_link(destination_id=42, mention_role_id=ROLE_ID)
        messenger = FakeMessenger()
        dispatcher = Dispatcher(format_feed_post, mention_mode=MentionMode.POLICY)

        await dispatcher.dispatch(messenger, link, CandidateItem(item_id="x", url="https://x"))

        assert len(messenger.sent) == 1
        destination, text, mentions = messenger.sent[0]
        assert destination == 42
        assert text.startswith(f"Hey <@&{ROLE_ID}>,")
        assert mentions == MentionDirective.role(ROLE_ID)

    @pytest.mark.asyncio
    async def test_video_dispatch_in_debug_mode_sends_plain_text(self):
        link = make_link(platform=Platform.YOUTUBE, display_name="Creator")
        messenger = FakeMessenger()
        dispatcher = Dispatcher(
            format_video_upload, debug_mode=True, mention_mode=MentionMode.EVERYONE
        )

        await dispatcher.dispatch(messenger, link, CandidateItem(item_id="v", url="https://v"))

        _, text, mentions = messenger.sent[0]
        assert "@everyone" in text
        assert mentions.kind == "none"

    @pytest.mark.asyncio
    async def test_delivery_error_propagates(self):
        dispatcher = Dispatcher(format_feed_post)
        with pytest.raises(DeliveryError):
            await dispatcher.dispatch(
                FakeMessenger(fail=True), make_link(), CandidateItem(item_id="x", url="u")
            )

    @pytest.mark.asyncio
    async def test_timeout_becomes_delivery_error(self):
        class SlowMessenger:
            async def send(self, destination_id, text, mentions):
                await asyncio.sleep(10)

        dispatcher = Dispatcher(format_feed_post, timeout=0.01)
        with pytest.raises(DeliveryError, match="timed out"):
            await dispatcher.dispatch(
                SlowMessenger(), make_link(), CandidateItem(item_id="x", url="u")
            )
