"""One platform's poll cycle: load links, fetch, dedup, notify."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from feedbell.models import ChannelLink, Platform

from .base import (
    ChannelLinkStore,
    CycleReport,
    DedupStore,
    DispatchError,
    FetchError,
    Fetcher,
    Messenger,
    StoreError,
    StoreUnavailableError,
)
from .dispatcher import Dispatcher

logger = logging.getLogger(__name__)


class PlatformChecker:
    """Runs poll cycles for every channel link of one platform.

    Failures are contained at the smallest possible scope: a failed fetch
    skips the link, a failed dedup insert skips the item, and a failed send
    is only logged. The dedup record is written before sending and is never
    rolled back, so an item is announced at most once.
    """

    def __init__(
        self,
        platform: Platform,
        fetcher: Fetcher,
        links: ChannelLinkStore,
        notified: DedupStore,
        dispatcher: Dispatcher,
        *,
        fetch_timeout: float = 30.0,
        concurrency: int = 1,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.platform = platform
        self.fetcher = fetcher
        self.links = links
        self.notified = notified
        self.dispatcher = dispatcher
        self.fetch_timeout = fetch_timeout
        self.concurrency = concurrency

    @property
    def name(self) -> str:
        return self.platform.value

    async def run_cycle(self, messenger: Messenger) -> CycleReport:
        try:
            links = await self.links.list_for_platform(self.platform)
        except StoreError as e:
            raise StoreUnavailableError(self.platform, e) from e

        report = CycleReport(platform=self.platform, links=len(links))
        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(link: ChannelLink) -> None:
            async with semaphore:
                await self._check_link(link, messenger, report)

        results = await asyncio.gather(*(guarded(link) for link in links), return_exceptions=True)
        for link, result in zip(links, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Unexpected error checking {self.name} link {link.link_identifier}: {result}",
                    exc_info=result,
                )

        logger.info(f"Cycle finished: {report.summary()}")
        return report

    async def _check_link(self, link: ChannelLink, messenger: Messenger, report: CycleReport) -> None:
        try:
            items = await asyncio.wait_for(
                self.fetcher.fetch(link.link_identifier), timeout=self.fetch_timeout
            )
        except TimeoutError:
            report.fetch_failures += 1
            logger.error(
                f"{self.name} fetch timed out for {link.link_identifier} after {self.fetch_timeout}s"
            )
            return
        except FetchError as e:
            report.fetch_failures += 1
            logger.error(f"{self.name} fetch error for {link.link_identifier}: {e}")
            return

        report.candidates += len(items)
        for item in items:
            try:
                is_new = await self.notified.record_if_new(item.item_id, link.id, datetime.now(UTC))
            except StoreError as e:
                report.store_failures += 1
                logger.error(f"DB error recording {item.item_id}: {e}")
                continue

            if not is_new:
                continue

            report.new_items += 1
            logger.info(f"New post: {item.item_id}, debug mode: {self.dispatcher.debug_mode}")

            try:
                await self.dispatcher.dispatch(messenger, link, item)
            except DispatchError as e:
                report.dispatch_failures += 1
                logger.error(
                    f"Failed to announce {item.item_id} in channel {link.destination_id}: {e}"
                )
