"""Archival pipeline orchestration.

The pipeline is the single owner of the state shared by the crawler and the
live ingestor: the storage handle and the channel-completion counter. It is
built once at startup and closed once at shutdown.

Channel crawls are interleaved on one event loop, so the counter needs no
locking. Every crawl decrements it exactly once, whether it finished or
failed, so a broken channel can never stall the completion signal.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import List, Optional, Sequence

from core.classifier import ContentClassifier
from core.config import ArchiveConfig
from core.crawler import ChannelScanResult, HistoryCrawler
from core.live import LiveIngestor
from core.models import ChannelRef
from core.ports import GatewayPort, RevisionStorePort
from core.processor import MessageProcessor

LOGGER = logging.getLogger(__name__)


@dataclass
class BackfillSummary:
    """Aggregated outcome of one backfill run."""

    results: List[ChannelScanResult] = field(default_factory=list)
    # Set when the channel list itself could not be fetched.
    listing_failed: bool = False

    @property
    def channels(self) -> int:
        return len(self.results)

    @property
    def failed_channels(self) -> List[ChannelRef]:
        return [result.channel for result in self.results if result.failed]

    @property
    def messages(self) -> int:
        return sum(result.messages for result in self.results)


class ArchivalPipeline:
    """Wires classifier and storage into both the crawler and live ingestor."""

    def __init__(
        self,
        config: ArchiveConfig,
        storage: RevisionStorePort,
        gateway: GatewayPort,
    ) -> None:
        self.config = config
        self._storage = storage
        self._gateway = gateway
        self.classifier = ContentClassifier(config.domains)
        self.processor = MessageProcessor(
            self.classifier,
            storage,
            label_private_chats=config.label_private_chats,
        )
        self.crawler = HistoryCrawler(gateway, self.processor, page_size=config.page_size)
        self.live = LiveIngestor(self.processor, suppressed=config.backfill_only)
        self.channels_remaining = 0
        self.backfill_done = asyncio.Event()
        self._closed = False

    @property
    def should_exit_after_backfill(self) -> bool:
        return self.config.oneshot

    def open(self) -> None:
        """Prepare storage. Schema errors propagate: they are fatal."""

        self._storage.ensure_schema()

    async def backfill(self, channels: Optional[Sequence[ChannelRef]] = None) -> BackfillSummary:
        """Crawl every text channel concurrently and wait for all of them."""

        LOGGER.info("Preparing to scan chat history...")
        self.backfill_done.clear()
        if channels is None:
            try:
                channels = await self._gateway.list_text_channels()
            except Exception:
                LOGGER.exception("Failed to list channels to scan")
                self.channels_remaining = 0
                self.backfill_done.set()
                return BackfillSummary(listing_failed=True)

        self.channels_remaining = len(channels)
        if not channels:
            self._finish_backfill()
            return BackfillSummary()

        results = await asyncio.gather(*(self._scan_channel(channel) for channel in channels))
        summary = BackfillSummary(results=list(results))
        if summary.failed_channels:
            LOGGER.warning(
                "%s of %s channels could not be fully scanned",
                len(summary.failed_channels),
                summary.channels,
            )
        return summary

    async def _scan_channel(self, channel: ChannelRef) -> ChannelScanResult:
        try:
            return await self.crawler.crawl_channel(channel)
        except Exception:
            LOGGER.exception("Error while scanning channel %s", channel.id)
            return ChannelScanResult(channel=channel, failed=True)
        finally:
            self.channels_remaining -= 1
            if self.channels_remaining == 0:
                self._finish_backfill()

    def _finish_backfill(self) -> None:
        LOGGER.info("Scanning complete.")
        self.backfill_done.set()

    def close(self) -> None:
        """Release storage; safe to call more than once."""

        if self._closed:
            return
        self._closed = True
        self._storage.close()
