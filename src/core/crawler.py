"""Paginated history backfill (core domain).

Each channel is walked backward from the newest message in pages of
`page_size`, using the oldest message id fetched so far as the cursor. A page
shorter than `page_size` means the channel is exhausted.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional

from core.config import PAGE_SIZE
from core.models import ChannelRef, MessageSnapshot
from core.ports import GatewayPort
from core.processor import MessageProcessor

LOGGER = logging.getLogger(__name__)


@dataclass
class ChannelScanResult:
    """Outcome of one channel crawl. A failed crawl is never resumed."""

    channel: ChannelRef
    pages: int = 0
    messages: int = 0
    failed: bool = False


def revision_chain(snapshot: MessageSnapshot) -> List[MessageSnapshot]:
    """Return every known version of a message, original first."""

    if not snapshot.edits:
        return [snapshot]
    return list(reversed(snapshot.edits))


def describe_channel(channel: ChannelRef) -> str:
    return f"#{channel.name}" if channel.name else f"channel {channel.id}"


class HistoryCrawler:
    """Feeds a channel's full history, edits included, into the processor."""

    def __init__(
        self,
        gateway: GatewayPort,
        processor: MessageProcessor,
        page_size: int = PAGE_SIZE,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._gateway = gateway
        self._processor = processor
        self._page_size = page_size

    def process_message_edits(self, snapshot: MessageSnapshot) -> None:
        """Process the original version, then each edit in chronological order."""

        original, *edits = revision_chain(snapshot)
        self._processor.handle(original, is_edit=False)
        for edited in edits:
            self._processor.handle(edited, is_edit=True)

    async def crawl_channel(self, channel: ChannelRef) -> ChannelScanResult:
        """Walk one channel to its oldest message.

        Fetch errors are logged and end the crawl for this channel only; the
        result is returned either way so callers can always account for it.
        """

        result = ChannelScanResult(channel=channel)
        label = describe_channel(channel)
        LOGGER.info("Scanning channel %s...", label)

        before_id: Optional[int] = None
        while True:
            try:
                page = await self._gateway.fetch_history(
                    channel, limit=self._page_size, before_id=before_id
                )
            except Exception:
                LOGGER.exception("Failed to fetch history for %s", label)
                result.failed = True
                return result

            result.pages += 1
            for snapshot in page:
                self.process_message_edits(snapshot)
            result.messages += len(page)

            if len(page) != self._page_size:
                break
            # Pages come newest first, so the last entry is the oldest so far.
            before_id = page[-1].id

        LOGGER.info("Finished scanning channel %s!", label)
        return result
