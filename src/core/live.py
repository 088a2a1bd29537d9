"""Live event handling (core domain)."""

from __future__ import annotations

import logging

from core.models import MessageSnapshot
from core.processor import MessageProcessor

LOGGER = logging.getLogger(__name__)


class LiveIngestor:
    """Routes created/updated message events into the shared processor.

    While suppressed (one-shot backfill runs), events are dropped so messages
    arriving during the crawl window are not processed twice.
    """

    def __init__(self, processor: MessageProcessor, suppressed: bool = False) -> None:
        self._processor = processor
        self.suppressed = suppressed

    def on_message_created(self, snapshot: MessageSnapshot) -> bool:
        if self.suppressed:
            LOGGER.debug("Ignoring new message %s during one-shot backfill", snapshot.id)
            return False
        return self._processor.handle(snapshot, is_edit=False)

    def on_message_updated(self, snapshot: MessageSnapshot) -> bool:
        # Only the post-edit content is classified.
        if self.suppressed:
            LOGGER.debug("Ignoring edit of message %s during one-shot backfill", snapshot.id)
            return False
        return self._processor.handle(snapshot, is_edit=True)
