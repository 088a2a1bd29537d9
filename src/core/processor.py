"""Core message processing.

This module is integration-agnostic. It only relies on the storage port,
so the crawler and the live ingestor share exactly one classify/persist path.
"""

from __future__ import annotations

import logging

from core.channels import channel_label
from core.classifier import ContentClassifier
from core.models import MessageRecord, MessageSnapshot, RevisionRecord
from core.ports import RevisionStorePort

LOGGER = logging.getLogger(__name__)


class MessageProcessor:
    """Classifies one message version and persists it when relevant."""

    def __init__(
        self,
        classifier: ContentClassifier,
        storage: RevisionStorePort,
        label_private_chats: bool = True,
    ) -> None:
        self._classifier = classifier
        self._storage = storage
        self._label_private_chats = label_private_chats
        self.revisions_stored = 0

    def handle(self, snapshot: MessageSnapshot, is_edit: bool = False) -> bool:
        """Process one message version; return True if a revision was stored.

        The identity row is upserted on both the original and the edit path,
        so a message that only became relevant after an edit still gets one
        and a message seen twice (backfill + live) never gets two.
        """

        if not self._classifier.is_relevant(snapshot.text):
            return False

        identity = MessageRecord(
            channel_id=snapshot.channel.id,
            message_id=snapshot.id,
            channel_label=channel_label(snapshot.channel, self._label_private_chats),
            author_tag=snapshot.author_tag,
        )
        revision = RevisionRecord(
            channel_id=snapshot.channel.id,
            message_id=snapshot.id,
            text=snapshot.text,
            timestamp=snapshot.timestamp,
        )
        if not self._storage.store_revision(identity, revision):
            return False

        self.revisions_stored += 1
        LOGGER.debug(
            "Stored %s revision for message %s",
            "edited" if is_edit else "original",
            snapshot.id,
        )
        return True
