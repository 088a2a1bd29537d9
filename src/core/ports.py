"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage and gateway adapters so that
the core can be reused with different backends.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from core.models import ChannelRef, MessageRecord, MessageSnapshot, RevisionRecord


class RevisionStorePort(Protocol):
    """Storage operations required by the core pipeline.

    Write methods report row-level failures by returning False instead of
    raising, so a single bad row never stops the archiver.
    """

    def ensure_schema(self) -> None:
        ...

    def create_message(self, record: MessageRecord) -> bool:
        ...

    def append_revision(self, record: RevisionRecord) -> bool:
        ...

    def store_revision(self, identity: MessageRecord, revision: RevisionRecord) -> bool:
        ...

    def close(self) -> None:
        ...


class GatewayPort(Protocol):
    """Read operations the crawler needs from the messaging service."""

    async def list_text_channels(self) -> List[ChannelRef]:
        ...

    async def fetch_history(
        self,
        channel: ChannelRef,
        limit: int,
        before_id: Optional[int] = None,
    ) -> List[MessageSnapshot]:
        """Return up to `limit` messages older than `before_id`, newest first."""
        ...
