"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class ChannelKind(str, Enum):
    """Kinds of conversations a message can come from."""

    DIRECT = "direct"
    GROUP = "group"
    TEXT = "text"
    OTHER = "other"


@dataclass(frozen=True)
class ChannelRef:
    """Minimal channel reference used by the crawler and the label helpers."""

    id: int
    kind: ChannelKind
    name: Optional[str] = None
    # Only set for direct conversations: the counterpart's display tag.
    recipient_tag: Optional[str] = None


@dataclass(frozen=True)
class MessageSnapshot:
    """One observed version of a message, as delivered by the gateway."""

    id: int
    text: str
    created_at: datetime
    author_tag: str
    channel: ChannelRef
    edited_at: Optional[datetime] = None
    # Every known version of the message, this one included, newest first.
    # Empty means only this version is known.
    edits: Tuple["MessageSnapshot", ...] = field(default=(), compare=False, repr=False)

    @property
    def timestamp(self) -> datetime:
        """Latest modification time: edit time if edited, else creation time."""

        return self.edited_at or self.created_at


@dataclass(frozen=True)
class MessageRecord:
    """Persisted identity of a message, written once per message id.

    Message ids are only unique within a channel, so the channel id is part
    of the key.
    """

    channel_id: int
    message_id: int
    channel_label: Optional[str]
    author_tag: str


@dataclass(frozen=True)
class RevisionRecord:
    """Persisted point-in-time content of a message (append-only)."""

    channel_id: int
    message_id: int
    text: str
    timestamp: datetime
