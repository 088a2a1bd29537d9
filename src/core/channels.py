"""Helpers for deriving human-readable channel labels."""

from __future__ import annotations

from typing import Optional

from core.models import ChannelKind, ChannelRef

TEXT_CHANNEL_PREFIX = "#"


def channel_label(channel: ChannelRef, label_private_chats: bool = True) -> Optional[str]:
    """Return the label stored with a message identity.

    - direct: the counterpart's display tag (or None if private labels are off)
    - group: its configured name
    - text: its name prefixed with "#"
    - anything else: None
    """

    if channel.kind is ChannelKind.DIRECT:
        if not label_private_chats:
            return None
        return channel.recipient_tag
    if channel.kind is ChannelKind.GROUP:
        return channel.name
    if channel.kind is ChannelKind.TEXT:
        if channel.name is None:
            return None
        return f"{TEXT_CHANNEL_PREFIX}{channel.name}"
    return None
