"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Any, Optional

from telethon.tl.custom import Message

from core.models import ChannelKind, ChannelRef, MessageSnapshot


def display_tag(entity: Any) -> str:
    """Return a stable display tag for a user, chat, or channel entity."""

    username = getattr(entity, "username", None)
    if isinstance(username, str) and username:
        return f"@{username}"
    title = getattr(entity, "title", None)
    if title:
        return str(title)
    first = getattr(entity, "first_name", None)
    last = getattr(entity, "last_name", None)
    if first or last:
        return " ".join(part for part in [first, last] if part)
    entity_id = getattr(entity, "id", None)
    return str(entity_id or "unknown")


def _channel_kind(obj: Any) -> ChannelKind:
    # Works for both Message and Dialog; megagroups report is_channel too.
    if getattr(obj, "is_private", False) or getattr(obj, "is_user", False):
        return ChannelKind.DIRECT
    if getattr(obj, "is_channel", False):
        return ChannelKind.TEXT
    if getattr(obj, "is_group", False):
        return ChannelKind.GROUP
    return ChannelKind.OTHER


def _channel_ref(obj: Any, chat_id: int, chat: Any) -> ChannelRef:
    kind = _channel_kind(obj)
    if kind is ChannelKind.DIRECT:
        return ChannelRef(
            id=chat_id,
            kind=kind,
            recipient_tag=display_tag(chat) if chat is not None else None,
        )
    name = getattr(chat, "title", None) or getattr(obj, "name", None)
    return ChannelRef(id=chat_id, kind=kind, name=name)


def channel_ref_from_message(message: Message) -> ChannelRef:
    """Build the channel reference a message was posted in."""

    return _channel_ref(message, message.chat_id, getattr(message, "chat", None))


def channel_ref_from_dialog(dialog: Any) -> ChannelRef:
    """Build a channel reference from a Telethon Dialog."""

    return _channel_ref(dialog, dialog.id, getattr(dialog, "entity", None))


def _author_tag(message: Message) -> str:
    sender = getattr(message, "sender", None)
    if sender is not None:
        return display_tag(sender)
    # Broadcast channel posts have no sender; fall back to the signature.
    post_author = getattr(message, "post_author", None)
    if post_author:
        return str(post_author)
    chat = getattr(message, "chat", None)
    if chat is not None:
        return display_tag(chat)
    return str(getattr(message, "sender_id", None) or "unknown")


def build_snapshot(message: Message, channel: Optional[ChannelRef] = None) -> MessageSnapshot:
    """Build a core MessageSnapshot from a Telethon Message.

    `message.text` is the Markdown rendering of the message, so code entities
    come through as ``` fences the classifier can see. Telegram keeps no
    edit history, so the snapshot only carries its current version.
    """

    return MessageSnapshot(
        id=message.id,
        text=message.text or "",
        created_at=message.date,
        edited_at=getattr(message, "edit_date", None),
        author_tag=_author_tag(message),
        channel=channel or channel_ref_from_message(message),
    )
