"""Telethon gateway adapter.

Implements the core GatewayPort on top of a connected TelegramClient.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from telethon import TelegramClient

from adapters.telegram_mapper import build_snapshot, channel_ref_from_dialog
from core.models import ChannelKind, ChannelRef, MessageSnapshot

LOGGER = logging.getLogger(__name__)


class TelethonGateway:
    """Read-side gateway used by the history crawler."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def list_text_channels(self) -> List[ChannelRef]:
        """Return every group and channel the account has joined.

        One-to-one chats are skipped; they only reach the archive through
        live events.
        """

        channels: List[ChannelRef] = []
        async for dialog in self._client.iter_dialogs():
            channel = channel_ref_from_dialog(dialog)
            if channel.kind in (ChannelKind.TEXT, ChannelKind.GROUP):
                channels.append(channel)
        LOGGER.info("Found %s channels to scan", len(channels))
        return channels

    async def fetch_history(
        self,
        channel: ChannelRef,
        limit: int,
        before_id: Optional[int] = None,
    ) -> List[MessageSnapshot]:
        """Return up to `limit` messages older than `before_id`, newest first."""

        # offset_id=0 means "start from the newest message".
        messages = await self._client.get_messages(
            channel.id,
            limit=limit,
            offset_id=before_id or 0,
        )
        return [build_snapshot(message, channel) for message in messages]
