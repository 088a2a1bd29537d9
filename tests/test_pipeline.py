from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone
import os
from typing import Dict, List, Optional

from adapters.sqlite_storage import SQLiteRevisionStore
from core.config import ArchiveConfig
from core.models import ChannelKind, ChannelRef, MessageRecord, MessageSnapshot
from core.pipeline import ArchivalPipeline

GENERAL = ChannelRef(id=10, kind=ChannelKind.TEXT, name="general")
RANDOM = ChannelRef(id=20, kind=ChannelKind.TEXT, name="random")
BROKEN = ChannelRef(id=30, kind=ChannelKind.TEXT, name="broken")
CREATED = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
EDITED = CREATED + timedelta(minutes=3)
FIRST_TEXT = "check this out ```js\nconsole.log(1)\n```"
EDITED_TEXT = "see ``` js\nconsole.log(2)\n``` thanks"


class FakeGateway:
    def __init__(self, history: Dict[int, List[MessageSnapshot]], broken: Optional[set] = None) -> None:
        self._history = history
        self._broken = broken or set()

    async def list_text_channels(self) -> List[ChannelRef]:
        return [GENERAL, RANDOM]

    async def fetch_history(
        self, channel: ChannelRef, limit: int, before_id: Optional[int] = None
    ) -> List[MessageSnapshot]:
        await asyncio.sleep(0)
        if channel.id in self._broken:
            raise ConnectionError("fetch failed")
        messages = sorted(self._history.get(channel.id, []), key=lambda m: m.id, reverse=True)
        older = [m for m in messages if before_id is None or m.id < before_id]
        return older[:limit]


def _message(message_id: int, text: str = FIRST_TEXT, channel: ChannelRef = GENERAL) -> MessageSnapshot:
    return MessageSnapshot(
        id=message_id,
        text=text,
        created_at=CREATED,
        author_tag="alice#0001",
        channel=channel,
    )


def _pipeline(tmp_path, gateway: FakeGateway, **config) -> tuple[ArchivalPipeline, SQLiteRevisionStore]:
    store = SQLiteRevisionStore(os.path.join(tmp_path, "archive.db"))
    pipeline = ArchivalPipeline(ArchiveConfig(domains=("pastebin.com",), **config), store, gateway)
    pipeline.open()
    return pipeline, store


def test_backfill_scans_every_channel_and_signals_completion(tmp_path) -> None:
    gateway = FakeGateway({10: [_message(1)], 20: [_message(1, channel=RANDOM), _message(2, "hi", RANDOM)]})
    pipeline, store = _pipeline(tmp_path, gateway, parse=True)

    summary = asyncio.run(pipeline.backfill())

    assert summary.channels == 2
    assert summary.messages == 3
    assert not summary.failed_channels
    assert pipeline.channels_remaining == 0
    assert pipeline.backfill_done.is_set()
    assert len(store.list_messages()) == 2
    pipeline.close()


def test_failed_channel_still_counts_towards_completion(tmp_path) -> None:
    gateway = FakeGateway({10: [_message(1)]}, broken={30})
    pipeline, store = _pipeline(tmp_path, gateway, parse=True, oneshot=True)

    summary = asyncio.run(pipeline.backfill([GENERAL, BROKEN]))

    assert summary.failed_channels == [BROKEN]
    assert pipeline.channels_remaining == 0
    assert pipeline.backfill_done.is_set()
    assert pipeline.should_exit_after_backfill
    assert store.get_message(10, 1) is not None
    pipeline.close()


def test_backfill_with_no_channels_completes(tmp_path) -> None:
    pipeline, _ = _pipeline(tmp_path, FakeGateway({}), parse=True)
    summary = asyncio.run(pipeline.backfill([]))
    assert summary.channels == 0
    assert pipeline.backfill_done.is_set()
    pipeline.close()


def test_end_to_end_create_then_edit(tmp_path) -> None:
    pipeline, store = _pipeline(tmp_path, FakeGateway({}))
    created = _message(7)

    assert pipeline.live.on_message_created(created)
    assert store.list_messages() == [
        MessageRecord(channel_id=10, message_id=7, channel_label="#general", author_tag="alice#0001")
    ]
    revisions = store.list_revisions(10, 7)
    assert [(r.text, r.timestamp) for r in revisions] == [(FIRST_TEXT, CREATED)]

    edited = replace(created, text=EDITED_TEXT, edited_at=EDITED)
    assert pipeline.live.on_message_updated(edited)

    assert len(store.list_messages()) == 1
    revisions = store.list_revisions(10, 7)
    assert [(r.text, r.timestamp) for r in revisions] == [
        (FIRST_TEXT, CREATED),
        (EDITED_TEXT, EDITED),
    ]
    pipeline.close()


def test_backfill_and_live_event_share_one_identity(tmp_path) -> None:
    pipeline, store = _pipeline(tmp_path, FakeGateway({10: [_message(1)]}), parse=True)

    asyncio.run(pipeline.backfill([GENERAL]))
    pipeline.live.on_message_created(_message(1))

    assert len(store.list_messages()) == 1
    assert len(store.list_revisions(10, 1)) == 2
    pipeline.close()


def test_irrelevant_live_message_is_not_stored(tmp_path) -> None:
    pipeline, store = _pipeline(tmp_path, FakeGateway({}))
    assert not pipeline.live.on_message_created(_message(3, "good morning"))
    assert store.list_messages() == []
    pipeline.close()


def test_live_events_ignored_in_oneshot_backfill(tmp_path) -> None:
    pipeline, store = _pipeline(tmp_path, FakeGateway({}), parse=True, oneshot=True)

    assert pipeline.live.suppressed
    assert not pipeline.live.on_message_created(_message(4))
    assert not pipeline.live.on_message_updated(_message(4))
    assert store.list_messages() == []
    pipeline.close()


def test_live_events_processed_when_parse_without_oneshot(tmp_path) -> None:
    pipeline, store = _pipeline(tmp_path, FakeGateway({}), parse=True)
    assert not pipeline.live.suppressed
    assert pipeline.live.on_message_created(_message(5))
    assert store.get_message(10, 5) is not None
    pipeline.close()


def test_close_is_idempotent(tmp_path) -> None:
    pipeline, _ = _pipeline(tmp_path, FakeGateway({}))
    pipeline.close()
    pipeline.close()


class UnreachableGateway(FakeGateway):
    async def list_text_channels(self) -> List[ChannelRef]:
        raise ConnectionError("dialogs unavailable")


def test_channel_listing_failure_completes_backfill(tmp_path) -> None:
    pipeline, store = _pipeline(tmp_path, UnreachableGateway({}), parse=True, oneshot=True)

    summary = asyncio.run(pipeline.backfill())

    assert summary.listing_failed
    assert summary.channels == 0
    assert pipeline.channels_remaining == 0
    assert pipeline.backfill_done.is_set()
    assert store.list_messages() == []
    pipeline.close()
