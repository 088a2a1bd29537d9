"""Shared console formatting helpers.

Keeping formatting here keeps the live echo and the `show` command consistent.
"""

from __future__ import annotations

from typing import List, Sequence

from core.channels import channel_label
from core.classifier import ContentClassifier
from core.models import ChannelKind, MessageRecord, MessageSnapshot, RevisionRecord

DIVIDER = "──────────────"


def tab_newlines(text: str) -> str:
    """Indent every line after the first with a tab for readability."""

    return "\n".join(
        f"\t{line}" if index else line for index, line in enumerate(text.split("\n"))
    )


def format_live_message(snapshot: MessageSnapshot, edit: bool = False) -> str:
    """Return the one-entry console echo for a live message.

    Direct messages show only the author; other messages are prefixed with
    the same label the archive stores for their channel.
    """

    prefix = "(edit) " if edit else ""
    body = tab_newlines(snapshot.text)
    label = None
    if snapshot.channel.kind is not ChannelKind.DIRECT:
        label = channel_label(snapshot.channel)
    if label:
        return f"{prefix}{label}> {snapshot.author_tag}> {body}"
    return f"{prefix}{snapshot.author_tag}> {body}"


def format_archived_message(
    identity: MessageRecord,
    revisions: Sequence[RevisionRecord],
    classifier: ContentClassifier,
) -> str:
    """Render an archived message with its revision history, oldest first."""

    lines: List[str] = [
        f"Message {identity.message_id} (chat {identity.channel_id})",
        f"Channel: {identity.channel_label or '-'}",
        f"Author:  {identity.author_tag}",
        DIVIDER,
    ]
    for index, revision in enumerate(revisions, start=1):
        timestamp = revision.timestamp.astimezone().strftime("%H:%M:%S %d-%m-%Y")
        lines.extend(["", f"[{index}] {timestamp}", tab_newlines(revision.text)])

        classification = classifier.classify(revision.text)
        for block in classification.code_blocks:
            lines.append(f"\tcode ({block.lang or 'plain'}): {len(block.code.splitlines())} line(s)")
        for link in classification.links:
            lines.append(f"\tlink: {link}")

    lines.append(DIVIDER)
    return "\n".join(lines)
