"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

PAGE_SIZE = 100


@dataclass(frozen=True)
class ArchiveConfig:
    """Archival settings for the core pipeline."""

    domains: Tuple[str, ...]
    parse: bool = False
    oneshot: bool = False
    label_private_chats: bool = True
    page_size: int = PAGE_SIZE

    @property
    def backfill_only(self) -> bool:
        """True when live events must be ignored (one-shot backfill run)."""

        return self.parse and self.oneshot
