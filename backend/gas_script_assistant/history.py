"""Append-only record of generation rounds within one session."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

INITIAL = "initial"
ERROR_FIX = "error_fix"

KIND_LABELS = {
    INITIAL: "Initial generation",
    ERROR_FIX: "Error fix",
}


def new_entry_id() -> str:
    """Millisecond clock in hex plus a random suffix; unique within a session."""
    return f"{int(time.time() * 1000):x}{secrets.token_hex(4)}"


@dataclass(frozen=True)
class HistoryEntry:
    kind: str
    prompt: str
    script: str
    explanation: Optional[str] = None
    error_description: Optional[str] = None
    error_image: Optional[str] = None
    id: str = field(default_factory=new_entry_id)
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.kind not in KIND_LABELS:
            raise ValueError(f"Unknown history entry kind: {self.kind!r}")

    @property
    def kind_label(self) -> str:
        return KIND_LABELS[self.kind]

    @property
    def time_label(self) -> str:
        return self.timestamp.strftime("%Y-%m-%d %H:%M:%S")


class HistoryLedger:
    """Ordered log of rounds, oldest first. Entries are never edited."""

    def __init__(self) -> None:
        self._entries: List[HistoryEntry] = []

    def append(self, entry: HistoryEntry) -> str:
        self._entries.append(entry)
        return entry.id

    def record(
        self,
        kind: str,
        prompt: str,
        script: str,
        explanation: str | None = None,
        error_description: str | None = None,
        error_image: str | None = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            kind=kind,
            prompt=prompt,
            script=script,
            explanation=explanation,
            error_description=error_description,
            error_image=error_image,
        )
        self.append(entry)
        return entry

    def reset(self) -> None:
        self._entries = []

    def all(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def latest(self) -> HistoryEntry | None:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(tuple(self._entries))
