"""
Append-only in-memory event log (off-chain indexing stand-in).
"""
from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import List, Optional

from loguru import logger

from .events import LedgerEvent


class EventLog:
    def __init__(self) -> None:
        self._entries: List[LedgerEvent] = []
        self._lock = Lock()

    def __call__(self, event: LedgerEvent) -> None:
        with self._lock:
            self._entries.append(event)

    def events(self, identity: Optional[str] = None) -> List[LedgerEvent]:
        with self._lock:
            entries = list(self._entries)
        if identity is None:
            return entries
        return [e for e in entries if e.identity == identity]

    def names(self, identity: Optional[str] = None) -> List[str]:
        return [e.name for e in self.events(identity)]

    def to_jsonl(self, path: Path | str) -> int:
        """Write one JSON object per line. Returns the number of events written."""
        entries = self.events()
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        with out.open("w", encoding="utf-8") as f:
            for e in entries:
                f.write(json.dumps(e.to_dict()) + "\n")
        logger.info("Exported {} events to {}", len(entries), out)
        return len(entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
