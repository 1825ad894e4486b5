"""In-memory cache of loaded reference pools."""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Any


@dataclass(frozen=True)
class PoolEntry:
    source: str
    kind: str
    items: list[Any]
    loaded_at: float


class PoolCache:
    """Successful pool loads keyed by ``(kind, source)``."""

    def __init__(self) -> None:
        self._store: dict[tuple[str, str], PoolEntry] = {}

    def get(self, source: str, kind: str) -> PoolEntry | None:
        return self._store.get((kind, source.strip()))

    def put(self, source: str, kind: str, items: list[Any]) -> PoolEntry:
        entry = PoolEntry(source=source.strip(), kind=kind, items=items, loaded_at=time.time())
        self._store[(kind, entry.source)] = entry
        return entry

    def __contains__(self, key: tuple[str, str]) -> bool:
        kind, source = key
        return (kind, source.strip()) in self._store

    def __len__(self) -> int:
        return len(self._store)

    def clear(self) -> None:
        self._store.clear()


__all__ = ["PoolCache", "PoolEntry"]
