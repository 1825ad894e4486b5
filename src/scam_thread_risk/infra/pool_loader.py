"""Process-wide reference pool holder with single-flight async loading."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import httpx

from scam_thread_risk.core.errors import PoolLoadError
from scam_thread_risk.infra.cache import PoolCache
from scam_thread_risk.retrieval.pools import PoolKind, parse_pool

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 9.0


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def _cache_key(source: str, kind: PoolKind) -> str:
    return f"{kind}:{source.strip()}"


class PoolLoader:
    """Loads each pool source at most once; concurrent callers share one task.

    A failed or timed-out load yields an empty pool and is not cached, so a
    later call retries.
    """

    def __init__(
        self,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_s = timeout_s
        self._transport = transport
        self._cache = PoolCache()
        self._inflight: dict[str, asyncio.Task[list[Any]]] = {}

    def get_cached(self, source: str, kind: PoolKind = "sim") -> list[Any] | None:
        entry = self._cache.get(source, kind)
        return entry.items if entry is not None else None

    def reset(self) -> None:
        self._cache.clear()
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()

    async def load_once(self, source: str, kind: PoolKind = "sim", *, timeout_s: float | None = None) -> list[Any]:
        value = (source or "").strip()
        if not value:
            return []
        key = _cache_key(value, kind)
        cached = self.get_cached(value, kind)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            timeout = timeout_s if timeout_s is not None else self.timeout_s
            task = asyncio.ensure_future(self._load(key, value, kind, timeout))
            self._inflight[key] = task
            task.add_done_callback(lambda _done, key=key: self._inflight.pop(key, None))
        try:
            return await asyncio.shield(task)
        except asyncio.TimeoutError:
            logger.warning("pool %s timed out after %.1fs; using an empty pool", value, timeout_s or self.timeout_s)
        except PoolLoadError as exc:
            logger.warning("pool %s failed to load: %s; using an empty pool", value, exc)
        return []

    def load_blocking(self, source: str, kind: PoolKind = "sim", *, timeout_s: float | None = None) -> list[Any]:
        return asyncio.run(self.load_once(source, kind, timeout_s=timeout_s))

    async def _load(self, key: str, source: str, kind: PoolKind, timeout_s: float) -> list[Any]:
        payload = await asyncio.wait_for(self._read(source, timeout_s), timeout=timeout_s)
        items = parse_pool(payload, kind)
        self._cache.put(source, kind, items)
        logger.info("pool %s loaded (%s, %d items)", source, kind, len(items))
        return items

    async def _read(self, source: str, timeout_s: float) -> Any:
        if _is_url(source):
            try:
                async with httpx.AsyncClient(timeout=timeout_s, transport=self._transport) as client:
                    response = await client.get(source, headers={"accept": "application/json"})
                    response.raise_for_status()
                    return response.json()
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                raise PoolLoadError(f"fetch failed: {exc}") from exc
            except ValueError as exc:
                raise PoolLoadError(f"invalid json: {exc}") from exc

        path = Path(source)
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PoolLoadError(f"read failed: {exc}") from exc
        try:
            return json.loads(text)
        except ValueError as exc:
            raise PoolLoadError(f"invalid json: {exc}") from exc


__all__ = ["DEFAULT_TIMEOUT_S", "PoolLoader"]
