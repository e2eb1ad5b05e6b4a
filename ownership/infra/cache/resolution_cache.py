from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from ownership.domain.constants import CACHE_KEY_PREFIX, DEFAULT_CACHE_TTL_SECONDS
from ownership.domain.models import OwnershipSnapshot


def build_cache_key(user_ref: str, application_names: Iterable[str]) -> str:
    """
    Назначение:
        Ключ кэша для пары (пользователь, набор имён приложений).

    Выходные данные:
        str
            "ownership:<user_ref>#<digest>"; user_ref остаётся подстрокой ключа,
            поэтому инвалидация по подстроке продолжает работать.
    """
    names = sorted(set(application_names))
    digest = hashlib.sha256(json.dumps(names, ensure_ascii=False).encode("utf-8")).hexdigest()[:16]
    return f"{CACHE_KEY_PREFIX}:{user_ref}#{digest}"


@dataclass(frozen=True)
class CacheEntry:
    snapshot: OwnershipSnapshot
    computed_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.computed_at <= self.ttl


class ResolutionCache:
    """
    Назначение/ответственность:
        Потокобезопасный in-memory кэш снимков владения с ограниченным TTL.

    Жизненный цикл записи:
        ABSENT -> put -> FRESH -> (TTL истёк, обнаружено в get) -> удалена -> ABSENT.
        invalidate переводит FRESH -> ABSENT сразу.

    Ограничения:
        - Конкурентные put для одного ключа: побеждает последняя запись.
        - Выключенный кэш (enabled=False) ничего не хранит и всегда промахивается.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> OwnershipSnapshot | None:
        if not self.enabled:
            return None
        now = self.clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if not entry.is_fresh(now):
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return entry.snapshot

    def put(self, key: str, snapshot: OwnershipSnapshot) -> None:
        if not self.enabled:
            return
        entry = CacheEntry(snapshot=snapshot, computed_at=self.clock(), ttl=self.ttl_seconds)
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, user_ref: str | None = None) -> int:
        """
        Назначение:
            Удаление записей: всех, либо тех, чей ключ содержит user_ref.

        Выходные данные:
            int
                Количество удалённых записей.
        """
        with self._lock:
            if user_ref is None:
                removed = len(self._entries)
                self._entries.clear()
                return removed
            keys = [key for key in self._entries if user_ref in key]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, int | float | bool]:
        with self._lock:
            size = len(self._entries)
        return {
            "enabled": self.enabled,
            "ttl_seconds": self.ttl_seconds,
            "size": size,
            "hits": self.hits,
            "misses": self.misses,
        }


__all__ = ["CacheEntry", "ResolutionCache", "build_cache_key"]
