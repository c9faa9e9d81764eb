from __future__ import annotations

import hashlib
import json
from collections import OrderedDict
from threading import RLock
from typing import Any, Dict, Mapping, Optional, Sequence

from data import SquadOverride, WhatIfResult


class ResultCache:
    """Bounded LRU keyed by content hashes. Safe to share between threads."""

    def __init__(self, maxsize: int = 128) -> None:
        self.maxsize = maxsize
        self._store: OrderedDict[str, Any] = OrderedDict()
        self._lock = RLock()
        self.hits = 0
        self.misses = 0

    def _prune(self) -> None:
        while len(self._store) > self.maxsize:
            self._store.popitem(last=False)

    def get(self, key: str) -> Any | None:
        with self._lock:
            if key not in self._store:
                self.misses += 1
                return None
            value = self._store.pop(key)
            self._store[key] = value
            self.hits += 1
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._store:
                self._store.pop(key)
            self._store[key] = value
            self._prune()

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"size": len(self._store), "maxsize": self.maxsize, "hits": self.hits, "misses": self.misses}


importance_cache = ResultCache()


def _canonical_overrides(overrides: Optional[Mapping[str, SquadOverride]]) -> Dict[str, Any]:
    return {
        team: override.to_dict()
        for team, override in sorted((overrides or {}).items())
        if not override.is_empty
    }


def _canonical_what_ifs(what_ifs: Optional[Sequence[WhatIfResult]]) -> list:
    return sorted(
        (w.to_dict() for w in what_ifs or []),
        key=lambda item: (item["home"], item["away"], item["home_score"], item["away_score"]),
    )


def build_cache_key(
    namespace: str,
    *,
    fingerprint: str,
    division: str,
    team: Optional[str] = None,
    squad_overrides: Optional[Mapping[str, SquadOverride]] = None,
    what_if_results: Optional[Sequence[WhatIfResult]] = None,
    options: Optional[Mapping[str, Any]] = None,
) -> str:
    """SHA-256 over the canonical JSON of every input that can change a result."""

    payload = {
        "namespace": namespace,
        "fingerprint": fingerprint,
        "division": division,
        "team": team,
        "overrides": _canonical_overrides(squad_overrides),
        "what_ifs": _canonical_what_ifs(what_if_results),
        "options": dict(sorted((options or {}).items())),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


__all__ = ["ResultCache", "build_cache_key", "importance_cache"]
