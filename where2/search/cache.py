from __future__ import annotations

import hashlib
import json
import threading
import time
from typing import Any

from .config import DEFAULT_SEARCH_CONFIG

_cache: dict[str, dict[str, Any]] = {}
_hits: int = 0
_misses: int = 0
_DEFAULT_TTL = DEFAULT_SEARCH_CONFIG.cache_ttl_seconds
_MAX_ENTRIES = DEFAULT_SEARCH_CONFIG.cache_max_entries
# hybrid search reads and writes from worker threads
_lock = threading.Lock()


def _make_key(request_dict: dict) -> str:
    normalized = json.dumps(request_dict, sort_keys=True, default=str)
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


def cache_get(request_dict: dict) -> Any | None:
    global _hits, _misses
    key = _make_key(request_dict)
    with _lock:
        entry = _cache.get(key)
        if entry and time.time() - entry["created_at"] < _DEFAULT_TTL:
            _hits += 1
            return entry["value"]
        if entry:
            _cache.pop(key, None)
        _misses += 1
        return None


def cache_set(request_dict: dict, value: Any) -> None:
    key = _make_key(request_dict)
    with _lock:
        _cache.pop(key, None)
        # dicts keep insertion order, so the first key is the oldest entry
        while len(_cache) >= _MAX_ENTRIES:
            del _cache[next(iter(_cache))]
        _cache[key] = {"value": value, "created_at": time.time()}


def get_cache_stats() -> dict:
    with _lock:
        total = _hits + _misses
        return {
            "size": len(_cache),
            "max_size": _MAX_ENTRIES,
            "hits": _hits,
            "misses": _misses,
            "hit_rate": round(_hits / total * 100, 1) if total > 0 else 0.0,
        }


def clear_cache() -> None:
    global _hits, _misses
    with _lock:
        _cache.clear()
        _hits = 0
        _misses = 0
