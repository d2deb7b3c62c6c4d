"""Query cache owned by a chat view."""

from typing import Any, Hashable

CacheKey = tuple[Hashable, ...]

_MISSING = object()


class QueryCache:
    """Explicit, injectable cache of fetched query results.

    Keys are tuples such as ("messages", conversation_id). Mutations call
    invalidate() so the next read goes back to the backend.
    """

    def __init__(self):
        self._entries: dict[CacheKey, Any] = {}

    def read(self, key: CacheKey, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def contains(self, key: CacheKey) -> bool:
        return self._entries.get(key, _MISSING) is not _MISSING

    def write(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = value

    def invalidate(self, key: CacheKey) -> None:
        self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: CacheKey) -> None:
        """Drop every key starting with prefix, e.g. ("conversations",)."""
        size = len(prefix)
        for key in [k for k in self._entries if k[:size] == prefix]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
