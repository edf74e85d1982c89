"""Read-path cache for availability calendars.

Only the calendar view goes through here. Reservation and release always
read the inventory rows directly; after they commit, the room type's
cached calendars are dropped.
"""

from __future__ import annotations

from typing import Callable, List, TypeVar

from django.conf import settings  # type: ignore
from django.core.cache import cache  # type: ignore

T = TypeVar("T")


def _is_cache_enabled() -> bool:
    return getattr(settings, "AVAILABILITY_CACHE_ENABLED", False)


def _keys_storage_key(room_type_id: int) -> str:
    return f"availability:calendar_keys:{room_type_id}"


def _build_cache_key(room_type_id: int, start: str, end: str) -> str:
    prefix = getattr(settings, "AVAILABILITY_CACHE_PREFIX", "availability:calendar")
    return f"{prefix}:{room_type_id}:{start}:{end}"


def _register_cache_key(room_type_id: int, key: str) -> None:
    storage_key = _keys_storage_key(room_type_id)
    keys: List[str] | None = cache.get(storage_key)
    if keys is None:
        cache.set(storage_key, [key], None)
        return
    if key in keys:
        return
    keys.append(key)
    cache.set(storage_key, keys, None)


def get_cached_calendar(room_type_id: int, start: str, end: str, builder: Callable[[], T]) -> T:
    """Return the cached calendar for a room type and inclusive date range."""
    if not _is_cache_enabled():
        return builder()

    key = _build_cache_key(room_type_id, start, end)
    cached = cache.get(key)
    if cached is not None:
        return cached

    result = builder()
    timeout = getattr(settings, "AVAILABILITY_CACHE_TIMEOUT", 60)
    cache.set(key, result, timeout)
    _register_cache_key(room_type_id, key)
    return result


def invalidate_room_type(room_type_id: int) -> None:
    """Drop every cached calendar of a room type."""
    storage_key = _keys_storage_key(room_type_id)
    keys: List[str] | None = cache.get(storage_key)
    if keys:
        cache.delete_many(keys)
    cache.delete(storage_key)


__all__ = [
    "get_cached_calendar",
    "invalidate_room_type",
]
