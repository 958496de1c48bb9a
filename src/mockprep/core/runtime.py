from __future__ import annotations

from mockprep.core.cache import QueryCache
from mockprep.core.events import EventBus

_EVENT_BUS: EventBus | None = None
_QUERY_CACHE: QueryCache | None = None


def get_event_bus() -> EventBus:
    global _EVENT_BUS
    if _EVENT_BUS is None:
        _EVENT_BUS = EventBus()
    return _EVENT_BUS


def get_query_cache() -> QueryCache:
    global _QUERY_CACHE
    if _QUERY_CACHE is None:
        _QUERY_CACHE = QueryCache()
    return _QUERY_CACHE


def reset_runtime() -> None:
    global _EVENT_BUS, _QUERY_CACHE
    _EVENT_BUS = None
    _QUERY_CACHE = None
