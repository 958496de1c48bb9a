from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any

Listener = asyncio.Queue[dict[str, Any]]


class EventBus:
    """Fan-out of per-user notifications to every registered listener.

    A listener is registered before the caller starts reading from it, so
    no event published after ``register`` returns can be missed.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def publish(self, user_id: str, event: dict[str, Any]) -> None:
        async with self._lock:
            for listener in list(self._listeners.get(user_id, [])):
                await listener.put(event)

    async def register(self, user_id: str) -> Listener:
        listener: Listener = asyncio.Queue()
        async with self._lock:
            self._listeners[user_id].append(listener)
        return listener

    async def unregister(self, user_id: str, listener: Listener) -> None:
        async with self._lock:
            listeners = self._listeners.get(user_id, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(user_id, None)
