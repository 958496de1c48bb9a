from __future__ import annotations

import logging
from typing import Any

from mockprep.config import Settings, get_settings
from mockprep.core.cache import CacheKey, QueryCache, cache_key
from mockprep.core.events import EventBus
from mockprep.core.runtime import get_event_bus, get_query_cache
from mockprep.errors import RemoteError
from mockprep.remote.base import RemoteDataService
from mockprep.types import ActivityType, Notification, NotificationVariant, UserSession

logger = logging.getLogger(__name__)


class DashboardService:
    """Shared plumbing for the per-entity data-access services.

    A service acts for exactly one :class:`UserSession` and owns the cache
    entries of its own entity for that user.
    """

    entity = ""

    def __init__(
        self,
        session: UserSession,
        remote: RemoteDataService,
        *,
        cache: QueryCache | None = None,
        event_bus: EventBus | None = None,
        settings: Settings | None = None,
    ):
        if not session.user_id:
            raise RemoteError("User not authenticated", code="not_authenticated")
        self.session = session
        self.remote = remote
        self.cache = cache or get_query_cache()
        self.event_bus = event_bus or get_event_bus()
        self.settings = settings or get_settings()

    @property
    def user_id(self) -> str:
        return self.session.user_id

    def key(self, entity: str | None = None) -> CacheKey:
        return cache_key(entity or self.entity, self.user_id)

    async def notify(self, title: str, description: str = "", variant: NotificationVariant = "default") -> None:
        notification = Notification(title=title, description=description, variant=variant)
        await self.event_bus.publish(self.user_id, {"type": "notification", **notification.model_dump()})

    async def notify_failure(self, title: str, exc: RemoteError) -> None:
        logger.warning("%s for user %s: %s", title, self.user_id, exc)
        await self.notify(title, exc.message, "destructive")

    async def log_activity(self, activity_type: ActivityType, description: str, metadata: dict[str, Any]) -> None:
        try:
            await self.remote.rpc(
                "log_activity",
                {"activity_type": activity_type, "description": description, "metadata": metadata},
                session=self.session,
            )
        except RemoteError as exc:
            logger.warning("activity log %s failed for user %s: %s", activity_type, self.user_id, exc)
            return
        self.cache.invalidate(self.key("activity_history"))
