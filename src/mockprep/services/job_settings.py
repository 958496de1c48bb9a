from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from mockprep.errors import NotFoundError, RemoteError
from mockprep.services.base import DashboardService
from mockprep.types import JobSettings
from mockprep.validation import validate_job_settings

DEFAULT_JOB_SETTINGS: dict[str, Any] = {
    "difficulty_level": "medium",
    "question_count": 10,
    "preferences": {},
}


def describe_changes(previous: JobSettings | None, changes: dict[str, Any]) -> str:
    """Render ``field: old → new`` for every field whose value differs."""
    parts = []
    for field, new_value in changes.items():
        old_value = getattr(previous, field, None) if previous is not None else None
        if old_value != new_value:
            parts.append(f"{field}: {old_value} → {new_value}")
    return ", ".join(parts)


class JobSettingsService(DashboardService):
    """Interview preferences: difficulty, question count, free-form preferences.

    The row is created with defaults the first time it is read. Updates are
    applied to the cache before the backend answers and rolled back if it
    refuses them.
    """

    entity = "job_settings"

    @property
    def current(self) -> JobSettings | None:
        return self.cache.get(self.key())

    async def fetch(self, *, refresh: bool = False) -> JobSettings:
        if not refresh and self.cache.is_fresh(self.key(), self.settings.settings_stale_sec):
            cached = self.current
            if cached is not None:
                return cached

        try:
            row = await self.remote.select_one("job_settings", {"user_id": self.user_id})
        except NotFoundError:
            row = await self.remote.insert("job_settings", {"user_id": self.user_id, **DEFAULT_JOB_SETTINGS})

        job_settings = JobSettings.model_validate(row)
        self.cache.set(self.key(), job_settings)
        return job_settings

    async def update(self, updates: dict[str, Any]) -> JobSettings:
        changes = validate_job_settings(updates, partial=True)
        if self.current is None:
            await self.fetch()

        updated_at = datetime.now(UTC)
        write = self.cache.begin_optimistic(
            self.key(),
            self.current.model_copy(update={**changes, "updated_at": updated_at}),
        )

        try:
            row = await self.remote.update(
                "job_settings",
                {"user_id": self.user_id},
                {**changes, "updated_at": updated_at},
            )
        except RemoteError as exc:
            self.cache.rollback(write)
            await self.notify_failure("Update failed", exc)
            raise

        # old values are the last acknowledged row, never a pending candidate
        previous: JobSettings = self.cache.confirmed(self.key()) or write.snapshot
        job_settings = JobSettings.model_validate(row)
        self.cache.confirm(write, job_settings)

        summary = describe_changes(previous, changes) or "no changes"
        await self.log_activity(
            "settings_change",
            f"Updated job settings: {summary}",
            {
                "changes": changes,
                "previous_values": {
                    "difficulty_level": previous.difficulty_level,
                    "question_count": previous.question_count,
                    "preferences": previous.preferences,
                },
            },
        )
        await self.notify("Settings updated", "Your job preferences have been saved successfully.")
        return job_settings
