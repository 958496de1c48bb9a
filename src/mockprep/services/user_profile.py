from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from mockprep.core.saga import Saga
from mockprep.errors import AuthenticationError, RemoteError, ValidationError
from mockprep.formatting import file_extension
from mockprep.services.base import DashboardService
from mockprep.types import ActivityEntry, ActivityPage, FieldError, Profile, ResumeFile
from mockprep.validation import (
    ActivityHistoryQuery,
    validate_password_change,
    validate_profile_update,
    validate_resume_file,
)

logger = logging.getLogger(__name__)


class UserProfileService(DashboardService):
    """Profile edits, password changes and the activity feed of one user."""

    entity = "profile"

    @property
    def profile(self) -> Profile | None:
        return self.cache.get(self.key())

    @property
    def page_size(self) -> int:
        return self.settings.activity_page_size

    async def fetch_profile(self, *, refresh: bool = False) -> Profile:
        if not refresh and self.cache.is_fresh(self.key(), self.settings.profile_stale_sec):
            cached = self.profile
            if cached is not None:
                return cached

        row = await self.remote.select_one("profiles", {"id": self.user_id})
        profile = Profile.model_validate(row)
        self.cache.set(self.key(), profile)
        return profile

    # Activity feed

    @property
    def activity_pages(self) -> tuple[ActivityPage, ...]:
        return self.cache.get(self.key("activity_history")) or ()

    @property
    def activity_history(self) -> list[ActivityEntry]:
        return [item for page in self.activity_pages for item in page.items]

    @property
    def has_more_activity(self) -> bool:
        pages = self.activity_pages
        return pages[-1].has_more if pages else True

    async def _fetch_activity_range(
        self, offset: int, limit: int, activity_type: str | None = None
    ) -> tuple[list[ActivityEntry], int]:
        filters: dict[str, Any] = {"user_id": self.user_id}
        if activity_type is not None:
            filters["activity_type"] = activity_type
        result = await self.remote.select(
            "activity_history",
            filters,
            order_by="created_at",
            descending=True,
            offset=offset,
            limit=limit,
            count=True,
        )
        return [ActivityEntry.model_validate(row) for row in result.rows], result.count or 0

    async def fetch_activity(self, page: int = 0) -> ActivityPage:
        """Fetch one zero-based page, newest entries first.

        Pages must be requested in order; every new page is appended to the
        retained feed. A page that is already retained is served from it,
        after all retained pages are refetched if the feed went stale.
        """
        pages = self.activity_pages
        if page < 0 or page > len(pages):
            raise ValueError(f"activity page {page} requested before page {len(pages)}")
        if pages and not self.cache.is_fresh(self.key("activity_history"), self.settings.activity_stale_sec):
            pages = await self._refetch_activity_pages(len(pages))
        if page < len(pages):
            return pages[page]

        result = await self._fetch_activity_page(page)
        self.cache.set(self.key("activity_history"), (*pages, result))
        return result

    async def _fetch_activity_page(self, page: int) -> ActivityPage:
        offset = page * self.page_size
        items, total = await self._fetch_activity_range(offset, self.page_size)
        return ActivityPage(
            items=items,
            page=page,
            has_more=offset + self.page_size < total,
            total=total,
        )

    async def _refetch_activity_pages(self, count: int) -> tuple[ActivityPage, ...]:
        pages = tuple([await self._fetch_activity_page(index) for index in range(count)])
        self.cache.set(self.key("activity_history"), pages)
        return pages

    async def load_more_activity(self) -> ActivityPage | None:
        if not self.has_more_activity:
            return None
        return await self.fetch_activity(len(self.activity_pages))

    async def reload_activity(self) -> ActivityPage:
        self.cache.clear(self.key("activity_history"))
        return await self.fetch_activity(0)

    async def query_activity(self, query: ActivityHistoryQuery) -> ActivityPage:
        """One-off page lookup with a one-based page number; the feed is untouched."""
        offset = (query.page - 1) * query.per_page
        items, total = await self._fetch_activity_range(offset, query.per_page, query.activity_type)
        return ActivityPage(
            items=items,
            page=query.page,
            has_more=offset + query.per_page < total,
            total=total,
        )

    # Mutations

    async def update_profile(self, updates: dict[str, Any]) -> Profile:
        data = validate_profile_update(updates)
        previous = self.profile or await self.fetch_profile()
        updated_at = datetime.now(UTC)

        async def write_profile() -> dict:
            return await self.remote.update("profiles", {"id": self.user_id}, {**data, "updated_at": updated_at})

        async def restore_email(_: dict) -> None:
            await self.remote.update("profiles", {"id": self.user_id}, {"email": previous.email})

        async def update_auth_email() -> None:
            self.session = await self.remote.update_user(self.session, email=data["email"])

        saga = Saga("profile_update").step(
            "write_profile",
            write_profile,
            compensate=restore_email,
            compensation_name="restore_profile_email",
        )
        if data["email"] != previous.email:
            saga.step("update_auth_email", update_auth_email)

        try:
            results = await saga.run()
        except RemoteError as exc:
            await self.notify_failure("Update failed", exc)
            raise

        profile = Profile.model_validate(results["write_profile"])
        changed = [key for key in data if data[key] != getattr(previous, key)]
        if changed:
            summary = ", ".join(f"{key}: {getattr(previous, key)} → {data[key]}" for key in changed)
            await self.log_activity(
                "profile_update",
                f"Updated profile: {summary}",
                {
                    "changes": {key: data[key] for key in changed},
                    "previous_values": {"name": previous.name, "email": previous.email},
                },
            )
        self.cache.set(self.key(), profile)
        await self.notify("Profile updated", "Your profile information has been updated successfully.")
        return profile

    async def change_password(self, payload: dict[str, Any]) -> None:
        data = validate_password_change(payload)

        try:
            verification = await self.remote.sign_in_with_password(self.session.email, data["current_password"])
        except RemoteError as exc:
            failure = AuthenticationError("Current password is incorrect", code="invalid_current_password")
            await self.notify_failure("Password change failed", failure)
            raise failure from exc

        try:
            await self.remote.update_user(self.session, password=data["new_password"])
        except RemoteError as exc:
            await self.notify_failure("Password change failed", exc)
            raise
        finally:
            if verification.access_token and verification.access_token != self.session.access_token:
                try:
                    await self.remote.sign_out(verification)
                except RemoteError as exc:
                    logger.warning("could not close verification session for user %s: %s", self.user_id, exc)

        await self.log_activity(
            "password_change",
            "Password changed successfully",
            {"timestamp": datetime.now(UTC).isoformat()},
        )
        await self.notify("Password changed", "Your password has been updated successfully.")

    async def save_resume_text(self, resume: str) -> Profile:
        if not isinstance(resume, str) or not resume.strip():
            raise ValidationError([FieldError(field="resume", message="Please enter your resume text")])

        try:
            row = await self.remote.update("profiles", {"id": self.user_id}, {"resume": resume})
        except RemoteError as exc:
            await self.notify_failure("Failed to save resume", exc)
            raise

        profile = Profile.model_validate(row)
        self.cache.set(self.key(), profile)
        await self.notify("Success", "Resume saved successfully")
        return profile

    async def upload_resume_file(self, file: ResumeFile) -> Profile:
        """Store the file at a fixed per-user path and link it from the profile."""
        validate_resume_file(file, max_size_bytes=self.settings.max_resume_size_bytes)
        path = f"{self.user_id}/resume.{file_extension(file.name) or 'bin'}"
        bucket = self.settings.resume_bucket

        try:
            await self.remote.upload(bucket, path, file.content, content_type=file.content_type, upsert=True)
            public_url = self.remote.get_public_url(bucket, path)
            row = await self.remote.update("profiles", {"id": self.user_id}, {"resume_file_url": public_url})
        except RemoteError as exc:
            await self.notify_failure("Failed to upload resume file", exc)
            raise

        profile = Profile.model_validate(row)
        self.cache.set(self.key(), profile)
        await self.notify("Success", "Resume file uploaded successfully")
        return profile
