from __future__ import annotations

import logging
import re
import time
from datetime import UTC, datetime

from mockprep.config import Settings
from mockprep.core.cache import QueryCache
from mockprep.core.events import EventBus
from mockprep.core.progress import SimulatedProgress
from mockprep.core.saga import Saga
from mockprep.errors import NotFoundError, RemoteError
from mockprep.remote.base import RemoteDataService
from mockprep.services.base import DashboardService
from mockprep.types import Resume, ResumeFile, UserSession
from mockprep.validation import validate_resume_file

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_file_name(file_name: str) -> str:
    return _UNSAFE_CHARS.sub("_", file_name)


def generate_resume_file_path(user_id: str, file_name: str, timestamp_ms: int | None = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{user_id}/{timestamp_ms}_{sanitize_file_name(file_name)}"


class ResumeService(DashboardService):
    """The structured resume a user keeps on the dashboard, one per user.

    Uploading a new file replaces the metadata row but leaves the previous
    blob in storage; each upload lands on its own timestamped path.
    """

    entity = "resume"

    def __init__(
        self,
        session: UserSession,
        remote: RemoteDataService,
        *,
        cache: QueryCache | None = None,
        event_bus: EventBus | None = None,
        settings: Settings | None = None,
    ):
        super().__init__(session, remote, cache=cache, event_bus=event_bus, settings=settings)
        self.progress = SimulatedProgress(self.settings.upload_progress_interval_sec)

    @property
    def bucket(self) -> str:
        return self.settings.resume_bucket

    @property
    def resume(self) -> Resume | None:
        return self.cache.get(self.key())

    async def fetch(self, *, refresh: bool = False) -> Resume | None:
        if not refresh and self.cache.is_fresh(self.key(), self.settings.resume_stale_sec):
            return self.resume

        try:
            row = await self.remote.select_one("resumes", {"user_id": self.user_id})
        except NotFoundError:
            self.cache.set(self.key(), None)
            return None

        resume = Resume.model_validate(row)
        self.cache.set(self.key(), resume)
        return resume

    async def upload(self, file: ResumeFile) -> Resume:
        validate_resume_file(file, max_size_bytes=self.settings.max_resume_size_bytes)
        file_path = generate_resume_file_path(self.user_id, file.name)

        async def upload_blob() -> str:
            return await self.remote.upload(
                self.bucket, file_path, file.content, content_type=file.content_type, upsert=False
            )

        async def remove_blob(_: str) -> None:
            await self.remote.remove(self.bucket, [file_path])

        async def upsert_metadata() -> dict:
            return await self.remote.upsert(
                "resumes",
                {
                    "user_id": self.user_id,
                    "file_name": file.name,
                    "file_path": file_path,
                    "file_size": file.size,
                    "status": "active",
                    "upload_date": datetime.now(UTC),
                },
                on_conflict="user_id",
            )

        saga = (
            Saga("resume_upload")
            .step("upload_blob", upload_blob, compensate=remove_blob, compensation_name="remove_uploaded_blob")
            .step("upsert_metadata", upsert_metadata)
        )
        try:
            results = await saga.run()
        except RemoteError as exc:
            await self.notify_failure("Upload failed", exc)
            raise

        resume = Resume.model_validate(results["upsert_metadata"])
        await self.log_activity(
            "resume_upload",
            f"Uploaded resume: {file.name}",
            {"file_name": file.name, "file_size": file.size},
        )
        self.cache.set(self.key(), resume)
        await self.notify(
            "Resume uploaded successfully",
            f"{resume.file_name} has been uploaded and is ready to use.",
        )
        return resume

    async def upload_with_progress(self, file: ResumeFile) -> Resume:
        return await self.progress.track(self.upload(file))

    async def delete(self) -> None:
        resume = self.resume if self.cache.is_fresh(self.key(), self.settings.resume_stale_sec) else None
        if resume is None:
            resume = await self.fetch(refresh=True)
        if resume is None:
            exc = NotFoundError("No resume to delete")
            await self.notify_failure("Delete failed", exc)
            raise exc

        try:
            await self.remote.remove(self.bucket, [resume.file_path])
        except Exception as exc:
            logger.warning("Storage deletion failed for %s: %s", resume.file_path, exc)

        try:
            await self.remote.delete("resumes", {"user_id": self.user_id})
        except RemoteError as exc:
            await self.notify_failure("Delete failed", exc)
            raise

        await self.log_activity(
            "resume_delete",
            f"Deleted resume: {resume.file_name}",
            {"file_name": resume.file_name},
        )
        self.cache.set(self.key(), None)
        await self.notify("Resume deleted", "Your resume has been successfully deleted.")
