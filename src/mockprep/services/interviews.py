from __future__ import annotations

from typing import Any

from mockprep.errors import RemoteError
from mockprep.services.base import DashboardService
from mockprep.types import Interview
from mockprep.validation import validate_interview_request


class InterviewService(DashboardService):
    entity = "interviews"

    @property
    def interviews(self) -> list[Interview]:
        return self.cache.get(self.key()) or []

    async def list_interviews(self) -> list[Interview]:
        result = await self.remote.select(
            "interviews",
            {"user_id": self.user_id},
            order_by="created_at",
            descending=True,
        )
        interviews = [Interview.model_validate(row) for row in result.rows]
        self.cache.set(self.key(), interviews)
        return interviews

    async def create(self, request: dict[str, Any]) -> Interview:
        data = validate_interview_request(request)
        try:
            row = await self.remote.insert("interviews", {"user_id": self.user_id, **data})
        except RemoteError as exc:
            await self.notify_failure("Failed to create interview", exc)
            raise

        interview = Interview.model_validate(row)
        if self.cache.has(self.key()):
            self.cache.set(self.key(), [interview, *self.interviews])
        await self.notify("Success", "Interview created successfully")
        return interview
