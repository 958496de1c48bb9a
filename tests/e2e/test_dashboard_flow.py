import asyncio

from mockprep.core.cache import QueryCache
from mockprep.core.events import EventBus
from mockprep.services.job_settings import JobSettingsService
from mockprep.services.resume import ResumeService
from mockprep.services.user_profile import UserProfileService
from mockprep.types import ResumeFile


class RecordingBus(EventBus):
    def __init__(self) -> None:
        super().__init__()
        self.events: list[dict] = []

    async def publish(self, user_id: str, event: dict) -> None:
        self.events.append(event)
        await super().publish(user_id, event)


def test_dashboard_session_logs_one_entry_per_mutation(remote, account) -> None:
    cache = QueryCache()
    bus = RecordingBus()
    settings_service = JobSettingsService(account, remote, cache=cache, event_bus=bus)
    resume_service = ResumeService(account, remote, cache=cache, event_bus=bus)
    profile_service = UserProfileService(account, remote, cache=cache, event_bus=bus)

    async def scenario() -> None:
        await profile_service.fetch_activity(0)
        await settings_service.update({"difficulty_level": "easy"})
        await resume_service.upload(ResumeFile(name="cv.txt", content_type="text/plain", content=b"resume"))
        await resume_service.delete()
        await profile_service.update_profile({"name": "Ada King", "email": "ada@example.com"})
        await profile_service.change_password(
            {"current_password": "first-secret", "new_password": "next-secret", "confirm_password": "next-secret"}
        )
        await profile_service.fetch_activity(0)

    asyncio.run(scenario())

    assert [item.activity_type for item in profile_service.activity_history] == [
        "password_change",
        "profile_update",
        "resume_delete",
        "resume_upload",
        "settings_change",
        "account_created",
    ]
    assert [event["title"] for event in bus.events] == [
        "Settings updated",
        "Resume uploaded successfully",
        "Resume deleted",
        "Profile updated",
        "Password changed",
    ]
    assert all(event["variant"] == "default" for event in bus.events)
    assert cache.get(resume_service.key()) is None
    assert cache.get(settings_service.key()).difficulty_level == "easy"
