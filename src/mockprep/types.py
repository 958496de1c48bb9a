from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

DifficultyLevel = Literal["easy", "medium", "difficult"]
ResumeStatus = Literal["active", "processing", "error"]
ActivityType = Literal[
    "resume_upload",
    "resume_delete",
    "settings_change",
    "account_created",
    "profile_update",
    "password_change",
]
NotificationVariant = Literal["default", "destructive"]

DIFFICULTY_LEVELS: tuple[str, ...] = ("easy", "medium", "difficult")
ACTIVITY_TYPES: tuple[str, ...] = (
    "resume_upload",
    "resume_delete",
    "settings_change",
    "account_created",
    "profile_update",
    "password_change",
)
QUESTION_COUNT_MIN = 6
QUESTION_COUNT_MAX = 15
RESUME_FILE_TYPES: tuple[str, ...] = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
)


class FieldError(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class UserSession(BaseModel):
    """The authenticated user every service acts on behalf of."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str
    name: str = ""
    access_token: str = ""


class Profile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    resume: str | None = None
    resume_file_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Resume(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    file_name: str
    file_path: str
    file_size: int
    status: ResumeStatus = "active"
    upload_date: datetime | None = None


class JobPreferences(BaseModel):
    job_types: list[str] | None = None
    industries: list[str] | None = None


class JobSettings(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    difficulty_level: DifficultyLevel = "medium"
    question_count: int = 10
    preferences: dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime | None = None


class Interview(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    job_description: str
    difficulty: DifficultyLevel
    num_questions: int
    created_at: datetime | None = None


class ActivityEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    activity_type: ActivityType
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class ActivityPage(BaseModel):
    items: list[ActivityEntry] = Field(default_factory=list)
    page: int = 0
    has_more: bool = False
    total: int = 0


class ResumeFile(BaseModel):
    """An uploaded file as the browser hands it over: name, MIME type and bytes."""

    name: str
    content_type: str
    content: bytes = b""

    @property
    def size(self) -> int:
        return len(self.content)


class Notification(BaseModel):
    title: str
    description: str = ""
    variant: NotificationVariant = "default"
