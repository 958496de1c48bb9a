"""Form validation schemas for the dashboard.

Every ``validate_*`` function is pure: it either returns a normalized record or
raises :class:`mockprep.errors.ValidationError` carrying the ordered list of
field errors. Nothing here touches the network.
"""

from __future__ import annotations

import math
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from mockprep.errors import ValidationError
from mockprep.types import (
    ACTIVITY_TYPES,
    DIFFICULTY_LEVELS,
    QUESTION_COUNT_MAX,
    QUESTION_COUNT_MIN,
    RESUME_FILE_TYPES,
    FieldError,
    JobPreferences,
    ResumeFile,
)

EMAIL_PATTERN = re.compile(
    r"^(?!\.)(?!.*\.\.)([A-Za-z0-9_'+\-.]*)[A-Za-z0-9_+-]@([A-Za-z0-9][A-Za-z0-9\-]*\.)+[A-Za-z]{2,}$"
)
MAX_FILE_NAME_LENGTH = 255

ModelT = TypeVar("ModelT", bound=BaseModel)


def _fail(message: str) -> PydanticCustomError:
    return PydanticCustomError("form_error", message)


def _check_difficulty(value: Any, *, label: str = "difficulty level") -> str:
    if value is None:
        raise _fail(f"Please select a {label}")
    if not isinstance(value, str) or value not in DIFFICULTY_LEVELS:
        raise _fail(f"Invalid {label}")
    return value


def _check_question_count(value: Any, *, label: str = "Question count") -> int:
    if value is None:
        raise _fail(f"{label} is required")
    if isinstance(value, bool):
        raise _fail(f"{label} must be a number")
    if isinstance(value, str):
        text = value.strip()
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise _fail(f"{label} must be a number") from None
    if isinstance(value, float):
        if not math.isfinite(value):
            raise _fail(f"{label} must be a number")
        if not value.is_integer():
            raise _fail(f"{label} must be a whole number")
        value = int(value)
    if not isinstance(value, int):
        raise _fail(f"{label} must be a number")
    if value < QUESTION_COUNT_MIN:
        raise _fail(f"Minimum {QUESTION_COUNT_MIN} questions required")
    if value > QUESTION_COUNT_MAX:
        raise _fail(f"Maximum {QUESTION_COUNT_MAX} questions allowed")
    return value


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(default=None, validate_default=True)
    email: str = Field(default=None, validate_default=True)

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise _fail("Name is required")
        value = value.strip()
        if len(value) < 2:
            raise _fail("Name must be at least 2 characters")
        if len(value) > 100:
            raise _fail("Name must be less than 100 characters")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise _fail("Email is required")
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise _fail("Please enter a valid email address")
        if len(value) > 255:
            raise _fail("Email must be less than 255 characters")
        return value.lower()


class PasswordChange(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_password: str = Field(default=None, validate_default=True)
    new_password: str = Field(default=None, validate_default=True)
    confirm_password: str = Field(default=None, validate_default=True)

    @field_validator("current_password", mode="before")
    @classmethod
    def check_current(cls, value: Any) -> str:
        if not isinstance(value, str) or not value:
            raise _fail("Current password is required")
        return value

    @field_validator("new_password", mode="before")
    @classmethod
    def check_new(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise _fail("New password is required")
        if len(value) < 6:
            raise _fail("New password must be at least 6 characters")
        if len(value) > 128:
            raise _fail("New password must be less than 128 characters")
        return value

    @field_validator("confirm_password", mode="before")
    @classmethod
    def check_confirm(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise _fail("Please confirm your new password")
        return value


class JobSettingsInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    difficulty_level: str = Field(default=None, validate_default=True)
    question_count: int = Field(default=None, validate_default=True)
    preferences: JobPreferences | None = None

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def check_difficulty(cls, value: Any) -> str:
        return _check_difficulty(value)

    @field_validator("question_count", mode="before")
    @classmethod
    def check_question_count(cls, value: Any) -> int:
        return _check_question_count(value)


class JobSettingsPatch(BaseModel):
    """Same rules as :class:`JobSettingsInput`, every field optional."""

    model_config = ConfigDict(extra="ignore")

    difficulty_level: str | None = None
    question_count: int | None = None
    preferences: JobPreferences | None = None

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def check_difficulty(cls, value: Any) -> str:
        return _check_difficulty(value)

    @field_validator("question_count", mode="before")
    @classmethod
    def check_question_count(cls, value: Any) -> int:
        return _check_question_count(value)


class InterviewRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    job_description: str = Field(default=None, validate_default=True)
    difficulty: str = "medium"
    num_questions: int = 10

    @field_validator("job_description", mode="before")
    @classmethod
    def check_job_description(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise _fail("Please enter a job description")
        return value.strip()

    @field_validator("difficulty", mode="before")
    @classmethod
    def check_difficulty(cls, value: Any) -> str:
        return _check_difficulty(value, label="difficulty")

    @field_validator("num_questions", mode="before")
    @classmethod
    def check_num_questions(cls, value: Any) -> int:
        return _check_question_count(value, label="Number of questions")


class ActivityHistoryQuery(BaseModel):
    model_config = ConfigDict(extra="ignore")

    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=20, ge=1, le=100)
    activity_type: str | None = None

    @field_validator("activity_type")
    @classmethod
    def check_activity_type(cls, value: str | None) -> str | None:
        if value is not None and value not in ACTIVITY_TYPES:
            raise _fail("Invalid activity type")
        return value


def field_errors_from(exc: PydanticValidationError) -> list[FieldError]:
    errors = []
    for item in exc.errors():
        field = ".".join(str(part) for part in item["loc"]) or "__root__"
        errors.append(FieldError(field=field, message=item["msg"]))
    return errors


def _parse(model: type[ModelT], candidate: Any) -> ModelT:
    if isinstance(candidate, BaseModel):
        candidate = candidate.model_dump(exclude_unset=True)
    if not isinstance(candidate, dict):
        raise ValidationError([FieldError(field="__root__", message="Expected an object")])
    try:
        return model.model_validate(candidate)
    except PydanticValidationError as exc:
        raise ValidationError(field_errors_from(exc)) from exc


def validate_profile_update(candidate: Any) -> dict[str, str]:
    return _parse(ProfileUpdate, candidate).model_dump()


def validate_password_change(candidate: Any) -> dict[str, str]:
    data = _parse(PasswordChange, candidate).model_dump()

    errors: list[FieldError] = []
    if data["new_password"] != data["confirm_password"]:
        errors.append(FieldError(field="confirm_password", message="Passwords don't match"))
    if data["current_password"] == data["new_password"]:
        errors.append(
            FieldError(
                field="new_password",
                message="New password must be different from current password",
            )
        )
    if errors:
        raise ValidationError(errors)
    return data


def validate_job_settings(candidate: Any, *, partial: bool = False) -> dict[str, Any]:
    if partial:
        parsed = _parse(JobSettingsPatch, candidate)
        data = parsed.model_dump(exclude_unset=True)
    else:
        parsed = _parse(JobSettingsInput, candidate)
        data = parsed.model_dump(exclude={"preferences"})
        data["preferences"] = {}
    if parsed.preferences is not None:
        data["preferences"] = parsed.preferences.model_dump(exclude_none=True)
    elif "preferences" in data:
        data["preferences"] = {}
    return data


def validate_interview_request(candidate: Any) -> dict[str, Any]:
    return _parse(InterviewRequest, candidate).model_dump()


def validate_activity_query(candidate: Any) -> ActivityHistoryQuery:
    return _parse(ActivityHistoryQuery, candidate)


def validate_resume_file(file: ResumeFile, *, max_size_bytes: int) -> ResumeFile:
    errors: list[FieldError] = []
    if file.size > max_size_bytes:
        limit_mb = round(max_size_bytes / (1024 * 1024))
        errors.append(FieldError(field="file", message=f"File size must be less than {limit_mb}MB"))
    if file.content_type not in RESUME_FILE_TYPES:
        errors.append(
            FieldError(field="file", message="File must be PDF, Word document, or plain text")
        )
    if len(file.name) > MAX_FILE_NAME_LENGTH:
        errors.append(FieldError(field="file", message="File name is too long"))
    if errors:
        raise ValidationError(errors)
    return file


def is_valid_question_count(value: Any) -> bool:
    try:
        _check_question_count(value)
    except PydanticCustomError:
        return False
    return True
