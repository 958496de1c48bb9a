from __future__ import annotations

from pydantic import BaseModel, Field

from mockprep.types import FieldError


class SignInRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    access_token: str
    user_id: str
    email: str
    name: str = ""


class ResumeTextRequest(BaseModel):
    resume: str = ""


class ErrorResponse(BaseModel):
    detail: str
    code: str = ""
    errors: list[FieldError] = Field(default_factory=list)
