from __future__ import annotations

from fastapi import Depends, Header, HTTPException

from mockprep.errors import AuthenticationError
from mockprep.remote.base import RemoteDataService
from mockprep.remote.factory import get_remote
from mockprep.services.interviews import InterviewService
from mockprep.services.job_settings import JobSettingsService
from mockprep.services.resume import ResumeService
from mockprep.services.user_profile import UserProfileService
from mockprep.types import UserSession


def get_remote_service() -> RemoteDataService:
    return get_remote()


def bearer_token(authorization: str | None) -> str:
    if not authorization:
        return ""
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


async def get_user_session(
    authorization: str | None = Header(default=None),
    remote: RemoteDataService = Depends(get_remote_service),
) -> UserSession:
    token = bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return await remote.get_user(token)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc


def get_profile_service(
    session: UserSession = Depends(get_user_session),
    remote: RemoteDataService = Depends(get_remote_service),
) -> UserProfileService:
    return UserProfileService(session, remote)


def get_job_settings_service(
    session: UserSession = Depends(get_user_session),
    remote: RemoteDataService = Depends(get_remote_service),
) -> JobSettingsService:
    return JobSettingsService(session, remote)


def get_resume_service(
    session: UserSession = Depends(get_user_session),
    remote: RemoteDataService = Depends(get_remote_service),
) -> ResumeService:
    return ResumeService(session, remote)


def get_interview_service(
    session: UserSession = Depends(get_user_session),
    remote: RemoteDataService = Depends(get_remote_service),
) -> InterviewService:
    return InterviewService(session, remote)
