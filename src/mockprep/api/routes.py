from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile, WebSocket, WebSocketDisconnect

from mockprep.api.deps import (
    get_interview_service,
    get_job_settings_service,
    get_profile_service,
    get_remote_service,
    get_resume_service,
    get_user_session,
)
from mockprep.api.schemas import ResumeTextRequest, SessionResponse, SignInRequest
from mockprep.core.runtime import get_event_bus
from mockprep.errors import AuthenticationError
from mockprep.remote.base import RemoteDataService
from mockprep.services.interviews import InterviewService
from mockprep.services.job_settings import JobSettingsService
from mockprep.services.resume import ResumeService
from mockprep.services.user_profile import UserProfileService
from mockprep.types import (
    ActivityPage,
    Interview,
    JobSettings,
    Profile,
    Resume,
    ResumeFile,
    UserSession,
)
from mockprep.validation import validate_activity_query

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


async def _read_upload(file: UploadFile) -> ResumeFile:
    content = await file.read()
    return ResumeFile(
        name=file.filename or "",
        content_type=file.content_type or "application/octet-stream",
        content=content,
    )


@router.post("/auth/sign-in", response_model=SessionResponse)
async def sign_in(
    payload: SignInRequest,
    remote: RemoteDataService = Depends(get_remote_service),
) -> SessionResponse:
    session = await remote.sign_in_with_password(payload.email, payload.password)
    return SessionResponse(
        access_token=session.access_token,
        user_id=session.user_id,
        email=session.email,
        name=session.name,
    )


@router.post("/auth/sign-out", status_code=204)
async def sign_out(
    session: UserSession = Depends(get_user_session),
    remote: RemoteDataService = Depends(get_remote_service),
) -> None:
    await remote.sign_out(session)


@router.get("/profile", response_model=Profile)
async def get_profile(service: UserProfileService = Depends(get_profile_service)) -> Profile:
    return await service.fetch_profile(refresh=True)


@router.patch("/profile", response_model=Profile)
async def update_profile(
    payload: dict[str, Any] = Body(...),
    service: UserProfileService = Depends(get_profile_service),
) -> Profile:
    return await service.update_profile(payload)


@router.post("/profile/password", status_code=204)
async def change_password(
    payload: dict[str, Any] = Body(...),
    service: UserProfileService = Depends(get_profile_service),
) -> None:
    await service.change_password(payload)


@router.put("/profile/resume-text", response_model=Profile)
async def save_resume_text(
    payload: ResumeTextRequest,
    service: UserProfileService = Depends(get_profile_service),
) -> Profile:
    return await service.save_resume_text(payload.resume)


@router.post("/profile/resume-file", response_model=Profile)
async def upload_profile_resume_file(
    file: UploadFile = File(...),
    service: UserProfileService = Depends(get_profile_service),
) -> Profile:
    return await service.upload_resume_file(await _read_upload(file))


@router.get("/activity", response_model=ActivityPage)
async def list_activity(
    page: int = Query(1),
    per_page: int = Query(20),
    activity_type: str | None = Query(None),
    service: UserProfileService = Depends(get_profile_service),
) -> ActivityPage:
    query = validate_activity_query({"page": page, "per_page": per_page, "activity_type": activity_type})
    return await service.query_activity(query)


@router.get("/settings", response_model=JobSettings)
async def get_job_settings(service: JobSettingsService = Depends(get_job_settings_service)) -> JobSettings:
    return await service.fetch()


@router.patch("/settings", response_model=JobSettings)
async def update_job_settings(
    payload: dict[str, Any] = Body(...),
    service: JobSettingsService = Depends(get_job_settings_service),
) -> JobSettings:
    return await service.update(payload)


@router.get("/resume", response_model=Resume | None)
async def get_resume(service: ResumeService = Depends(get_resume_service)) -> Resume | None:
    return await service.fetch(refresh=True)


@router.post("/resume", response_model=Resume)
async def upload_resume(
    file: UploadFile = File(...),
    service: ResumeService = Depends(get_resume_service),
) -> Resume:
    return await service.upload(await _read_upload(file))


@router.delete("/resume", status_code=204)
async def delete_resume(service: ResumeService = Depends(get_resume_service)) -> None:
    await service.delete()


@router.get("/interviews", response_model=list[Interview])
async def list_interviews(service: InterviewService = Depends(get_interview_service)) -> list[Interview]:
    return await service.list_interviews()


@router.post("/interviews", response_model=Interview)
async def create_interview(
    payload: dict[str, Any] = Body(...),
    service: InterviewService = Depends(get_interview_service),
) -> Interview:
    return await service.create(payload)


@router.websocket("/notifications")
async def stream_notifications(websocket: WebSocket, token: str = Query("")) -> None:
    remote = get_remote_service()
    try:
        session = await remote.get_user(token)
    except AuthenticationError:
        await websocket.close(code=4401)
        return

    await websocket.accept()
    event_bus = get_event_bus()
    listener = await event_bus.register(session.user_id)
    await websocket.send_json({"type": "subscribed", "user_id": session.user_id})

    async def forward() -> None:
        while True:
            await websocket.send_json(await listener.get())

    sender = asyncio.create_task(forward())
    try:
        # client messages are ignored; reading only detects the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("notification stream closed for user %s", session.user_id)
    finally:
        sender.cancel()
        await event_bus.unregister(session.user_id, listener)
