from __future__ import annotations

import asyncio
import json
import mimetypes
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, TypeVar

import typer
import uvicorn

from mockprep.api.app import create_app
from mockprep.config import get_settings
from mockprep.db.init import init_database
from mockprep.errors import MockprepError, ValidationError
from mockprep.formatting import activity_type_label, difficulty_label, format_file_size, resume_status_label
from mockprep.logging_config import configure_logging
from mockprep.remote.factory import build_remote
from mockprep.remote.local import SqlDataService
from mockprep.services.interviews import InterviewService
from mockprep.services.job_settings import JobSettingsService
from mockprep.services.resume import ResumeService
from mockprep.services.user_profile import UserProfileService
from mockprep.types import ResumeFile, UserSession

T = TypeVar("T")

app = typer.Typer(help="Mockprep CLI")
user_app = typer.Typer(help="Manage accounts")
settings_app = typer.Typer(help="Interview settings")
resume_app = typer.Typer(help="Resume on file")
activity_app = typer.Typer(help="Account activity")
interview_app = typer.Typer(help="Practice interviews")

app.add_typer(user_app, name="user")
app.add_typer(settings_app, name="settings")
app.add_typer(resume_app, name="resume")
app.add_typer(activity_app, name="activity")
app.add_typer(interview_app, name="interview")

EmailOption = typer.Option(..., "--email")
PasswordOption = typer.Option(..., "--password", prompt=True, hide_input=True)

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _run(work: Callable[[SqlDataService], Awaitable[T]]) -> T:
    configure_logging()
    ensure_initialized()
    remote = build_remote()
    try:
        return asyncio.run(work(remote))
    except ValidationError as exc:
        _echo({"ok": False, "errors": [error.model_dump() for error in exc.errors]})
        raise typer.Exit(code=1) from exc
    except MockprepError as exc:
        _echo({"ok": False, "error": str(exc)})
        raise typer.Exit(code=1) from exc


@asynccontextmanager
async def _signed_in(remote: SqlDataService, email: str, password: str) -> AsyncIterator[UserSession]:
    session = await remote.sign_in_with_password(email, password)
    try:
        yield session
    finally:
        await remote.sign_out(session)


@app.command("init")
def init_cmd() -> None:
    """Create the database tables and storage directories."""
    configure_logging()
    result = init_database()
    _echo({"ok": True, **result})


@user_app.command("create")
def user_create(
    email: str = EmailOption,
    name: str = typer.Option(..., "--name"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    async def work(remote: SqlDataService) -> UserSession:
        session = await remote.create_user(email, password, name)
        await remote.sign_out(session)
        return session

    session = _run(work)
    _echo({"id": session.user_id, "email": session.email, "name": session.name})


@user_app.command("profile")
def user_profile(email: str = EmailOption, password: str = PasswordOption) -> None:
    async def work(remote: SqlDataService) -> dict:
        async with _signed_in(remote, email, password) as session:
            profile = await UserProfileService(session, remote).fetch_profile()
        return profile.model_dump(mode="json")

    _echo(_run(work))


@settings_app.command("show")
def settings_show(email: str = EmailOption, password: str = PasswordOption) -> None:
    async def work(remote: SqlDataService) -> dict:
        async with _signed_in(remote, email, password) as session:
            job_settings = await JobSettingsService(session, remote).fetch()
        return job_settings.model_dump(mode="json") | {
            "difficulty_label": difficulty_label(job_settings.difficulty_level)
        }

    _echo(_run(work))


@settings_app.command("set")
def settings_set(
    email: str = EmailOption,
    password: str = PasswordOption,
    difficulty: str | None = typer.Option(None, "--difficulty"),
    questions: str | None = typer.Option(None, "--questions"),
) -> None:
    updates: dict[str, Any] = {}
    if difficulty is not None:
        updates["difficulty_level"] = difficulty
    if questions is not None:
        updates["question_count"] = questions

    async def work(remote: SqlDataService) -> dict:
        async with _signed_in(remote, email, password) as session:
            job_settings = await JobSettingsService(session, remote).update(updates)
        return job_settings.model_dump(mode="json")

    _echo(_run(work))


@resume_app.command("show")
def resume_show(email: str = EmailOption, password: str = PasswordOption) -> None:
    async def work(remote: SqlDataService) -> dict | None:
        async with _signed_in(remote, email, password) as session:
            resume = await ResumeService(session, remote).fetch()
        if resume is None:
            return None
        return resume.model_dump(mode="json") | {
            "size": format_file_size(resume.file_size),
            "status_label": resume_status_label(resume.status),
        }

    _echo(_run(work))


@resume_app.command("upload")
def resume_upload(
    email: str = EmailOption,
    password: str = PasswordOption,
    file: Path = typer.Option(..., "--file", exists=True, readable=True, dir_okay=False),
) -> None:
    content_type = mimetypes.guess_type(file.name)[0] or "application/octet-stream"
    upload = ResumeFile(name=file.name, content_type=content_type, content=file.read_bytes())

    async def work(remote: SqlDataService) -> dict:
        async with _signed_in(remote, email, password) as session:
            resume = await ResumeService(session, remote).upload(upload)
        return resume.model_dump(mode="json")

    _echo(_run(work))


@resume_app.command("delete")
def resume_delete(email: str = EmailOption, password: str = PasswordOption) -> None:
    async def work(remote: SqlDataService) -> None:
        async with _signed_in(remote, email, password) as session:
            await ResumeService(session, remote).delete()

    _run(work)
    _echo({"ok": True})


@activity_app.command("list")
def activity_list(
    email: str = EmailOption,
    password: str = PasswordOption,
    pages: int = typer.Option(1, "--pages", min=1),
) -> None:
    async def work(remote: SqlDataService) -> dict:
        async with _signed_in(remote, email, password) as session:
            service = UserProfileService(session, remote)
            await service.fetch_activity(0)
            while len(service.activity_pages) < pages and service.has_more_activity:
                await service.load_more_activity()
        return {
            "items": [
                {
                    "type": activity_type_label(item.activity_type),
                    "description": item.description,
                    "created_at": item.created_at.isoformat() if item.created_at else None,
                }
                for item in service.activity_history
            ],
            "has_more": service.has_more_activity,
        }

    _echo(_run(work))


@interview_app.command("create")
def interview_create(
    email: str = EmailOption,
    password: str = PasswordOption,
    job_description: str = typer.Option(..., "--job-description"),
    difficulty: str = typer.Option("medium", "--difficulty"),
    questions: int = typer.Option(10, "--questions"),
) -> None:
    async def work(remote: SqlDataService) -> dict:
        async with _signed_in(remote, email, password) as session:
            interview = await InterviewService(session, remote).create(
                {"job_description": job_description, "difficulty": difficulty, "num_questions": questions}
            )
        return interview.model_dump(mode="json")

    _echo(_run(work))


@interview_app.command("list")
def interview_list(email: str = EmailOption, password: str = PasswordOption) -> None:
    async def work(remote: SqlDataService) -> list[dict]:
        async with _signed_in(remote, email, password) as session:
            interviews = await InterviewService(session, remote).list_interviews()
        return [interview.model_dump(mode="json") for interview in interviews]

    _echo(_run(work))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
