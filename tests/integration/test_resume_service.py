import asyncio

import pytest

from mockprep.config import get_settings
from mockprep.core.cache import QueryCache
from mockprep.errors import NotFoundError, RemoteError, ValidationError
from mockprep.services.resume import ResumeService
from mockprep.types import ResumeFile


def _pdf(name: str, body: bytes = b"%PDF-1.7 resume") -> ResumeFile:
    return ResumeFile(name=name, content_type="application/pdf", content=body)


def _activity_types(remote, user_id: str) -> list[str]:
    result = asyncio.run(remote.select("activity_history", {"user_id": user_id}, order_by="created_at"))
    return [row["activity_type"] for row in result.rows]


def test_fetch_without_resume_returns_none(remote, account) -> None:
    service = ResumeService(account, remote, cache=QueryCache())
    assert asyncio.run(service.fetch()) is None


def test_upload_stores_blob_row_and_activity(remote, account) -> None:
    service = ResumeService(account, remote, cache=QueryCache())
    resume = asyncio.run(service.upload(_pdf("My CV.pdf")))

    assert resume.user_id == account.user_id
    assert resume.file_name == "My CV.pdf"
    assert resume.file_path.startswith(f"{account.user_id}/")
    assert resume.file_path.endswith("_My_CV.pdf")
    assert resume.file_size == len(b"%PDF-1.7 resume")
    assert resume.status == "active"
    assert remote.storage.exists("resumes", resume.file_path)
    assert service.resume == resume
    assert _activity_types(remote, account.user_id) == ["account_created", "resume_upload"]


def test_second_upload_replaces_row_but_keeps_earlier_blob(remote, account) -> None:
    service = ResumeService(account, remote, cache=QueryCache())
    first = asyncio.run(service.upload(_pdf("first.pdf")))
    second = asyncio.run(service.upload(_pdf("second.pdf")))

    rows = asyncio.run(remote.select("resumes", {"user_id": account.user_id})).rows
    assert len(rows) == 1
    assert rows[0]["file_path"] == second.file_path
    assert first.file_path != second.file_path
    assert remote.storage.exists("resumes", first.file_path)
    assert remote.storage.exists("resumes", second.file_path)


def test_metadata_failure_removes_uploaded_blob(remote, account, monkeypatch) -> None:
    uploaded: list[str] = []
    original_upload = remote.upload

    async def tracking_upload(bucket, path, content, **kwargs):
        uploaded.append(path)
        return await original_upload(bucket, path, content, **kwargs)

    async def failing_upsert(table, values, *, on_conflict):
        raise RemoteError("duplicate key value violates unique constraint", code="23505")

    monkeypatch.setattr(remote, "upload", tracking_upload)
    monkeypatch.setattr(remote, "upsert", failing_upsert)
    service = ResumeService(account, remote, cache=QueryCache())

    with pytest.raises(RemoteError, match="duplicate key"):
        asyncio.run(service.upload(_pdf("cv.pdf")))

    assert len(uploaded) == 1
    assert not remote.storage.exists("resumes", uploaded[0])
    assert service.resume is None
    assert _activity_types(remote, account.user_id) == ["account_created"]


def test_invalid_file_is_rejected_before_upload(remote, account, monkeypatch) -> None:
    async def unreachable(*args, **kwargs):
        raise AssertionError("storage should not be called")

    monkeypatch.setattr(remote, "upload", unreachable)
    service = ResumeService(account, remote, cache=QueryCache())
    oversized = _pdf("cv.pdf", b"x" * (10 * 1024 * 1024 + 1))

    with pytest.raises(ValidationError) as info:
        asyncio.run(service.upload(oversized))
    assert info.value.messages_for("file") == ["File size must be less than 10MB"]


def test_delete_succeeds_when_storage_cleanup_fails(remote, account, monkeypatch) -> None:
    service = ResumeService(account, remote, cache=QueryCache())
    resume = asyncio.run(service.upload(_pdf("cv.pdf")))

    async def broken_remove(bucket, paths):
        raise RemoteError("storage unavailable")

    monkeypatch.setattr(remote, "remove", broken_remove)
    asyncio.run(service.delete())

    assert service.resume is None
    assert asyncio.run(service.fetch(refresh=True)) is None
    assert remote.storage.exists("resumes", resume.file_path)
    assert _activity_types(remote, account.user_id)[-1] == "resume_delete"


def test_delete_removes_blob_and_row(remote, account) -> None:
    service = ResumeService(account, remote, cache=QueryCache())
    resume = asyncio.run(service.upload(_pdf("cv.pdf")))
    asyncio.run(service.delete())

    assert not remote.storage.exists("resumes", resume.file_path)
    assert asyncio.run(remote.select("resumes", {"user_id": account.user_id})).rows == []


def test_delete_row_failure_propagates_and_keeps_cache(remote, account, monkeypatch) -> None:
    service = ResumeService(account, remote, cache=QueryCache())
    resume = asyncio.run(service.upload(_pdf("cv.pdf")))

    async def failing_delete(table, filters):
        raise RemoteError("permission denied", code="42501")

    monkeypatch.setattr(remote, "delete", failing_delete)
    with pytest.raises(RemoteError, match="permission denied"):
        asyncio.run(service.delete())
    assert service.resume == resume


def test_delete_without_resume_is_not_found(remote, account) -> None:
    service = ResumeService(account, remote, cache=QueryCache())
    with pytest.raises(NotFoundError, match="No resume to delete"):
        asyncio.run(service.delete())


def test_upload_with_progress_finishes_at_hundred(remote, account) -> None:
    service = ResumeService(account, remote, cache=QueryCache())
    asyncio.run(service.upload_with_progress(_pdf("cv.pdf")))
    assert service.progress.value == 100.0

    with pytest.raises(ValidationError):
        asyncio.run(service.upload_with_progress(ResumeFile(name="cv.exe", content_type="application/x-msdownload")))
    assert service.progress.value == 0.0


def test_service_uses_the_settings_it_is_given(remote, account) -> None:
    settings = get_settings().model_copy(update={"upload_progress_interval_sec": 0.5, "max_resume_size_mb": 1})
    service = ResumeService(account, remote, cache=QueryCache(), settings=settings)
    assert service.progress.interval_sec == 0.5

    with pytest.raises(ValidationError, match="less than 1MB"):
        asyncio.run(service.upload(_pdf("big.pdf", b"x" * (1024 * 1024 + 1))))
