from __future__ import annotations

from mockprep.config import Settings, get_settings
from mockprep.db.session import SessionLocal
from mockprep.remote.base import RemoteDataService
from mockprep.remote.local import LocalBlobStorage, SqlDataService

_REMOTE: RemoteDataService | None = None


def build_remote(settings: Settings | None = None) -> SqlDataService:
    settings = settings or get_settings()
    storage = LocalBlobStorage(settings.storage_dir, settings.public_base_url)
    return SqlDataService(SessionLocal, storage, settings=settings)


def get_remote() -> RemoteDataService:
    global _REMOTE
    if _REMOTE is None:
        _REMOTE = build_remote()
    return _REMOTE


def set_remote(remote: RemoteDataService | None) -> None:
    global _REMOTE
    _REMOTE = remote
