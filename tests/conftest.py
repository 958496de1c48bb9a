from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from pathlib import Path

import pytest

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="mockprep-tests-"))
os.environ["APP_ENV"] = "test"
os.environ["DATA_DIR"] = str(_TEST_ROOT)
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'mockprep.db'}"
os.environ["STORAGE_DIR"] = str(_TEST_ROOT / "storage")
os.environ["UPLOAD_PROGRESS_INTERVAL_SEC"] = "0.01"

from mockprep.config import get_settings  # noqa: E402
from mockprep.core.runtime import reset_runtime  # noqa: E402
from mockprep.db import models  # noqa: E402,F401
from mockprep.db.base import Base  # noqa: E402
from mockprep.db.session import engine  # noqa: E402
from mockprep.remote.factory import build_remote, set_remote  # noqa: E402
from mockprep.remote.local import SqlDataService  # noqa: E402
from mockprep.types import UserSession  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    settings = get_settings()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    shutil.rmtree(settings.storage_dir, ignore_errors=True)
    (settings.storage_dir / settings.resume_bucket).mkdir(parents=True, exist_ok=True)
    reset_runtime()
    set_remote(None)
    yield


@pytest.fixture
def remote() -> SqlDataService:
    return build_remote()


@pytest.fixture
def account(remote: SqlDataService) -> UserSession:
    return asyncio.run(remote.create_user("ada@example.com", "first-secret", "Ada Lovelace"))
