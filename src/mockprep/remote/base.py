from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from mockprep.types import UserSession

Row = dict[str, Any]


@dataclass(slots=True)
class SelectResult:
    rows: list[Row] = field(default_factory=list)
    count: int | None = None


class RemoteDataService(ABC):
    """Hosted backend: row store, blob store, auth provider and procedures.

    Every call may fail with :class:`mockprep.errors.RemoteError`. Single-row
    reads and writes that match nothing raise
    :class:`mockprep.errors.NotFoundError`.
    """

    @abstractmethod
    async def select_one(self, table: str, filters: Row) -> Row: ...

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Row,
        *,
        order_by: str | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int | None = None,
        count: bool = False,
    ) -> SelectResult: ...

    @abstractmethod
    async def insert(self, table: str, values: Row) -> Row: ...

    @abstractmethod
    async def update(self, table: str, filters: Row, values: Row) -> Row: ...

    @abstractmethod
    async def upsert(self, table: str, values: Row, *, on_conflict: str) -> Row: ...

    @abstractmethod
    async def delete(self, table: str, filters: Row) -> int: ...

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        *,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> str: ...

    @abstractmethod
    async def remove(self, bucket: str, paths: list[str]) -> None: ...

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str: ...

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> UserSession: ...

    @abstractmethod
    async def get_user(self, access_token: str) -> UserSession: ...

    @abstractmethod
    async def update_user(
        self,
        session: UserSession,
        *,
        email: str | None = None,
        password: str | None = None,
    ) -> UserSession: ...

    @abstractmethod
    async def sign_out(self, session: UserSession) -> None: ...

    @abstractmethod
    async def rpc(self, procedure: str, args: Row, *, session: UserSession) -> Any: ...
