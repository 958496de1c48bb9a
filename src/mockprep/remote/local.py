from __future__ import annotations

import asyncio
import logging
import secrets
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import quote

from passlib.context import CryptContext
from sqlalchemy import delete, func, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from mockprep.config import Settings, get_settings
from mockprep.db.base import Base
from mockprep.db.models import (
    ActivityHistory,
    AuthSession,
    AuthUser,
    Interview,
    JobSettings,
    Profile,
    Resume,
)
from mockprep.errors import AuthenticationError, ConflictError, NotFoundError, RemoteError
from mockprep.remote.base import RemoteDataService, Row, SelectResult
from mockprep.types import ACTIVITY_TYPES, UserSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

TABLES: dict[str, type[Base]] = {
    "profiles": Profile,
    "resumes": Resume,
    "job_settings": JobSettings,
    "interviews": Interview,
    "activity_history": ActivityHistory,
}

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def _column_map(model: type[Base]) -> dict[str, str]:
    """Column name -> mapped attribute name."""
    return {attr.columns[0].name: attr.key for attr in inspect(model).column_attrs}


def row_to_dict(obj: Base) -> Row:
    return {column: getattr(obj, attr) for column, attr in _column_map(type(obj)).items()}


def _model_for(table: str) -> type[Base]:
    try:
        return TABLES[table]
    except KeyError:
        raise RemoteError(f'relation "{table}" does not exist', code="42P01") from None


def _attrs(model: type[Base], values: Row) -> dict[str, Any]:
    columns = _column_map(model)
    unknown = sorted(set(values) - set(columns))
    if unknown:
        raise RemoteError(f"unknown column(s) {unknown} on {model.__tablename__}", code="PGRST204")
    return {columns[key]: value for key, value in values.items()}


def _where(model: type[Base], filters: Row) -> list[Any]:
    return [getattr(model, attr) == value for attr, value in _attrs(model, filters).items()]


class LocalBlobStorage:
    """Buckets as directories under ``root``."""

    def __init__(self, root: Path, public_base_url: str):
        self.root = root
        self.public_base_url = public_base_url.rstrip("/")

    def resolve(self, bucket: str, path: str) -> Path:
        base = (self.root / bucket).resolve()
        target = (base / path).resolve()
        if base != target and base not in target.parents:
            raise RemoteError(f"invalid object path '{path}'", code="invalid_path")
        return target

    def upload(self, bucket: str, path: str, content: bytes, *, upsert: bool) -> str:
        target = self.resolve(bucket, path)
        if target.exists() and not upsert:
            raise ConflictError("The resource already exists", code="Duplicate")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return path

    def remove(self, bucket: str, paths: list[str]) -> None:
        for path in paths:
            target = self.resolve(bucket, path)
            if target.is_file():
                target.unlink()

    def exists(self, bucket: str, path: str) -> bool:
        return self.resolve(bucket, path).is_file()

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{quote(bucket)}/{quote(path)}"


class SqlDataService(RemoteDataService):
    """Self-hosted stand-in for the hosted backend.

    Rows live in SQLAlchemy tables, blobs on the local filesystem. The sync
    ORM work runs in a worker thread so callers never block the event loop.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        storage: LocalBlobStorage,
        *,
        settings: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.storage = storage
        self.settings = settings or get_settings()

    async def _run(self, fn: Callable[[Session], T]) -> T:
        def work() -> T:
            with self.session_factory() as db:
                try:
                    return fn(db)
                except IntegrityError as exc:
                    db.rollback()
                    raise ConflictError(str(exc.orig), code="23505") from exc
                except SQLAlchemyError as exc:
                    db.rollback()
                    raise RemoteError(str(exc), code="database_error") from exc

        return await asyncio.to_thread(work)

    async def select_one(self, table: str, filters: Row) -> Row:
        model = _model_for(table)

        def work(db: Session) -> Row:
            rows = list(db.scalars(select(model).where(*_where(model, filters)).limit(2)).all())
            if len(rows) != 1:
                raise NotFoundError(
                    "JSON object requested, multiple (or no) rows returned", code="PGRST116"
                )
            return row_to_dict(rows[0])

        return await self._run(work)

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
    ) -> SelectResult:
        model = _model_for(table)

        def work(db: Session) -> SelectResult:
            conditions = _where(model, filters)
            statement = select(model).where(*conditions)
            if order_by is not None:
                columns = _column_map(model)
                if order_by not in columns:
                    raise RemoteError(f"unknown column {order_by!r} on {model.__tablename__}", code="PGRST204")
                column = getattr(model, columns[order_by])
                primary = model.__mapper__.primary_key[0]
                if descending:
                    statement = statement.order_by(column.desc(), primary.desc())
                else:
                    statement = statement.order_by(column.asc(), primary.asc())
            if offset:
                statement = statement.offset(offset)
            if limit is not None:
                statement = statement.limit(limit)
            rows = [row_to_dict(item) for item in db.scalars(statement).all()]
            total = None
            if count:
                total = db.scalar(select(func.count()).select_from(model).where(*conditions))
            return SelectResult(rows=rows, count=total)

        return await self._run(work)

    async def insert(self, table: str, values: Row) -> Row:
        model = _model_for(table)

        def work(db: Session) -> Row:
            obj = model(**_attrs(model, values))
            db.add(obj)
            db.commit()
            db.refresh(obj)
            return row_to_dict(obj)

        return await self._run(work)

    async def update(self, table: str, filters: Row, values: Row) -> Row:
        model = _model_for(table)

        def work(db: Session) -> Row:
            obj = db.scalar(select(model).where(*_where(model, filters)))
            if obj is None:
                raise NotFoundError(
                    "JSON object requested, multiple (or no) rows returned", code="PGRST116"
                )
            for attr, value in _attrs(model, values).items():
                setattr(obj, attr, value)
            db.commit()
            db.refresh(obj)
            return row_to_dict(obj)

        return await self._run(work)

    async def upsert(self, table: str, values: Row, *, on_conflict: str) -> Row:
        model = _model_for(table)
        if on_conflict not in values:
            raise RemoteError(f"upsert payload is missing conflict column '{on_conflict}'", code="42P10")

        def work(db: Session) -> Row:
            key = _attrs(model, {on_conflict: values[on_conflict]})
            existing = db.scalar(select(model).filter_by(**key))
            if existing is not None:
                for attr, value in _attrs(model, values).items():
                    setattr(existing, attr, value)
                obj = existing
            else:
                obj = model(**_attrs(model, values))
                db.add(obj)
            db.commit()
            db.refresh(obj)
            return row_to_dict(obj)

        return await self._run(work)

    async def delete(self, table: str, filters: Row) -> int:
        model = _model_for(table)

        def work(db: Session) -> int:
            result = db.execute(delete(model).where(*_where(model, filters)))
            db.commit()
            return result.rowcount or 0

        return await self._run(work)

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        *,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> str:
        logger.debug("storing %d bytes (%s) at %s/%s", len(content), content_type, bucket, path)
        return await asyncio.to_thread(self.storage.upload, bucket, path, content, upsert=upsert)

    async def remove(self, bucket: str, paths: list[str]) -> None:
        await asyncio.to_thread(self.storage.remove, bucket, paths)

    def get_public_url(self, bucket: str, path: str) -> str:
        return self.storage.public_url(bucket, path)

    def _session_for(self, db: Session, user: AuthUser) -> UserSession:
        now = datetime.now(UTC)
        db.execute(delete(AuthSession).where(AuthSession.expires_at <= now))
        token = secrets.token_urlsafe(32)
        db.add(
            AuthSession(
                token=token,
                user_id=user.id,
                expires_at=now + timedelta(minutes=self.settings.session_ttl_min),
            )
        )
        db.commit()
        profile = db.get(Profile, user.id)
        return UserSession(
            user_id=user.id,
            email=user.email,
            name=profile.name if profile else "",
            access_token=token,
        )

    @staticmethod
    def _user_for_token(db: Session, access_token: str) -> AuthUser:
        auth_session = db.get(AuthSession, access_token) if access_token else None
        if auth_session is None:
            raise AuthenticationError("Invalid session", code="invalid_token")
        expires_at = auth_session.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        if expires_at <= datetime.now(UTC):
            raise AuthenticationError("Session expired", code="session_expired")
        user = db.get(AuthUser, auth_session.user_id)
        if user is None:
            raise AuthenticationError("User not found", code="user_not_found")
        return user

    async def create_user(self, email: str, password: str, name: str) -> UserSession:
        """Register an account, its profile row and the signup activity entry."""
        email = email.strip().lower()

        def work(db: Session) -> UserSession:
            user = AuthUser(id=str(uuid.uuid4()), email=email, password_hash=pwd_context.hash(password))
            db.add(user)
            db.flush()
            db.add(Profile(id=user.id, name=name, email=email))
            db.add(
                ActivityHistory(
                    user_id=user.id,
                    activity_type="account_created",
                    description="Account created",
                    metadata_json={"email": email},
                )
            )
            db.commit()
            return self._session_for(db, user)

        return await self._run(work)

    async def sign_in_with_password(self, email: str, password: str) -> UserSession:
        email = email.strip().lower()

        def work(db: Session) -> UserSession:
            user = db.scalar(select(AuthUser).where(AuthUser.email == email))
            if user is None or not pwd_context.verify(password, user.password_hash):
                raise AuthenticationError("Invalid login credentials", code="invalid_credentials")
            return self._session_for(db, user)

        return await self._run(work)

    async def get_user(self, access_token: str) -> UserSession:
        def work(db: Session) -> UserSession:
            user = self._user_for_token(db, access_token)
            profile = db.get(Profile, user.id)
            return UserSession(
                user_id=user.id,
                email=user.email,
                name=profile.name if profile else "",
                access_token=access_token,
            )

        return await self._run(work)

    async def update_user(
        self,
        session: UserSession,
        *,
        email: str | None = None,
        password: str | None = None,
    ) -> UserSession:
        def work(db: Session) -> UserSession:
            user = self._user_for_token(db, session.access_token)
            if email is not None:
                user.email = email.strip().lower()
            if password is not None:
                user.password_hash = pwd_context.hash(password)
            db.commit()
            return session.model_copy(update={"email": user.email})

        return await self._run(work)

    async def sign_out(self, session: UserSession) -> None:
        def work(db: Session) -> None:
            db.execute(delete(AuthSession).where(AuthSession.token == session.access_token))
            db.commit()

        await self._run(work)

    async def rpc(self, procedure: str, args: Row, *, session: UserSession) -> Any:
        if procedure != "log_activity":
            raise RemoteError(f"Could not find the function public.{procedure}", code="PGRST202")

        activity_type = args.get("activity_type")
        if activity_type not in ACTIVITY_TYPES:
            raise RemoteError(f"invalid activity type '{activity_type}'", code="22023")

        def work(db: Session) -> int:
            user = self._user_for_token(db, session.access_token)
            entry = ActivityHistory(
                user_id=user.id,
                activity_type=activity_type,
                description=str(args.get("description", "")),
                metadata_json=dict(args.get("metadata") or {}),
            )
            db.add(entry)
            db.commit()
            return entry.id

        return await self._run(work)
