from __future__ import annotations

from collections.abc import Iterable

from mockprep.types import FieldError


class MockprepError(Exception):
    """Base class for every failure raised by mockprep."""


class ValidationError(MockprepError):
    """Local, field-scoped rejection raised before any remote call."""

    def __init__(self, errors: Iterable[FieldError]):
        self.errors = list(errors)
        if not self.errors:
            raise ValueError("ValidationError requires at least one field error")
        super().__init__(", ".join(error.message for error in self.errors))

    @property
    def fields(self) -> list[str]:
        return [error.field for error in self.errors]

    def messages_for(self, field: str) -> list[str]:
        return [error.message for error in self.errors if error.field == field]


class RemoteError(MockprepError):
    def __init__(self, message: str, code: str = "remote_error"):
        super().__init__(message)
        self.message = message
        self.code = code


class NotFoundError(RemoteError):
    def __init__(self, message: str = "No rows found", code: str = "not_found"):
        super().__init__(message, code)


class ConflictError(RemoteError):
    def __init__(self, message: str, code: str = "conflict"):
        super().__init__(message, code)


class AuthenticationError(RemoteError):
    def __init__(self, message: str = "Not authenticated", code: str = "auth_error"):
        super().__init__(message, code)


class CompensationFailure(MockprepError):
    """A rollback step of a saga failed; logged, never escalated."""

    def __init__(self, step: str, compensation: str, cause: BaseException):
        super().__init__(f"compensation '{compensation}' for step '{step}' failed: {cause}")
        self.step = step
        self.compensation = compensation
        self.cause = cause
