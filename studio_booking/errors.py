from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class StudioError(Exception):
    """Base of every failure reported by the booking core.

    Core operations do not raise these past their boundary; they hand them
    back inside a ``Result`` so callers can show ``str(error)`` and decide
    whether to re-fetch or re-attempt.
    """

    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message or self.default_message)
        if status_code is not None:
            self.status_code = status_code

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(StudioError):
    status_code = 400
    default_message = "Invalid input"


class NotFoundError(StudioError):
    status_code = 404
    default_message = "Not found"


class RemoteError(StudioError):
    status_code = 502
    default_message = "The data service reported a failure"


class UnexpectedError(StudioError):
    status_code = 500


@dataclass
class Result(Generic[T]):
    data: Optional[T] = None
    error: Optional[StudioError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(data=data, error=None)

    @classmethod
    def failure(cls, error: StudioError) -> "Result[T]":
        return cls(data=None, error=error)
