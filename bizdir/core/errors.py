"""Error taxonomy and the {data, error} result shape."""
import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Stable, inspectable error kinds."""

    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    STORAGE = "storage"
    FORBIDDEN = "forbidden"


class RepositoryError(Exception):
    """Base class for failures reported through Result.error."""

    kind: ErrorKind = ErrorKind.STORAGE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class NotFound(RepositoryError):
    """Requested entity id has no matching row."""

    kind = ErrorKind.NOT_FOUND


class ValidationError(RepositoryError):
    """Required field missing or malformed before reaching storage."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []


class ConflictError(RepositoryError):
    """Uniqueness or state invariant violated."""

    kind = ErrorKind.CONFLICT


class StorageError(RepositoryError):
    """The execution engine rejected the operation."""

    kind = ErrorKind.STORAGE


class Forbidden(RepositoryError):
    """Caller is not allowed to act on the entity (service layer only)."""

    kind = ErrorKind.FORBIDDEN


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either data or error, never both."""

    data: T | None = None
    error: RepositoryError | None = None

    def __post_init__(self):
        if self.data is not None and self.error is not None:
            raise ValueError("Result cannot carry both data and error")

    @classmethod
    def success(cls, data: T) -> "Result[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: RepositoryError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return data or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.data


def repository_operation(action: str) -> Callable:
    """
    Wrap an async repository method so that it always returns a Result.

    RepositoryError raised inside the method becomes a failure result as is;
    any other exception is logged and reported as StorageError.
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Result]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Result:
            try:
                data = await func(*args, **kwargs)
            except RepositoryError as e:
                logger.info(f"{action} failed: {e.kind.value}: {e.message}")
                return Result.failure(e)
            except Exception as e:
                logger.error(f"Error {action}: {e}", exc_info=True)
                return Result.failure(StorageError(f"Error {action}: {e}"))
            return Result.success(data)

        return wrapper

    return decorator
