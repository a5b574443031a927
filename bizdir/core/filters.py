"""Typed query filters and condition composition."""
import uuid
from typing import Any, Callable, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import and_
from sqlalchemy.sql import ColumnElement, Select

from bizdir.core.errors import ValidationError

F = TypeVar("F", bound=BaseModel)

LIKE_ESCAPE = "\\"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class BusinessFilter(BaseModel):
    """Filter for listing businesses."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    category: uuid.UUID | None = None
    search: str | None = None
    owner_id: uuid.UUID | None = None
    claimed: bool | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int | None = Field(default=None, ge=0)

    # Blank values mean "no filter"; search text is otherwise kept verbatim
    @field_validator("category", "owner_id", "search", mode="before")
    @classmethod
    def blank_values(cls, v: Any) -> Any:
        return _blank_to_none(v)


class OrderFilter(BaseModel):
    """Filter for listing orders."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    business_id: uuid.UUID | None = None
    customer_id: uuid.UUID | None = None
    status: str | None = None

    @field_validator("business_id", "customer_id", "status", mode="before")
    @classmethod
    def blank_values(cls, v: Any) -> Any:
        return _blank_to_none(v)


def parse_model(model: type[F], value: F | Mapping[str, Any] | None) -> F:
    """Validate a filter or input map once at the repository boundary."""
    if value is None:
        return model()
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(dict(value))
    except PydanticValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        raise ValidationError(f"Invalid {model.__name__}: {', '.join(fields)}", fields=fields) from e


def to_uuid(value: uuid.UUID | str, field: str = "id") -> uuid.UUID:
    """Coerce an identifier, rejecting malformed ones."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(f"Malformed identifier for '{field}': {value!r}", fields=[field])


def like_pattern(search: str) -> str:
    """Substring pattern for ILIKE with the LIKE wildcards escaped."""
    escaped = (
        search.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def contains_ignore_case(haystack: str | None, needle: str) -> bool:
    """Case-insensitive substring test, the in-memory counterpart of ILIKE."""
    return haystack is not None and needle.lower() in haystack.lower()


class ConditionSet:
    """
    Ordered list of WHERE conditions joined with AND.

    Conditions are SQLAlchemy expressions, so every value ends up as a bound
    parameter of the statement and never in the query text.
    """

    def __init__(self):
        self._conditions: list[ColumnElement[bool]] = []

    def add(self, condition: ColumnElement[bool]) -> "ConditionSet":
        self._conditions.append(condition)
        return self

    def add_if(self, value: Any, build: Callable[[Any], ColumnElement[bool]]) -> "ConditionSet":
        """Add build(value) only when the filter field is present."""
        if value is not None:
            self._conditions.append(build(value))
        return self

    def __len__(self) -> int:
        return len(self._conditions)

    def apply(self, stmt: Select) -> Select:
        if not self._conditions:
            return stmt
        return stmt.where(and_(*self._conditions))


def paginate(stmt: Select, limit: int | None, offset: int | None) -> Select:
    """Append LIMIT/OFFSET, each only when provided."""
    if limit is not None:
        stmt = stmt.limit(limit)
    if offset is not None:
        stmt = stmt.offset(offset)
    return stmt
