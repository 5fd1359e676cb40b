"""
Jokes API — Pydantic Request/Response Schemas
==============================================

What:  Pydantic models defining the API contract.
How:   Request-part schemas (path params, query, body) are the declarative
       constraints interpreted by jokes_api.validation; response schemas
       shape and serialize what the handlers return.

Request values arrive as HTTP text, so numeric fields are declared with
"before" validators that accept digit-strings only and convert them. Error
messages are raised as PydanticCustomError so they reach clients verbatim.
"""

import re
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_serializer, field_validator
from pydantic_core import PydanticCustomError


INTEGER_PATTERN = re.compile(r"-?[0-9]+")
DIGITS_PATTERN = re.compile(r"[0-9]+")

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10

SortField = Literal["id", "createdAt", "text"]
SortOrder = Literal["asc", "desc"]


def _parse_digits(value: Any, field: str) -> int:
    """Converts a digit-only string to int; anything else is a violation."""
    if isinstance(value, str) and DIGITS_PATTERN.fullmatch(value):
        return int(value)
    # Programmatic construction (JokeListQuery(page=2))
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise PydanticCustomError(
        "digit_string",
        "{field} must be a positive integer",
        {"field": field},
    )


def format_timestamp(value: datetime) -> str:
    """
    Serializes a timestamp as UTC ISO-8601 with millisecond precision.

    Naive values (SQLite returns these) are interpreted as UTC.
    Example: 2024-01-01T00:00:00.000Z
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ══════════════════════════════════════════════════════════════════════════
# Request Models — path params, query params, body
# ══════════════════════════════════════════════════════════════════════════


class JokeIdParams(BaseModel):
    """Path parameters for GET /jokes/{id}."""

    id: int

    @field_validator("id", mode="before")
    @classmethod
    def parse_id(cls, v: Any) -> int:
        if isinstance(v, str) and INTEGER_PATTERN.fullmatch(v):
            return int(v)
        raise PydanticCustomError("integer_format", "id must be a valid integer")


class JokeListQuery(BaseModel):
    """
    Query parameters for GET /jokes.

    Parameters:
        page:      1-based page number (default 1)
        limit:     Items per page, 1-100 (default 10)
        author:    Substring filter on author
        search:    Substring filter on text
        sortBy:    id | createdAt | text (default id)
        sortOrder: asc | desc (default desc)

    Unknown keys are ignored.
    """

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    author: Optional[str] = None
    search: Optional[str] = None
    sort_by: SortField = Field(default="id", alias="sortBy")
    sort_order: SortOrder = Field(default="desc", alias="sortOrder")

    model_config = {"populate_by_name": True}

    @field_validator("page", mode="before")
    @classmethod
    def parse_page(cls, v: Any) -> int:
        page = _parse_digits(v, "page")
        if page < 1:
            raise PydanticCustomError("page_range", "page must be at least 1")
        return page

    @field_validator("limit", mode="before")
    @classmethod
    def parse_limit(cls, v: Any) -> int:
        limit = _parse_digits(v, "limit")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise PydanticCustomError(
                "limit_range",
                "limit must be between 1 and {max}",
                {"max": MAX_PAGE_SIZE},
            )
        return limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class JokeCreate(BaseModel):
    """Body for POST /jokes. author is passed through unchanged."""

    # Default routes a missing key through the "before" check below
    text: str = Field(default=None, validate_default=True)
    author: Optional[str] = None

    @field_validator("text", mode="before")
    @classmethod
    def text_is_string(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise PydanticCustomError("text_required", "text is required")
        return v

    @field_validator("text")
    @classmethod
    def text_not_empty(cls, v: str) -> str:
        if len(v) < 1:
            raise PydanticCustomError("empty_text", "text cannot be empty")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class JokeResponse(BaseModel):
    """
    What:  Full representation of a joke.
    Who:   Returned by GET /jokes/{id}, POST /jokes and as GET /jokes items.
    """
    id: int = Field(description="Storage-assigned identifier")
    text: str = Field(description="Joke body")
    author: Optional[str] = Field(default=None, description="Attribution, null when absent")
    created_at: datetime = Field(
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
        description="When the joke was created (UTC ISO 8601)",
    )

    model_config = {"from_attributes": True}

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int = Field(
        validation_alias=AliasChoices("totalPages", "total_pages"),
        serialization_alias="totalPages",
    )


class JokeListResponse(BaseModel):
    """Paginated response wrapper for GET /jokes."""
    data: List[JokeResponse] = Field(description="One page of jokes")
    pagination: PaginationInfo


# ══════════════════════════════════════════════════════════════════════════
# Error Response Models — documented in OpenAPI
# ══════════════════════════════════════════════════════════════════════════


class FieldViolation(BaseModel):
    field: str = Field(description="Dotted path into the failing request part, or 'unknown'")
    message: str


class ValidationErrorResponse(BaseModel):
    """Body of every 400 produced by the validation stage."""
    error: str = Field(default="Validation failed")
    details: List[FieldViolation]


class ErrorResponse(BaseModel):
    """
    Body of not-found and storage error responses.

    Only "error" is always present; "code", "field" and "message" appear
    for the storage failure kinds that report them.
    """
    error: str = Field(description="Human-readable error summary")
    code: Optional[str] = Field(default=None, description="Storage error identifier, e.g. P2002")
    field: Optional[List[str]] = Field(default=None, description="Violating columns (unique constraint)")
    message: Optional[str] = Field(default=None, description="Storage error detail")


class HealthResponse(BaseModel):
    """Health check response showing service and database status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
