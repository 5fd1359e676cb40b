"""
Jokes API — Custom Exception Hierarchy
=======================================

What:  Defines application-specific exceptions for the error scenarios the API reports.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by the validation stage, services and the storage collaborator.

Exception Hierarchy:
    JokesApiError (base)
    ├── ValidationError   → 400 Bad Request, itemized details
    ├── NotFoundError     → 404 Not Found
    └── StorageError      → status chosen by the error translator from its kind

Storage failures form a closed set of kinds (StorageErrorKind). The storage
collaborator converts every SQLAlchemy / driver failure into exactly one of
them, so the translator never has to know about SQLAlchemy.
"""

import enum
from typing import Any, Dict, List, Optional


class JokesApiError(Exception):
    """
    Base exception for all Jokes API application errors.

    Attributes:
        message:  Human-readable error description
        context:  Additional debug info (logged, not returned to the client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(JokesApiError):
    """
    Raised when one or more request parts fail validation.

    HTTP: 400 Bad Request

    Attributes:
        details: Every violation found, as {"field": ..., "message": ...} pairs.
                 "field" is a dotted path into the failing part, or "unknown".

    Example response:
        {
            "error": "Validation failed",
            "details": [
                {"field": "limit", "message": "limit must be between 1 and 100"},
                {"field": "text", "message": "text cannot be empty"}
            ]
        }
    """

    def __init__(
        self,
        details: Optional[List[Dict[str, str]]] = None,
        message: str = "Validation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.details = details or []


class NotFoundError(JokesApiError):
    """
    Raised by the service layer when a lookup by identifier finds nothing.

    HTTP: 404 Not Found

    The storage collaborator returns None for missing records (not an
    exception); the service converts None into this error. It is distinct
    from StorageErrorKind.RECORD_NOT_FOUND, which the storage engine raises
    itself.
    """

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)
        self.resource = resource


# ══════════════════════════════════════════════════════════════════════════
# Storage Failures
# ══════════════════════════════════════════════════════════════════════════


class StorageErrorKind(str, enum.Enum):
    """The closed set of storage failure categories."""

    UNIQUE_CONSTRAINT = "unique_constraint"
    RECORD_NOT_FOUND = "record_not_found"
    FOREIGN_KEY_CONSTRAINT = "foreign_key_constraint"
    REQUIRED_RELATION = "required_relation"
    REQUEST = "request"
    VALIDATION = "validation"
    CONNECTION = "connection"


# Stable identifiers reported in the "code" field of error bodies
UNIQUE_CONSTRAINT_CODE = "P2002"
FOREIGN_KEY_CONSTRAINT_CODE = "P2003"
REQUIRED_RELATION_CODE = "P2014"
RECORD_NOT_FOUND_CODE = "P2025"

_DEFAULT_CODES = {
    StorageErrorKind.UNIQUE_CONSTRAINT: UNIQUE_CONSTRAINT_CODE,
    StorageErrorKind.FOREIGN_KEY_CONSTRAINT: FOREIGN_KEY_CONSTRAINT_CODE,
    StorageErrorKind.REQUIRED_RELATION: REQUIRED_RELATION_CODE,
    StorageErrorKind.RECORD_NOT_FOUND: RECORD_NOT_FOUND_CODE,
}


class StorageError(JokesApiError):
    """
    Raised by the storage collaborator when a database call fails.

    Attributes:
        kind:   Which StorageErrorKind this failure belongs to
        code:   Identifier reported to clients (P2002-style for known
                constraint kinds, driver SQLSTATE for generic request errors)
        target: Violating column names for unique-constraint failures
    """

    def __init__(
        self,
        kind: StorageErrorKind,
        message: str = "Database operation failed",
        code: Optional[str] = None,
        target: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.kind = kind
        self.code = code or _DEFAULT_CODES.get(kind)
        self.target = target or []

    def __repr__(self) -> str:
        return f"<StorageError(kind={self.kind.value}, code={self.code!r})>"
