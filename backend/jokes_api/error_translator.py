"""
Jokes API — Storage Error Translator
=====================================

What:  Maps any failure value to an HTTP status code and JSON error body.
How:   StorageErrors dispatch on their kind through a lookup table; every
       other value (unexpected exceptions, non-exception values, None)
       falls through to the 500 default.
Who:   Called by the exception handlers registered in main.py.

Mapping:
    ┌──────────────────────────┬──────┬───────────────────────────────────────────────┐
    │ StorageErrorKind         │ HTTP │ Body                                          │
    ├──────────────────────────┼──────┼───────────────────────────────────────────────┤
    │ UNIQUE_CONSTRAINT        │ 409  │ error, code, field                            │
    │ RECORD_NOT_FOUND         │ 404  │ error, code                                   │
    │ FOREIGN_KEY_CONSTRAINT   │ 400  │ error, code                                   │
    │ REQUIRED_RELATION        │ 400  │ error, code                                   │
    │ REQUEST                  │ 400  │ error "Database request error", code, message │
    │ VALIDATION               │ 400  │ error "Invalid data provided", message        │
    │ CONNECTION               │ 503  │ error "Database connection error" (logged)    │
    │ anything else            │ 500  │ error "Internal server error" (logged)        │
    └──────────────────────────┴──────┴───────────────────────────────────────────────┘

Only the 503 and 500 rows write to the log; 4xx outcomes are the client's
concern and are returned silently.
"""

import logging
from typing import Any, Dict, Tuple

from fastapi.responses import JSONResponse

from jokes_api.exceptions import StorageError, StorageErrorKind

logger = logging.getLogger(__name__)

ErrorBody = Dict[str, Any]

# Kinds whose body is exactly {error, code} (plus field for unique violations)
_CONSTRAINT_ERRORS: Dict[StorageErrorKind, Tuple[int, str]] = {
    StorageErrorKind.UNIQUE_CONSTRAINT: (409, "A record with this value already exists"),
    StorageErrorKind.RECORD_NOT_FOUND: (404, "Record not found"),
    StorageErrorKind.FOREIGN_KEY_CONSTRAINT: (400, "Related record not found"),
    StorageErrorKind.REQUIRED_RELATION: (400, "Required relation violation"),
}

INTERNAL_ERROR_BODY: ErrorBody = {"error": "Internal server error"}
CONNECTION_ERROR_BODY: ErrorBody = {"error": "Database connection error"}


def translate_error(error: object) -> Tuple[int, ErrorBody]:
    """
    Translate a failure into (status_code, body).

    Total over its input: any value maps to exactly one row of the table
    above. Has no side effects other than logging the 503 and 500 rows.
    """
    if isinstance(error, StorageError):
        constraint = _CONSTRAINT_ERRORS.get(error.kind)
        if constraint is not None:
            status, message = constraint
            body: ErrorBody = {"error": message, "code": error.code}
            if error.kind is StorageErrorKind.UNIQUE_CONSTRAINT:
                body["field"] = list(error.target)
            return status, body

        if error.kind is StorageErrorKind.REQUEST:
            return 400, {
                "error": "Database request error",
                "code": error.code,
                "message": error.message,
            }

        if error.kind is StorageErrorKind.VALIDATION:
            return 400, {"error": "Invalid data provided", "message": error.message}

        if error.kind is StorageErrorKind.CONNECTION:
            logger.error("Database connection error: %s | Context: %s", error.message, error.context)
            return 503, dict(CONNECTION_ERROR_BODY)

    if isinstance(error, BaseException):
        logger.error(
            "Unexpected error: %r",
            error,
            exc_info=(type(error), error, error.__traceback__),
        )
    else:
        logger.error("Unexpected error: %r", error)
    return 500, dict(INTERNAL_ERROR_BODY)


def error_response(error: object) -> JSONResponse:
    """translate_error() wrapped in a JSONResponse."""
    status, body = translate_error(error)
    return JSONResponse(status_code=status, content=body)
