"""
Jokes API — Request Validation Stage
=====================================

What:  Checks path params, query params and body against declared Pydantic
       schemas before any handler runs.
How:   validate_request(params=..., query=..., body=...) builds a FastAPI
       dependency. Every declared part is checked by the same generic
       function (collect_violations); violations from all parts are pooled
       and raised together as one ValidationError (→ 400).
Who:   Attached to routes in jokes_api.routes.jokes.

Result:
    Success → normalized models on request.state (validated_params,
              validated_query, validated_body) and returned as a
              ValidatedRequest for the handler.
    Failure → ValidationError with details in params, query, body order.
              Parts that passed are still attached to request.state.

Example failure body:
    {
        "error": "Validation failed",
        "details": [
            {"field": "id", "message": "id must be a valid integer"},
            {"field": "text", "message": "text is required"}
        ]
    }
"""

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Type

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from jokes_api.exceptions import ValidationError

Violation = Dict[str, str]

# Request-part prefixes FastAPI puts at the start of its own error locations
_REQUEST_PARTS = {"path", "query", "body", "header", "cookie"}


@dataclass
class ValidatedRequest:
    """Normalized request parts; None for parts the route does not declare."""

    params: Optional[BaseModel] = None
    query: Optional[BaseModel] = None
    body: Optional[BaseModel] = None


def format_violations(errors: Iterable[Dict[str, Any]]) -> List[Violation]:
    """Turns Pydantic error dicts into {field, message} pairs."""
    return [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())) or "unknown",
            "message": error.get("msg", "Invalid value"),
        }
        for error in errors
    ]


def collect_violations(
    schema: Type[BaseModel], raw: Any
) -> Tuple[Optional[BaseModel], List[Violation]]:
    """
    Validates one request part against its schema.

    Returns (normalized_model, []) on success, (None, violations) on failure.
    Never raises for invalid input, so callers can aggregate across parts.
    """
    try:
        return schema.model_validate(raw), []
    except PydanticValidationError as exc:
        return None, format_violations(exc.errors())


def format_request_validation_error(exc: RequestValidationError) -> List[Violation]:
    """FastAPI's own validation errors, with the request-part prefix dropped."""
    errors = []
    for error in exc.errors():
        loc = tuple(error.get("loc", ()))
        if loc and loc[0] in _REQUEST_PARTS:
            loc = loc[1:]
        errors.append({**error, "loc": loc})
    return format_violations(errors)


async def read_body(request: Request) -> Tuple[Any, List[Violation]]:
    """
    Decodes the request body for validation.

    JSON and urlencoded forms are accepted. An empty body is an empty mapping,
    so a missing body reports the schema's required fields.
    """
    raw = await request.body()
    if not raw:
        return {}, []

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        return dict(form), []

    try:
        return json.loads(raw), []
    except ValueError:
        return None, [{"field": "unknown", "message": "Request body must be valid JSON"}]


def validate_request(
    params: Optional[Type[BaseModel]] = None,
    query: Optional[Type[BaseModel]] = None,
    body: Optional[Type[BaseModel]] = None,
) -> Callable[[Request], Awaitable[ValidatedRequest]]:
    """
    Build a dependency validating the declared request parts.

    Usage:
        @router.get("/jokes/{id}")
        async def get_joke(validated: ValidatedRequest = Depends(validate_request(params=JokeIdParams))):
            ...
    """

    async def dependency(request: Request) -> ValidatedRequest:
        violations: List[Violation] = []
        validated = ValidatedRequest()

        if params is not None:
            model, errors = collect_violations(params, dict(request.path_params))
            violations.extend(errors)
            if model is not None:
                validated.params = model
                request.state.validated_params = model

        if query is not None:
            model, errors = collect_violations(query, dict(request.query_params))
            violations.extend(errors)
            if model is not None:
                validated.query = model
                request.state.validated_query = model

        if body is not None:
            raw, errors = await read_body(request)
            if not errors:
                model, errors = collect_violations(body, raw)
                if model is not None:
                    validated.body = model
                    request.state.validated_body = model
            violations.extend(errors)

        if violations:
            raise ValidationError(details=violations)

        return validated

    return dependency
