"""
Jokes API — Joke Route Handlers
================================

What:  GET /jokes (list), GET /jokes/{id} (detail), POST /jokes (create).
How:   The validation stage runs as a dependency; handlers hand the
       normalized models to the JokeService bound to the app.
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from jokes_api.schemas.joke import (
    ErrorResponse,
    JokeCreate,
    JokeIdParams,
    JokeListQuery,
    JokeListResponse,
    JokeResponse,
    ValidationErrorResponse,
)
from jokes_api.services.joke_service import JokeService
from jokes_api.validation import ValidatedRequest, validate_request

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Jokes"])


def get_joke_service(request: Request) -> JokeService:
    """The JokeService wired by create_app() for this application instance."""
    return request.app.state.joke_service


@router.get(
    "/jokes",
    response_model=JokeListResponse,
    responses={
        400: {"description": "Invalid query parameters", "model": ValidationErrorResponse},
        503: {"description": "Database unavailable", "model": ErrorResponse},
    },
    summary="List jokes with pagination, filtering and sorting",
    description=(
        "Query parameters: page (default 1), limit (1-100, default 10), "
        "author and search (substring filters), sortBy (id, createdAt, text; "
        "default id) and sortOrder (asc, desc; default desc)."
    ),
)
async def list_jokes(
    validated: ValidatedRequest = Depends(validate_request(query=JokeListQuery)),
    service: JokeService = Depends(get_joke_service),
) -> JokeListResponse:
    return await service.list_jokes(validated.query)


@router.get(
    "/jokes/{id}",
    response_model=JokeResponse,
    responses={
        400: {"description": "id is not an integer", "model": ValidationErrorResponse},
        404: {"description": "Joke not found", "model": ErrorResponse},
    },
    summary="Get a single joke by id",
)
async def get_joke(
    validated: ValidatedRequest = Depends(validate_request(params=JokeIdParams)),
    service: JokeService = Depends(get_joke_service),
) -> JokeResponse:
    return await service.get_joke(validated.params.id)


@router.post(
    "/jokes",
    response_model=JokeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid body", "model": ValidationErrorResponse},
        409: {"description": "Unique constraint violated", "model": ErrorResponse},
    },
    summary="Create a joke",
)
async def create_joke(
    validated: ValidatedRequest = Depends(validate_request(body=JokeCreate)),
    service: JokeService = Depends(get_joke_service),
) -> JokeResponse:
    return await service.create_joke(validated.body)
