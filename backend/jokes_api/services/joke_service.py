"""
Jokes API — Joke Service (Resource Handler Logic)
==================================================

What:  The three joke operations: list with filters, get by id, create.
How:   Turns validated request models into storage-collaborator calls and
       shapes the results into response models.
Who:   Called by the route handlers in jokes_api.routes.jokes.

Failure handling:
    StorageErrors raised by the collaborator propagate unchanged; the error
    translator registered in main.py turns them into responses. The only
    error raised here is NotFoundError for a missing joke.

List flow (GET /jokes):
    ┌──────────────┐    ┌───────────────────────┐    ┌────────────────────┐
    │ page, limit, │───▶│ find_many(where,      │───▶│ {data, pagination} │
    │ filters,     │    │   order, skip, take)  │    │ totalPages =       │
    │ sort         │───▶│ count(where)          │───▶│  ceil(total/limit) │
    └──────────────┘    └───────────────────────┘    └────────────────────┘
                         (gathered concurrently)
"""

import asyncio
import logging
import math

from jokes_api.exceptions import NotFoundError
from jokes_api.repositories.joke_repository import JokeFilter, JokeOrder, JokeStore
from jokes_api.schemas.joke import (
    JokeCreate,
    JokeListQuery,
    JokeListResponse,
    JokeResponse,
    PaginationInfo,
)

logger = logging.getLogger(__name__)


def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit); limit is at least 1 after validation."""
    return math.ceil(total / limit)


class JokeService:
    """
    Stateless handler logic over one storage collaborator.

    Responsibilities:
        - list_jokes(): filtered, sorted, paginated listing with total count
        - get_joke(): single record retrieval with not-found handling
        - create_joke(): single-record insert
    """

    def __init__(self, store: JokeStore):
        self.store = store

    async def list_jokes(self, query: JokeListQuery) -> JokeListResponse:
        """
        Returns one page of jokes matching the query's filters.

        The page fetch and the count are independent reads and run
        concurrently. The count ignores ordering and pagination.
        """
        where = JokeFilter(author=query.author, search=query.search)
        order = JokeOrder(field=query.sort_by, direction=query.sort_order)

        jokes, total = await asyncio.gather(
            self.store.find_many(where, order, query.offset, query.limit),
            self.store.count(where),
        )

        return JokeListResponse(
            data=[JokeResponse.model_validate(joke) for joke in jokes],
            pagination=PaginationInfo(
                page=query.page,
                limit=query.limit,
                total=total,
                total_pages=total_pages(total, query.limit),
            ),
        )

    async def get_joke(self, joke_id: int) -> JokeResponse:
        """
        Raises:
            NotFoundError: No joke has this id (→ 404 "Joke not found")
        """
        joke = await self.store.find_unique(joke_id)
        if joke is None:
            raise NotFoundError(resource="Joke", resource_id=str(joke_id))
        return JokeResponse.model_validate(joke)

    async def create_joke(self, payload: JokeCreate) -> JokeResponse:
        joke = await self.store.create(text=payload.text, author=payload.author)
        logger.info("Joke %s created", joke.id)
        return JokeResponse.model_validate(joke)
