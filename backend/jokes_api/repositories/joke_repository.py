"""
Jokes API — Joke Storage Collaborator
======================================

What:  The persistence boundary for Joke records.
How:   JokeStore is the structural contract the service layer depends on;
       JokeRepository implements it over an async SQLAlchemy session factory.
       Each call opens its own session, so independent reads may run
       concurrently (the list operation gathers page + count).
Who:   Built by create_app() from settings, or supplied by the caller.

Failure Contract:
    Every SQLAlchemy or driver failure leaving this module is a StorageError
    tagged with exactly one StorageErrorKind (see classify_error). Anything
    that is not a database failure propagates unchanged.

    ┌────────────────────────────────────┬───────────────────────────┐
    │ SQLAlchemy / driver failure        │ StorageErrorKind          │
    ├────────────────────────────────────┼───────────────────────────┤
    │ IntegrityError, unique (23505)     │ UNIQUE_CONSTRAINT         │
    │ IntegrityError, foreign key (23503)│ FOREIGN_KEY_CONSTRAINT    │
    │ NoResultFound                      │ RECORD_NOT_FOUND          │
    │ DataError, non-driver StatementErr │ VALIDATION                │
    │ OverflowError (integer too wide)   │ VALIDATION                │
    │ OperationalError, InterfaceError,  │ CONNECTION                │
    │ DisconnectionError, pool timeout,  │                           │
    │ OSError                            │                           │
    │ any other DBAPIError / SQLAlchemy  │ REQUEST                   │
    └────────────────────────────────────┴───────────────────────────┘
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence, TypeVar

from sqlalchemy import ColumnElement, and_, asc, desc, func, select
from sqlalchemy.exc import (
    DataError,
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    NoResultFound,
    OperationalError,
    SQLAlchemyError,
    StatementError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jokes_api.exceptions import StorageError, StorageErrorKind
from jokes_api.models.joke import Joke

logger = logging.getLogger(__name__)

T = TypeVar("T")

SORTABLE_COLUMNS = {
    "id": Joke.id,
    "createdAt": Joke.created_at,
    "text": Joke.text,
}


# ══════════════════════════════════════════════════════════════════════════
# Query Inputs
# ══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class JokeFilter:
    """
    Substring filters for listing and counting.

    author: containment match on Joke.author
    search: containment match on Joke.text
    Both set → both apply (AND). Neither set → every record matches.
    """

    author: Optional[str] = None
    search: Optional[str] = None

    def clauses(self) -> List[ColumnElement[bool]]:
        conditions: List[ColumnElement[bool]] = []
        if self.author:
            conditions.append(Joke.author.contains(self.author, autoescape=True))
        if self.search:
            conditions.append(Joke.text.contains(self.search, autoescape=True))
        return conditions


@dataclass(frozen=True)
class JokeOrder:
    """A single field/direction pair, passed straight to ORDER BY."""

    field: str = "id"
    direction: str = "desc"

    def clause(self) -> ColumnElement[Any]:
        column = SORTABLE_COLUMNS[self.field]
        return asc(column) if self.direction == "asc" else desc(column)


class JokeStore(Protocol):
    """Contract for Joke persistence — implemented by JokeRepository and test doubles."""

    async def create(self, text: str, author: Optional[str] = None) -> Joke: ...

    async def find_unique(self, joke_id: int) -> Optional[Joke]: ...

    async def find_many(
        self,
        where: JokeFilter,
        order_by: JokeOrder,
        skip: int,
        take: int,
    ) -> Sequence[Joke]: ...

    async def count(self, where: JokeFilter) -> int: ...


# ══════════════════════════════════════════════════════════════════════════
# Failure Classification
# ══════════════════════════════════════════════════════════════════════════

_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?P<columns>.+)$", re.MULTILINE)
_POSTGRES_KEY = re.compile(r"Key \((?P<columns>[^)]*)\)=")


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    """SQLSTATE from the driver exception (asyncpg: .sqlstate, psycopg: .pgcode)."""
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if isinstance(value, str) and value:
            return value
    return None


def _unique_columns(exc: DBAPIError) -> List[str]:
    """Violating column names from a unique-constraint failure, when the driver reports them."""
    detail = str(exc.orig)
    match = _SQLITE_UNIQUE.search(detail)
    if match:
        return [col.strip().split(".")[-1] for col in match.group("columns").split(",")]

    pg_detail = getattr(exc.orig, "detail", None) or detail
    match = _POSTGRES_KEY.search(str(pg_detail))
    if match:
        return [col.strip() for col in match.group("columns").split(",")]

    constraint = getattr(exc.orig, "constraint_name", None)
    return [constraint] if constraint else []


def classify_error(exc: BaseException) -> Optional[StorageError]:
    """
    Maps a database failure onto the closed StorageErrorKind set.

    Returns None for anything that is not a database failure, so callers
    re-raise it untouched.
    """
    if isinstance(exc, StorageError):
        return exc

    if isinstance(exc, NoResultFound):
        return StorageError(StorageErrorKind.RECORD_NOT_FOUND, message=str(exc))

    if isinstance(exc, IntegrityError):
        state = _sqlstate(exc)
        detail = str(exc.orig)
        if state == "23505" or "UNIQUE constraint failed" in detail:
            return StorageError(
                StorageErrorKind.UNIQUE_CONSTRAINT,
                message=detail,
                target=_unique_columns(exc),
            )
        if state == "23503" or "FOREIGN KEY constraint failed" in detail:
            return StorageError(StorageErrorKind.FOREIGN_KEY_CONSTRAINT, message=detail)
        return StorageError(
            StorageErrorKind.REQUEST,
            message=detail,
            code=state or exc.code,
        )

    if isinstance(exc, (OperationalError, InterfaceError)):
        return StorageError(StorageErrorKind.CONNECTION, message=str(exc.orig))

    if isinstance(exc, DataError):
        return StorageError(StorageErrorKind.VALIDATION, message=str(exc.orig))

    if isinstance(exc, DBAPIError):
        return StorageError(
            StorageErrorKind.REQUEST,
            message=str(exc.orig),
            code=_sqlstate(exc) or exc.code,
        )

    # StatementError that is not a DBAPIError: parameter processing failed
    # before anything reached the driver.
    if isinstance(exc, StatementError):
        return StorageError(StorageErrorKind.VALIDATION, message=str(exc.orig or exc))

    # Bound integer wider than the column type (sqlite3 raises this unwrapped)
    if isinstance(exc, OverflowError):
        return StorageError(StorageErrorKind.VALIDATION, message=str(exc))

    if isinstance(exc, (DisconnectionError, PoolTimeoutError, OSError)):
        return StorageError(StorageErrorKind.CONNECTION, message=str(exc))

    if isinstance(exc, SQLAlchemyError):
        return StorageError(StorageErrorKind.REQUEST, message=str(exc), code=exc.code)

    return None


# ══════════════════════════════════════════════════════════════════════════
# SQLAlchemy Implementation
# ══════════════════════════════════════════════════════════════════════════


class JokeRepository:
    """
    SQLAlchemy-backed JokeStore.

    Every method runs in its own session from the factory: reads roll back
    on close, create commits its single insert.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _run(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        try:
            async with self._session_factory() as session:
                return await operation(session)
        except Exception as exc:
            storage_error = classify_error(exc)
            if storage_error is None or storage_error is exc:
                raise
            logger.debug("Storage failure classified as %s: %s", storage_error.kind.value, exc)
            raise storage_error from exc

    async def create(self, text: str, author: Optional[str] = None) -> Joke:
        async def operation(session: AsyncSession) -> Joke:
            joke = Joke(text=text, author=author)
            session.add(joke)
            await session.flush()  # assigns id
            await session.commit()
            return joke

        return await self._run(operation)

    async def find_unique(self, joke_id: int) -> Optional[Joke]:
        async def operation(session: AsyncSession) -> Optional[Joke]:
            result = await session.execute(select(Joke).where(Joke.id == joke_id))
            return result.scalar_one_or_none()

        return await self._run(operation)

    async def find_many(
        self,
        where: JokeFilter,
        order_by: JokeOrder,
        skip: int,
        take: int,
    ) -> Sequence[Joke]:
        async def operation(session: AsyncSession) -> Sequence[Joke]:
            query = select(Joke)
            conditions = where.clauses()
            if conditions:
                query = query.where(and_(*conditions))
            query = query.order_by(order_by.clause()).offset(skip).limit(take)
            result = await session.execute(query)
            return list(result.scalars().all())

        return await self._run(operation)

    async def count(self, where: JokeFilter) -> int:
        async def operation(session: AsyncSession) -> int:
            query = select(func.count(Joke.id))
            conditions = where.clauses()
            if conditions:
                query = query.where(and_(*conditions))
            result = await session.execute(query)
            return result.scalar() or 0

        return await self._run(operation)

