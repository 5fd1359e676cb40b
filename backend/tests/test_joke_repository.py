"""
Jokes API — Joke Repository Tests
==================================

What:  Tests for the SQLAlchemy storage collaborator and failure classification.
How:   Repository tests run against a throwaway SQLite file per test
       (aiosqlite); classify_error() is fed hand-built SQLAlchemy exceptions.

What we test:
    ✅ create assigns id and created_at; author defaults to None
    ✅ find_unique returns None for unknown ids
    ✅ find_many applies filters, ordering, skip and take
    ✅ count applies the same filters and ignores pagination
    ✅ Every database failure maps to exactly one StorageErrorKind
"""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.exc import (
    ArgumentError,
    DataError,
    IntegrityError,
    NoResultFound,
    OperationalError,
    ProgrammingError,
    StatementError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from jokes_api.database import build_engine, build_session_factory
from jokes_api.exceptions import StorageError, StorageErrorKind
from jokes_api.repositories.joke_repository import (
    JokeFilter,
    JokeOrder,
    JokeRepository,
    classify_error,
)

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakePostgresError(Exception):
    """Stands in for an asyncpg exception: carries sqlstate and detail."""

    def __init__(self, message, sqlstate, detail=None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.detail = detail


def as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# Repository against SQLite
# ══════════════════════════════════════════════════════════════════════════


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamp(self, repository):
        joke = await repository.create(text="New joke", author="John Doe")

        assert joke.id is not None
        assert joke.text == "New joke"
        assert joke.author == "John Doe"
        assert joke.created_at is not None

    @pytest.mark.asyncio
    async def test_create_without_author(self, repository):
        joke = await repository.create(text="Anonymous joke")
        assert joke.author is None

        stored = await repository.find_unique(joke.id)
        assert stored.author is None

    @pytest.mark.asyncio
    async def test_ids_are_distinct(self, repository):
        first = await repository.create(text="one")
        second = await repository.create(text="two")
        assert first.id != second.id


class TestFindUnique:

    @pytest.mark.asyncio
    async def test_returns_stored_record(self, repository, seed_jokes):
        [joke] = await seed_jokes([{"text": "Stored", "author": "Ann", "created_at": BASE_TIME}])

        found = await repository.find_unique(joke.id)

        assert found.id == joke.id
        assert found.text == "Stored"
        assert as_utc(found.created_at) == BASE_TIME

    @pytest.mark.asyncio
    async def test_missing_returns_none(self, repository):
        assert await repository.find_unique(999999) is None

    @pytest.mark.asyncio
    async def test_negative_id_returns_none(self, repository):
        assert await repository.find_unique(-1) is None


class TestFindMany:

    @pytest_asyncio.fixture
    async def seeded(self, seed_jokes):
        return await seed_jokes([
            {"text": "Alpha funny joke", "author": "John", "created_at": BASE_TIME + timedelta(minutes=2)},
            {"text": "Beta serious joke", "author": "John Smith", "created_at": BASE_TIME},
            {"text": "Gamma funny joke", "author": "Mary", "created_at": BASE_TIME + timedelta(minutes=1)},
            {"text": "Delta joke", "author": None, "created_at": BASE_TIME + timedelta(minutes=3)},
        ])

    @pytest.mark.asyncio
    async def test_default_order_is_id_desc(self, repository, seeded):
        jokes = await repository.find_many(JokeFilter(), JokeOrder(), skip=0, take=10)
        assert [j.id for j in jokes] == sorted((j.id for j in seeded), reverse=True)

    @pytest.mark.asyncio
    async def test_author_substring_filter(self, repository, seeded):
        jokes = await repository.find_many(JokeFilter(author="John"), JokeOrder(), 0, 10)
        assert {j.author for j in jokes} == {"John", "John Smith"}

    @pytest.mark.asyncio
    async def test_search_substring_filter(self, repository, seeded):
        jokes = await repository.find_many(JokeFilter(search="funny"), JokeOrder(), 0, 10)
        assert {j.text for j in jokes} == {"Alpha funny joke", "Gamma funny joke"}

    @pytest.mark.asyncio
    async def test_filters_combine_with_and(self, repository, seeded):
        jokes = await repository.find_many(
            JokeFilter(author="John", search="funny"), JokeOrder(), 0, 10
        )
        assert [j.text for j in jokes] == ["Alpha funny joke"]

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, repository, seeded):
        jokes = await repository.find_many(JokeFilter(search="%"), JokeOrder(), 0, 10)
        assert jokes == []

    @pytest.mark.asyncio
    async def test_sort_by_created_at_ascending(self, repository, seeded):
        jokes = await repository.find_many(
            JokeFilter(), JokeOrder(field="createdAt", direction="asc"), 0, 10
        )
        assert [j.text for j in jokes] == [
            "Beta serious joke",
            "Gamma funny joke",
            "Alpha funny joke",
            "Delta joke",
        ]

    @pytest.mark.asyncio
    async def test_sort_by_text_ascending(self, repository, seeded):
        jokes = await repository.find_many(
            JokeFilter(), JokeOrder(field="text", direction="asc"), 0, 10
        )
        assert [j.text[0] for j in jokes] == ["A", "B", "D", "G"]

    @pytest.mark.asyncio
    async def test_skip_and_take(self, repository, seeded):
        order = JokeOrder(field="text", direction="asc")
        jokes = await repository.find_many(JokeFilter(), order, skip=1, take=2)
        assert [j.text[0] for j in jokes] == ["B", "D"]

    @pytest.mark.asyncio
    async def test_skip_past_end_is_empty(self, repository, seeded):
        assert await repository.find_many(JokeFilter(), JokeOrder(), skip=40, take=10) == []


class TestCount:

    @pytest.mark.asyncio
    async def test_empty_table(self, repository):
        assert await repository.count(JokeFilter()) == 0

    @pytest.mark.asyncio
    async def test_counts_with_filters(self, repository, seed_jokes):
        await seed_jokes([
            {"text": "funny one", "author": "John", "created_at": BASE_TIME},
            {"text": "funny two", "author": "Mary", "created_at": BASE_TIME},
            {"text": "dry three", "author": "John", "created_at": BASE_TIME},
        ])

        assert await repository.count(JokeFilter()) == 3
        assert await repository.count(JokeFilter(author="John")) == 2
        assert await repository.count(JokeFilter(search="funny")) == 2
        assert await repository.count(JokeFilter(author="John", search="funny")) == 1


class TestRepositoryFailures:

    @pytest.mark.asyncio
    async def test_id_wider_than_column_is_validation_error(self, repository):
        with pytest.raises(StorageError) as exc_info:
            await repository.find_unique(10 ** 20)

        assert exc_info.value.kind is StorageErrorKind.VALIDATION
        assert isinstance(exc_info.value.__cause__, OverflowError)

    @pytest.mark.asyncio
    async def test_unique_violation_raises_storage_error(self, repository, db_engine):
        async with db_engine.begin() as conn:
            await conn.execute(text("CREATE UNIQUE INDEX uq_jokes_text ON jokes (text)"))

        await repository.create(text="Same joke")
        with pytest.raises(StorageError) as exc_info:
            await repository.create(text="Same joke")

        assert exc_info.value.kind is StorageErrorKind.UNIQUE_CONSTRAINT
        assert exc_info.value.code == "P2002"
        assert exc_info.value.target == ["text"]
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    @pytest.mark.asyncio
    async def test_unreachable_database_is_connection_error(self, tmp_path):
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'jokes.db'}")
        repository = JokeRepository(build_session_factory(engine))
        try:
            with pytest.raises(StorageError) as exc_info:
                await repository.find_unique(1)
        finally:
            await engine.dispose()

        assert exc_info.value.kind is StorageErrorKind.CONNECTION


# ══════════════════════════════════════════════════════════════════════════
# classify_error
# ══════════════════════════════════════════════════════════════════════════


class TestClassifyError:

    def test_sqlite_unique_violation(self):
        exc = IntegrityError(
            "INSERT INTO jokes", {}, sqlite3.IntegrityError("UNIQUE constraint failed: jokes.text")
        )
        error = classify_error(exc)
        assert error.kind is StorageErrorKind.UNIQUE_CONSTRAINT
        assert error.target == ["text"]

    def test_sqlite_composite_unique_violation(self):
        exc = IntegrityError(
            "INSERT INTO jokes",
            {},
            sqlite3.IntegrityError("UNIQUE constraint failed: jokes.text, jokes.author"),
        )
        assert classify_error(exc).target == ["text", "author"]

    def test_postgres_unique_violation(self):
        orig = FakePostgresError(
            "duplicate key value violates unique constraint",
            sqlstate="23505",
            detail="Key (text)=(Same joke) already exists.",
        )
        error = classify_error(IntegrityError("INSERT INTO jokes", {}, orig))
        assert error.kind is StorageErrorKind.UNIQUE_CONSTRAINT
        assert error.code == "P2002"
        assert error.target == ["text"]

    def test_postgres_foreign_key_violation(self):
        orig = FakePostgresError("violates foreign key constraint", sqlstate="23503")
        error = classify_error(IntegrityError("INSERT", {}, orig))
        assert error.kind is StorageErrorKind.FOREIGN_KEY_CONSTRAINT
        assert error.code == "P2003"

    def test_sqlite_foreign_key_violation(self):
        exc = IntegrityError("INSERT", {}, sqlite3.IntegrityError("FOREIGN KEY constraint failed"))
        assert classify_error(exc).kind is StorageErrorKind.FOREIGN_KEY_CONSTRAINT

    def test_other_integrity_error_is_request_error_with_sqlstate(self):
        orig = FakePostgresError("null value in column", sqlstate="23502")
        error = classify_error(IntegrityError("INSERT", {}, orig))
        assert error.kind is StorageErrorKind.REQUEST
        assert error.code == "23502"
        assert error.message == "null value in column"

    def test_other_integrity_error_without_sqlstate_uses_sqlalchemy_code(self):
        exc = IntegrityError("INSERT", {}, sqlite3.IntegrityError("NOT NULL constraint failed: jokes.text"))
        error = classify_error(exc)
        assert error.kind is StorageErrorKind.REQUEST
        assert error.code == exc.code

    def test_operational_error_is_connection(self):
        exc = OperationalError("SELECT 1", {}, sqlite3.OperationalError("unable to open database file"))
        error = classify_error(exc)
        assert error.kind is StorageErrorKind.CONNECTION
        assert error.message == "unable to open database file"

    def test_data_error_is_validation(self):
        exc = DataError("INSERT", {}, FakePostgresError("value too long", sqlstate="22001"))
        assert classify_error(exc).kind is StorageErrorKind.VALIDATION

    def test_other_dbapi_error_is_request(self):
        exc = ProgrammingError("SELECT", {}, FakePostgresError("syntax error", sqlstate="42601"))
        error = classify_error(exc)
        assert error.kind is StorageErrorKind.REQUEST
        assert error.code == "42601"

    def test_parameter_processing_failure_is_validation(self):
        exc = StatementError("could not bind", "INSERT", {}, TypeError("unsupported type"))
        error = classify_error(exc)
        assert error.kind is StorageErrorKind.VALIDATION
        assert "unsupported type" in error.message

    def test_integer_overflow_is_validation(self):
        error = classify_error(OverflowError("Python int too large to convert to SQLite INTEGER"))
        assert error.kind is StorageErrorKind.VALIDATION
        assert "too large" in error.message

    def test_no_result_found_is_record_not_found(self):
        error = classify_error(NoResultFound("No row was found"))
        assert error.kind is StorageErrorKind.RECORD_NOT_FOUND
        assert error.code == "P2025"

    def test_pool_timeout_is_connection(self):
        assert classify_error(PoolTimeoutError("QueuePool limit reached")).kind is StorageErrorKind.CONNECTION

    def test_os_error_is_connection(self):
        assert classify_error(ConnectionRefusedError("refused")).kind is StorageErrorKind.CONNECTION

    def test_other_sqlalchemy_error_is_request(self):
        assert classify_error(ArgumentError("bad argument")).kind is StorageErrorKind.REQUEST

    def test_storage_error_passes_through(self):
        error = StorageError(StorageErrorKind.CONNECTION)
        assert classify_error(error) is error

    @pytest.mark.parametrize("exc", [ValueError("x"), RuntimeError("y"), KeyError("z")])
    def test_non_database_errors_are_not_classified(self, exc):
        assert classify_error(exc) is None
