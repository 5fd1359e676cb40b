"""
Jokes API — Joke SQLAlchemy Model
==================================

What:  ORM model representing the `jokes` table.
How:   Inherits from SQLAlchemy's DeclarativeBase; Alembic reads this for migrations.
Who:   Used by JokeRepository for create/read/count and by Alembic for schema management.

Table Design:
    - id: Integer autoincrement primary key, assigned by the database
    - text: Joke body; non-empty is enforced at the validation boundary
    - author: Optional attribution (NULL when not supplied)
    - created_at: Insertion time, UTC with timezone

    Index on created_at: supports sortBy=createdAt listings.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from jokes_api.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Joke(Base):
    """
    A single persisted joke.

    Lifecycle:
        Created through POST /jokes; never updated or deleted by the API.
    """

    __tablename__ = "jokes"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Joke body",
    )

    author: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="Optional attribution",
    )

    # Python-side default gives sub-second precision on every engine;
    # the server default covers rows inserted outside the ORM.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        comment="When this joke was created (UTC)",
    )

    __table_args__ = (
        Index("idx_jokes_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Joke(id={self.id}, author={self.author!r}, created_at='{self.created_at}')>"
