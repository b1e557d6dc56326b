"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, String, TypeDecorator, UniqueConstraint
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class UTCDateTime(TypeDecorator[datetime]):
    """Store timezone-aware datetimes as naive UTC; hand them back tagged as UTC (SQLite drops the offset)."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Dialect) -> Any:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Refusing to store naive datetime {value!r}.")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: Any, dialect: Dialect) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    pass


class DBWaitingEntry(Base):
    __tablename__ = "waiting_entries"
    __table_args__ = (UniqueConstraint("game_type", "participant_id"),)

    # autoincrement key doubles as insertion order for entries enqueued within the same instant
    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entry_id: Mapped[str] = mapped_column(String(64), unique=True)
    participant_id: Mapped[str] = mapped_column(String(255))
    display_name: Mapped[str] = mapped_column(String(255))
    game_type: Mapped[str] = mapped_column(String(64), index=True)
    enqueued_at: Mapped[datetime] = mapped_column(UTCDateTime)


class DBGameSession(Base):
    __tablename__ = "game_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    game_type: Mapped[str] = mapped_column(String(64))
    seat_a_id: Mapped[str] = mapped_column(String(255))
    seat_a_name: Mapped[str] = mapped_column(String(255))
    seat_b_id: Mapped[str] = mapped_column(String(255))
    seat_b_name: Mapped[str] = mapped_column(String(255))
    current_turn: Mapped[str] = mapped_column(String(255))
    board: Mapped[list[int]] = mapped_column(JSON)
    status: Mapped[str] = mapped_column(String(32), index=True)
    winner: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime)
    last_move_at: Mapped[datetime] = mapped_column(UTCDateTime)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, index=True)
    version: Mapped[int] = mapped_column(default=1)


class DBParticipantLink(Base):
    __tablename__ = "participant_links"

    participant_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    session_id: Mapped[str] = mapped_column(String(64))
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, index=True)
