"""Implementation of the MatchRepository using SQLAlchemy. Any number of server instances may share the database."""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Iterator, Optional

from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from matchplay.core.exceptions import StoreUnavailableError
from matchplay.core.models import (
    GameSession,
    ParticipantId,
    PlayerSeat,
    SessionId,
    WaitingEntry,
)
from matchplay.core.shared_types import GameType, Status
from matchplay.db.repository import PairingOutcome
from matchplay.db.schema import DBGameSession, DBParticipantLink, DBWaitingEntry

logger = logging.getLogger(__name__)

DEFAULT_WAITING_TTL = timedelta(seconds=60)


class _PairingAborted(Exception):
    """Rolls back the pairing transaction and carries the reason out of it."""

    def __init__(self, outcome: PairingOutcome) -> None:
        super().__init__(outcome.name)
        self.outcome = outcome


class SQLMatchRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy. Every method runs in its own transaction."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        waiting_ttl: timedelta = DEFAULT_WAITING_TTL,
    ) -> None:
        self.session_factory = session_factory
        self.waiting_ttl = waiting_ttl

    # --- Waiting queue ---
    def enqueue(self, entry: WaitingEntry) -> WaitingEntry:
        try:
            with self._transaction() as db:
                existing = self._fetch_entry(db, entry.participant_id, entry.game_type)
                if existing is not None:
                    if existing.enqueued_at > entry.enqueued_at - self.waiting_ttl:
                        return self._to_entry(existing)
                    # an expired leftover does not hold a place in the queue
                    db.execute(delete(DBWaitingEntry).where(DBWaitingEntry.seq == existing.seq))
                db.add(self._to_db_entry(entry))
            return entry
        except IntegrityError:
            # a concurrent enqueue of the same participant won
            with self._transaction() as db:
                existing = self._fetch_entry(db, entry.participant_id, entry.game_type)
                return self._to_entry(existing) if existing else entry

    def peek_all(self, game_type: GameType, now: datetime) -> list[WaitingEntry]:
        query = (
            select(DBWaitingEntry)
            .where(
                DBWaitingEntry.game_type == str(game_type),
                DBWaitingEntry.enqueued_at > now - self.waiting_ttl,
            )
            .order_by(DBWaitingEntry.enqueued_at, DBWaitingEntry.seq)
        )
        with self._transaction() as db:
            return [self._to_entry(row) for row in db.scalars(query)]

    def remove(self, entry: WaitingEntry) -> bool:
        statement = delete(DBWaitingEntry).where(DBWaitingEntry.entry_id == entry.entry_id)
        with self._transaction() as db:
            return db.execute(statement).rowcount == 1

    def remove_participant(self, participant_id: ParticipantId, game_type: GameType) -> bool:
        statement = delete(DBWaitingEntry).where(
            DBWaitingEntry.participant_id == participant_id,
            DBWaitingEntry.game_type == str(game_type),
        )
        with self._transaction() as db:
            return db.execute(statement).rowcount > 0

    def remove_expired(self, game_type: GameType, now: datetime) -> int:
        statement = delete(DBWaitingEntry).where(
            DBWaitingEntry.game_type == str(game_type),
            DBWaitingEntry.enqueued_at <= now - self.waiting_ttl,
        )
        with self._transaction() as db:
            return db.execute(statement).rowcount

    # --- Sessions ---
    def get(self, session_id: SessionId, now: datetime) -> Optional[GameSession]:
        with self._transaction() as db:
            session_db = self._fetch_live_session(db, session_id, now)
            return self._to_model(session_db) if session_db else None

    def put(self, session: GameSession) -> GameSession:
        with self._transaction() as db:
            db.merge(self._to_db_session(session))
        return session

    def replace(self, session: GameSession, expected_version: int) -> bool:
        statement = (
            update(DBGameSession)
            .where(
                DBGameSession.id == session.session_id,
                DBGameSession.version == expected_version,
            )
            .values(**self._session_columns(session))
        )
        with self._transaction() as db:
            return db.execute(statement).rowcount == 1

    def get_by_participant(
        self, participant_id: ParticipantId, now: datetime
    ) -> Optional[GameSession]:
        query = (
            select(DBGameSession)
            .join(DBParticipantLink, DBParticipantLink.session_id == DBGameSession.id)
            .where(
                DBParticipantLink.participant_id == participant_id,
                DBParticipantLink.expires_at > now,
                DBGameSession.expires_at > now,
            )
        )
        with self._transaction() as db:
            session_db = db.scalar(query)
            return self._to_model(session_db) if session_db else None

    def link_participant(
        self, participant_id: ParticipantId, session_id: SessionId, expires_at: datetime
    ) -> None:
        with self._transaction() as db:
            db.merge(
                DBParticipantLink(
                    participant_id=participant_id,
                    session_id=session_id,
                    expires_at=expires_at,
                )
            )

    def unlink_participant(
        self, participant_id: ParticipantId, session_id: Optional[SessionId] = None
    ) -> None:
        statement = delete(DBParticipantLink).where(
            DBParticipantLink.participant_id == participant_id
        )
        if session_id is not None:
            statement = statement.where(DBParticipantLink.session_id == session_id)
        with self._transaction() as db:
            db.execute(statement)

    def list_idle_active(self, idle_since: datetime, now: datetime) -> list[GameSession]:
        query = select(DBGameSession).where(
            DBGameSession.status == str(Status.ACTIVE),
            DBGameSession.last_move_at < idle_since,
            DBGameSession.expires_at > now,
        )
        with self._transaction() as db:
            return [self._to_model(row) for row in db.scalars(query)]

    def purge_expired(self, now: datetime) -> int:
        with self._transaction() as db:
            sessions = db.execute(
                delete(DBGameSession).where(DBGameSession.expires_at <= now)
            ).rowcount
            links = db.execute(
                delete(DBParticipantLink).where(DBParticipantLink.expires_at <= now)
            ).rowcount
        return sessions + links

    # --- Pairing ---
    def commit_match(
        self,
        consumed: list[WaitingEntry],
        session: GameSession,
        now: datetime,
    ) -> PairingOutcome:
        """
        One transaction: conditional deletes of the consumed entries, a liveness check of both participants' links,
        then session + link inserts.
        A concurrent pairing that got there first either empties a DELETE (ENTRY_TAKEN)
        or collides on the participant_links primary key (PARTICIPANT_BUSY).
        """
        try:
            with self._transaction() as db:
                for entry in consumed:
                    removed = db.execute(
                        delete(DBWaitingEntry).where(DBWaitingEntry.entry_id == entry.entry_id)
                    ).rowcount
                    if removed != 1:
                        raise _PairingAborted(PairingOutcome.ENTRY_TAKEN)

                for participant_id in session.participant_ids:
                    if self._holds_live_session(db, participant_id, now):
                        raise _PairingAborted(PairingOutcome.PARTICIPANT_BUSY)
                    # whatever link is left is stale
                    db.execute(
                        delete(DBParticipantLink).where(
                            DBParticipantLink.participant_id == participant_id
                        )
                    )

                db.add(self._to_db_session(session))
                db.add_all(
                    DBParticipantLink(
                        participant_id=participant_id,
                        session_id=session.session_id,
                        expires_at=session.expires_at,
                    )
                    for participant_id in session.participant_ids
                )
        except _PairingAborted as aborted:
            return aborted.outcome
        except IntegrityError:
            logger.debug("Link collision while pairing session %s", session.session_id)
            return PairingOutcome.PARTICIPANT_BUSY
        return PairingOutcome.COMMITTED

    # --- Internal helpers ---
    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        """Session with an open transaction: committed on success, rolled back on any exception."""
        try:
            with self.session_factory() as db, db.begin():
                yield db
        except (OperationalError, InterfaceError, PoolTimeoutError) as exc:
            logger.warning("Game store unavailable: %s", exc)
            raise StoreUnavailableError("The game store is unavailable, try again.") from exc

    def _fetch_entry(
        self, db: Session, participant_id: ParticipantId, game_type: GameType
    ) -> Optional[DBWaitingEntry]:
        query = select(DBWaitingEntry).where(
            DBWaitingEntry.participant_id == participant_id,
            DBWaitingEntry.game_type == str(game_type),
        )
        return db.scalar(query)

    def _fetch_live_session(
        self, db: Session, session_id: SessionId, now: datetime
    ) -> Optional[DBGameSession]:
        query = select(DBGameSession).where(
            DBGameSession.id == session_id, DBGameSession.expires_at > now
        )
        return db.scalar(query)

    def _holds_live_session(self, db: Session, participant_id: ParticipantId, now: datetime) -> bool:
        query = (
            select(DBGameSession.id)
            .join(DBParticipantLink, DBParticipantLink.session_id == DBGameSession.id)
            .where(
                and_(
                    DBParticipantLink.participant_id == participant_id,
                    DBParticipantLink.expires_at > now,
                    DBGameSession.expires_at > now,
                    DBGameSession.status != str(Status.FINISHED),
                )
            )
        )
        return db.scalar(query) is not None

    def _session_columns(self, session: GameSession) -> dict:
        return {
            "game_type": str(session.game_type),
            "seat_a_id": session.seat_a.participant_id,
            "seat_a_name": session.seat_a.display_name,
            "seat_b_id": session.seat_b.participant_id,
            "seat_b_name": session.seat_b.display_name,
            "current_turn": session.current_turn,
            "board": list(session.board),
            "status": str(session.status),
            "winner": session.winner,
            "created_at": session.created_at,
            "last_move_at": session.last_move_at,
            "expires_at": session.expires_at,
            "version": session.version,
        }

    def _to_db_session(self, session: GameSession) -> DBGameSession:
        return DBGameSession(id=session.session_id, **self._session_columns(session))

    def _to_model(self, session_db: DBGameSession) -> GameSession:
        """Convert SQLAlchemy model to data transfer model."""
        return GameSession(
            session_id=session_db.id,
            game_type=GameType(session_db.game_type),
            seat_a=PlayerSeat(session_db.seat_a_id, session_db.seat_a_name),
            seat_b=PlayerSeat(session_db.seat_b_id, session_db.seat_b_name),
            current_turn=session_db.current_turn,
            board=list(session_db.board),
            status=Status(session_db.status),
            winner=session_db.winner,
            created_at=session_db.created_at,
            last_move_at=session_db.last_move_at,
            expires_at=session_db.expires_at,
            version=session_db.version,
        )

    def _to_db_entry(self, entry: WaitingEntry) -> DBWaitingEntry:
        return DBWaitingEntry(
            entry_id=entry.entry_id,
            participant_id=entry.participant_id,
            display_name=entry.display_name,
            game_type=str(entry.game_type),
            enqueued_at=entry.enqueued_at,
        )

    def _to_entry(self, entry_db: DBWaitingEntry) -> WaitingEntry:
        return WaitingEntry(
            entry_id=entry_db.entry_id,
            participant_id=entry_db.participant_id,
            display_name=entry_db.display_name,
            game_type=GameType(entry_db.game_type),
            enqueued_at=entry_db.enqueued_at,
        )
