"""Protocol repositories. The services only talk to the store through these; implemented in SQL and in memory."""

from datetime import datetime
from enum import Enum, auto
from typing import Optional, Protocol

from matchplay.core.models import (
    GameSession,
    ParticipantId,
    SessionId,
    WaitingEntry,
)
from matchplay.core.shared_types import GameType


class PairingOutcome(Enum):
    COMMITTED = auto()
    ENTRY_TAKEN = auto()  # one of the consumed entries was removed by someone else first
    PARTICIPANT_BUSY = auto()  # a participant already holds a live session


class WaitingQueue(Protocol):
    """Per game type, oldest-first set of players waiting for an opponent."""

    def enqueue(self, entry: WaitingEntry) -> WaitingEntry:
        """Add the entry. If the participant already waits for this game type, keep (and return) the existing entry."""
        ...

    def peek_all(self, game_type: GameType, now: datetime) -> list[WaitingEntry]:
        """Live entries in insertion order. Expired entries are never returned, even if not yet removed."""
        ...

    def remove(self, entry: WaitingEntry) -> bool:
        """Compare-and-delete: True only if this call removed the entry."""
        ...

    def remove_participant(self, participant_id: ParticipantId, game_type: GameType) -> bool:
        """Drop whatever entry the participant has for the game type."""
        ...

    def remove_expired(self, game_type: GameType, now: datetime) -> int:
        """Physically drop expired entries. Returns how many were dropped."""
        ...


class SessionRepository(Protocol):
    """Session records, plus the participant -> session reverse lookup."""

    def get(self, session_id: SessionId, now: datetime) -> Optional[GameSession]:
        """Get session by ID, if the record exists and has not expired."""
        ...

    def put(self, session: GameSession) -> GameSession:
        """Unconditional whole-record write."""
        ...

    def replace(self, session: GameSession, expected_version: int) -> bool:
        """Compare-and-swap: write only if the stored version still equals `expected_version`."""
        ...

    def get_by_participant(
        self, participant_id: ParticipantId, now: datetime
    ) -> Optional[GameSession]:
        """Session the participant is linked to, if link and session are both still alive."""
        ...

    def link_participant(
        self, participant_id: ParticipantId, session_id: SessionId, expires_at: datetime
    ) -> None:
        ...

    def unlink_participant(
        self, participant_id: ParticipantId, session_id: Optional[SessionId] = None
    ) -> None:
        """Remove the participant's link. With `session_id`, only a link pointing at that session is removed."""
        ...

    def list_idle_active(self, idle_since: datetime, now: datetime) -> list[GameSession]:
        """Active, unexpired sessions without a move since `idle_since`."""
        ...

    def purge_expired(self, now: datetime) -> int:
        """Physically drop expired sessions and links. Returns how many records were dropped."""
        ...


class PairingStore(Protocol):
    def commit_match(
        self,
        consumed: list[WaitingEntry],
        session: GameSession,
        now: datetime,
    ) -> PairingOutcome:
        """
        Atomically turn waiting entries into a session.
        ----

        In one step (all or nothing):
        1. remove every consumed entry, but only if all of them are still present
        2. make sure neither participant already holds a live (unfinished, unexpired) session
        3. store the session and link both participants to it (links expire with the session)
        """
        ...


class MatchRepository(WaitingQueue, SessionRepository, PairingStore, Protocol):
    """Everything the services need from one store."""
