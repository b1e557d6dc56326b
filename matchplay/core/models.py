"""
Boundary layer data model(s).

These objects are passed between the service layer, the repositories and the game domain.
The API layer converts them into its own response models.
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from matchplay.core.exceptions import GameError, NotAParticipantError
from matchplay.core.shared_types import GameType, Status

# Type aliases to make the models easier to read
ParticipantId = str
SessionId = str


@dataclass(frozen=True)
class WaitingEntry:
    """One player seeking an opponent for a game type."""

    entry_id: str
    participant_id: ParticipantId
    display_name: str
    game_type: GameType
    enqueued_at: datetime


@dataclass(frozen=True)
class PlayerSeat:
    participant_id: ParticipantId
    display_name: str


@dataclass
class GameSession:
    """Transport-safe representation of a two-player session, as stored in the repository."""

    session_id: SessionId
    game_type: GameType
    seat_a: PlayerSeat
    seat_b: PlayerSeat
    current_turn: ParticipantId
    board: list[int]
    status: Status
    winner: Optional[str]
    created_at: datetime
    last_move_at: datetime
    expires_at: datetime
    version: int = 1

    @property
    def participant_ids(self) -> tuple[ParticipantId, ParticipantId]:
        return (self.seat_a.participant_id, self.seat_b.participant_id)

    def seat_of(self, participant_id: ParticipantId) -> PlayerSeat:
        for seat in (self.seat_a, self.seat_b):
            if seat.participant_id == participant_id:
                return seat
        raise NotAParticipantError(
            f"{participant_id!r} does not play in session {self.session_id}."
        )

    def opponent_of(self, participant_id: ParticipantId) -> PlayerSeat:
        if participant_id == self.seat_a.participant_id:
            return self.seat_b
        if participant_id == self.seat_b.participant_id:
            return self.seat_a
        raise NotAParticipantError(
            f"{participant_id!r} does not play in session {self.session_id}."
        )


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    session_id: Optional[SessionId] = None
    opponent_name: Optional[str] = None


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a move attempt: the updated session, or the reason it was refused."""

    ok: bool
    session: Optional[GameSession] = None
    error: Optional[GameError] = None

    @property
    def reason(self) -> Optional[str]:
        return None if self.error is None else str(self.error.code)


@dataclass
class ReaperReport:
    expired_entries: int = 0
    forfeited_sessions: list[SessionId] = field(default_factory=list)
    purged_records: int = 0
