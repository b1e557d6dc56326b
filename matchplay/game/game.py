"""
The Game class is the entrypoint into the domain layer for the service layer.
It holds the rules of a single noughts & crosses session: whose turn it is, which moves are legal,
and when the game is over. It knows nothing about storage, expiry or concurrency.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Self

from matchplay.core.exceptions import (
    NotAParticipantError,
    NotYourTurnError,
    SessionNotActiveError,
)
from matchplay.core.models import GameSession, ParticipantId, PlayerSeat, SessionId
from matchplay.core.shared_types import DRAW, GameType, Mark, Status
from matchplay.game.board import Board


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    session_id: SessionId
    game_type: GameType
    board: Board
    seats: dict[Mark, PlayerSeat]
    current_turn: ParticipantId
    status: Status
    winner: Optional[str]
    created_at: datetime
    last_move_at: datetime
    expires_at: datetime
    version: int

    @classmethod
    def new_game(
        cls,
        session_id: SessionId,
        game_type: GameType,
        first: PlayerSeat,
        second: PlayerSeat,
        now: datetime,
        expires_at: datetime,
    ) -> Self:
        """Both seats are filled at creation, so a new game starts active with the first seat to move."""
        return cls(
            session_id=session_id,
            game_type=game_type,
            board=Board.empty(),
            seats={Mark.SEAT_A: first, Mark.SEAT_B: second},
            current_turn=first.participant_id,
            status=Status.ACTIVE,
            winner=None,
            created_at=now,
            last_move_at=now,
            expires_at=expires_at,
            version=1,
        )

    @classmethod
    def from_model(cls, model: GameSession) -> Self:
        """Define how to construct a Game from the stored session."""
        return cls(
            session_id=model.session_id,
            game_type=GameType(model.game_type),
            board=Board.from_cells(model.board),
            seats={Mark.SEAT_A: model.seat_a, Mark.SEAT_B: model.seat_b},
            current_turn=model.current_turn,
            status=Status(model.status),
            winner=model.winner,
            created_at=model.created_at,
            last_move_at=model.last_move_at,
            expires_at=model.expires_at,
            version=model.version,
        )

    def to_model(self) -> GameSession:
        """Encode back into the format the service layer and repositories use."""
        return GameSession(
            session_id=self.session_id,
            game_type=self.game_type,
            seat_a=self.seats[Mark.SEAT_A],
            seat_b=self.seats[Mark.SEAT_B],
            current_turn=self.current_turn,
            board=self.board.to_cells(),
            status=self.status,
            winner=self.winner,
            created_at=self.created_at,
            last_move_at=self.last_move_at,
            expires_at=self.expires_at,
            version=self.version,
        )

    @property
    def is_finished(self) -> bool:
        return self.status == Status.FINISHED

    def make_move(self, participant_id: ParticipantId, cell_index: int, now: datetime) -> None:
        """
        Attempt to make a move
        -----

        1. the game must (still) be active
        2. it must be the participant's turn
        3. the cell must exist and be empty (the board checks this)
        4. update the game status: win, draw, or hand the turn to the opponent

        Nothing is modified unless every check passes.
        """
        if self.status != Status.ACTIVE:
            raise SessionNotActiveError(
                f"Game {self.session_id} is not active. status: {self.status}"
            )

        self._assert_your_turn(participant_id)

        self.board.place(self._mark_of(participant_id), cell_index)
        self.last_move_at = now
        self._update_game_status()

    def forfeit(self, participant_id: ParticipantId) -> None:
        """The participant gives up: the opponent wins. A game that is already over keeps its result."""
        if self.is_finished:
            return
        self._finish(winner=self._opponent_of(participant_id).participant_id)

    def is_turn_expired(self, now: datetime, turn_timeout: Optional[timedelta]) -> bool:
        """The player to move has let the clock run out."""
        if turn_timeout is None or self.status != Status.ACTIVE:
            return False
        return now - self.last_move_at > turn_timeout

    # -- PRIVATE HELPERS ---
    def _assert_your_turn(self, participant_id: ParticipantId) -> None:
        if participant_id != self.current_turn:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for {self.current_turn} to make a move first."
            )

    def _mark_of(self, participant_id: ParticipantId) -> Mark:
        for mark, seat in self.seats.items():
            if seat.participant_id == participant_id:
                return mark
        raise NotAParticipantError(
            f"{participant_id!r} does not play in game {self.session_id}."
        )

    def _opponent_of(self, participant_id: ParticipantId) -> PlayerSeat:
        opponent_mark = (
            Mark.SEAT_B if self._mark_of(participant_id) == Mark.SEAT_A else Mark.SEAT_A
        )
        return self.seats[opponent_mark]

    def _update_game_status(self) -> None:
        """Win takes precedence over a draw: the completing move may also fill the board."""
        winning_mark = self.board.winning_mark()
        if winning_mark is not None:
            self._finish(winner=self.seats[winning_mark].participant_id)
        elif self.board.is_full():
            self._finish(winner=DRAW)
        else:
            self.current_turn = self._opponent_of(self.current_turn).participant_id

    def _finish(self, winner: str) -> None:
        self.status = Status.FINISHED
        self.winner = winner
