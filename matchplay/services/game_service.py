"""Orchestration of communication from API router to matchmaking, move processing and persistence (and the reverse direction)."""

from typing import Callable, TypeVar

from matchplay.api.models import (
    AckResponse,
    EndGameRequest,
    JoinMatchmakingRequest,
    JoinMatchmakingResponse,
    LeaveMatchmakingRequest,
    MoveRequest,
    PlayerResponse,
    SessionResponse,
)
from matchplay.core.config import Clock, Settings, utc_now
from matchplay.core.exceptions import SessionNotFoundError
from matchplay.core.models import GameSession
from matchplay.db.repository import MatchRepository
from matchplay.services.matchmaker import Matchmaker
from matchplay.services.move_processor import MoveProcessor
from matchplay.services.reaper import Reaper
from matchplay.services.retry import retry_store_call

T = TypeVar("T")


class GameService:
    """Orchestration of the layers for two-player games. Every call is stateless; clients poll for changes."""

    def __init__(
        self,
        repository: MatchRepository,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self.repo = repository
        self.settings = settings
        self.processor = MoveProcessor(repository, settings, clock)
        self.matchmaker = Matchmaker(repository, self.processor, settings, clock)
        self.reaper = Reaper(repository, self.processor, clock)

    # -- API routes logic ---
    def join_matchmaking(self, request: JoinMatchmakingRequest) -> JoinMatchmakingResponse:
        """Find an opponent or enqueue. Calling it again while queued or playing is harmless."""
        result = self._with_retry(
            lambda: self.matchmaker.request_match(
                request.participant_id, request.display_name, request.game_type
            )
        )
        return JoinMatchmakingResponse(
            matched=result.matched,
            session_id=result.session_id,
            opponent_name=result.opponent_name,
        )

    def leave_matchmaking(self, request: LeaveMatchmakingRequest) -> AckResponse:
        self._with_retry(
            lambda: self.matchmaker.leave(request.participant_id, request.game_type)
        )
        return AckResponse(message="Left waiting list")

    def get_my_game(self, participant_id: str) -> SessionResponse:
        """
        Session the participant currently occupies.
        ----
        Used in the "polling" loop by the frontend while waiting for an opponent.
        """
        session = self._with_retry(lambda: self.processor.session_of(participant_id))
        if session is None:
            raise SessionNotFoundError(f"{participant_id!r} is not in a game.")
        return self._create_session_response(session)

    def get_session(self, session_id: str) -> SessionResponse:
        """
        Retrieve current game state.
        ----
        Used in the "polling" loop by the frontend to check when it is the player's turn for instance.
        """
        session = self._with_retry(lambda: self.processor.get_session(session_id))
        return self._create_session_response(session)

    def make_move(self, session_id: str, request: MoveRequest) -> SessionResponse:
        """Make a move attempt. A refused move is raised as its typed error."""
        result = self._with_retry(
            lambda: self.processor.apply_move(
                session_id, request.participant_id, request.cell_index
            )
        )
        if not result.ok:
            raise result.error
        return self._create_session_response(result.session)

    def end_game(self, session_id: str, request: EndGameRequest) -> AckResponse:
        self._with_retry(lambda: self.processor.end_game(session_id, request.participant_id))
        return AckResponse(message="Game ended")

    # -- Internal helpers --
    def _with_retry(self, operation: Callable[[], T]) -> T:
        return retry_store_call(
            operation,
            attempts=self.settings.store_retry_attempts,
            backoff=self.settings.store_retry_backoff,
        )

    def _create_session_response(self, session: GameSession) -> SessionResponse:
        """Convert a GameSession into a SessionResponse."""
        return SessionResponse(
            session_id=session.session_id,
            game_type=session.game_type,
            players={
                "seat_a": PlayerResponse(
                    participant_id=session.seat_a.participant_id,
                    display_name=session.seat_a.display_name,
                ),
                "seat_b": PlayerResponse(
                    participant_id=session.seat_b.participant_id,
                    display_name=session.seat_b.display_name,
                ),
            },
            current_turn=session.current_turn,
            board=list(session.board),
            status=session.status,
            winner=session.winner,
            created_at=session.created_at,
            last_move_at=session.last_move_at,
        )
