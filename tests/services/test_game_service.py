"""Unit tests for matchplay/services/game_service.py"""

import pytest

from matchplay.api.models import (
    EndGameRequest,
    JoinMatchmakingRequest,
    JoinMatchmakingResponse,
    LeaveMatchmakingRequest,
    MoveRequest,
    SessionResponse,
)
from matchplay.core.config import Settings
from matchplay.core.exceptions import CellOccupiedError, GameError, SessionNotFoundError
from matchplay.core.shared_types import Status
from matchplay.db.repository import MatchRepository
from matchplay.services.game_service import GameService
from tests.helpers import FakeClock


@pytest.fixture
def service(repository: MatchRepository, settings: Settings, clock: FakeClock) -> GameService:
    return GameService(repository, settings, clock)


def start_game(service: GameService) -> str:
    service.join_matchmaking(JoinMatchmakingRequest(participant_id="alice", display_name="Alice"))
    response = service.join_matchmaking(
        JoinMatchmakingRequest(participant_id="bob", display_name="Bob")
    )
    assert response.session_id is not None
    return response.session_id


# --- SERVICE - MATCHMAKING ---
def test_join_returns_a_response_model(service: GameService) -> None:
    response = service.join_matchmaking(
        JoinMatchmakingRequest(participant_id="alice", display_name="Alice")
    )
    assert isinstance(response, JoinMatchmakingResponse)
    assert not response.matched


def test_get_my_game_while_waiting(service: GameService) -> None:
    service.join_matchmaking(JoinMatchmakingRequest(participant_id="alice", display_name="Alice"))
    with pytest.raises(SessionNotFoundError):
        service.get_my_game("alice")


def test_leave(service: GameService) -> None:
    service.join_matchmaking(JoinMatchmakingRequest(participant_id="alice", display_name="Alice"))
    ack = service.leave_matchmaking(LeaveMatchmakingRequest(participant_id="alice"))
    assert ack.success


# --- SERVICE - PLAY ---
def test_both_players_see_the_same_session(service: GameService) -> None:
    session_id = start_game(service)
    for participant_id in ("alice", "bob"):
        response = service.get_my_game(participant_id)
        assert isinstance(response, SessionResponse)
        assert response.session_id == session_id
        assert response.players["seat_a"].display_name == "Alice"
        assert response.players["seat_b"].display_name == "Bob"


def test_make_move(service: GameService) -> None:
    session_id = start_game(service)
    response = service.make_move(session_id, MoveRequest(participant_id="alice", cell_index=4))
    assert response.board[4] == 1
    assert response.current_turn == "bob"


def test_refused_move_is_raised(service: GameService) -> None:
    """Make sure service propagates the exceptions."""
    session_id = start_game(service)
    service.make_move(session_id, MoveRequest(participant_id="alice", cell_index=4))

    with pytest.raises(CellOccupiedError):
        service.make_move(session_id, MoveRequest(participant_id="bob", cell_index=4))
    with pytest.raises(GameError):
        service.make_move("nope", MoveRequest(participant_id="bob", cell_index=0))


def test_end_game(service: GameService) -> None:
    session_id = start_game(service)
    ack = service.end_game(session_id, EndGameRequest(participant_id="alice"))
    assert ack.success

    session = service.get_session(session_id)
    assert session.status == Status.FINISHED
    assert session.winner == "bob"
