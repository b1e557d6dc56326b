"""Unit tests for matchplay/game/game.py"""

from datetime import timedelta

import pytest

from matchplay.core.exceptions import (
    CellOccupiedError,
    InvalidPositionError,
    NotAParticipantError,
    NotYourTurnError,
    SessionNotActiveError,
)
from matchplay.core.shared_types import DRAW, Mark, Status
from matchplay.game.game import Game
from tests.helpers import START, make_session


@pytest.fixture
def game() -> Game:
    """Alice (seat A) against Bob (seat B), Alice to move."""
    return Game.from_model(make_session())


def play(game: Game, *cells: int) -> None:
    """Alternate moves, starting with whoever's turn it is."""
    for cell in cells:
        game.make_move(game.current_turn, cell, START)


# --- NEW GAME ---
def test_new_game_is_active_with_seat_a_to_move(game: Game) -> None:
    assert game.status == Status.ACTIVE
    assert game.current_turn == "alice"
    assert game.winner is None
    assert game.version == 1
    assert game.board.to_cells() == [0] * 9


def test_model_round_trip(game: Game) -> None:
    model = make_session()
    assert Game.from_model(model).to_model() == model


# --- MOVES ---
def test_move_marks_the_cell_and_passes_the_turn(game: Game) -> None:
    later = START + timedelta(seconds=5)
    game.make_move("alice", 4, later)
    assert game.board.mark(4) == Mark.SEAT_A
    assert game.current_turn == "bob"
    assert game.last_move_at == later

    game.make_move("bob", 0, later)
    assert game.board.mark(0) == Mark.SEAT_B
    assert game.current_turn == "alice"


def test_move_out_of_turn(game: Game) -> None:
    with pytest.raises(NotYourTurnError):
        game.make_move("bob", 0, START)
    assert game.board.to_cells() == [0] * 9
    assert game.current_turn == "alice"


def test_turn_is_checked_before_the_cell(game: Game) -> None:
    """The player not to move learns it is not their turn, whatever the cell they picked."""
    with pytest.raises(NotYourTurnError):
        game.make_move("bob", 42, START)


def test_move_by_a_stranger(game: Game) -> None:
    with pytest.raises(NotYourTurnError):
        game.make_move("mallory", 0, START)


@pytest.mark.parametrize("cell", [-1, 9])
def test_move_off_the_board(game: Game, cell: int) -> None:
    with pytest.raises(InvalidPositionError):
        game.make_move("alice", cell, START)
    assert game.current_turn == "alice"


def test_move_on_occupied_cell(game: Game) -> None:
    play(game, 0)
    with pytest.raises(CellOccupiedError):
        game.make_move("bob", 0, START)
    assert game.board.mark(0) == Mark.SEAT_A
    assert game.current_turn == "bob"


# --- END OF GAME ---
def test_win_finishes_the_game(game: Game) -> None:
    # alice: 0 1 2, bob: 3 4
    play(game, 0, 3, 1, 4, 2)
    assert game.status == Status.FINISHED
    assert game.winner == "alice"
    assert game.is_finished


def test_seat_b_can_win(game: Game) -> None:
    # alice: 0 1 8, bob: 2 4 6 (anti-diagonal)
    play(game, 0, 2, 1, 4, 8, 6)
    assert game.status == Status.FINISHED
    assert game.winner == "bob"


def test_draw(game: Game) -> None:
    # X O X / X O O / O X X
    play(game, 0, 1, 2, 4, 3, 5, 7, 6, 8)
    assert game.status == Status.FINISHED
    assert game.winner == DRAW


def test_win_on_the_last_cell_is_not_a_draw(game: Game) -> None:
    """The completing move fills the board and a line at once: the line counts."""
    # X X X / O O X / X O O, alice completes the top row with the 9th mark
    play(game, 0, 3, 5, 4, 6, 7, 1, 8, 2)
    assert game.board.is_full()
    assert game.winner == "alice"


def test_no_moves_after_the_end(game: Game) -> None:
    play(game, 0, 3, 1, 4, 2)
    cells = game.board.to_cells()
    for participant in ("alice", "bob"):
        with pytest.raises(SessionNotActiveError):
            game.make_move(participant, 8, START)
    assert game.board.to_cells() == cells


# --- FORFEIT ---
def test_forfeit_hands_the_win_to_the_opponent(game: Game) -> None:
    game.forfeit("alice")
    assert game.status == Status.FINISHED
    assert game.winner == "bob"


def test_forfeit_of_a_finished_game_keeps_the_result(game: Game) -> None:
    play(game, 0, 3, 1, 4, 2)
    game.forfeit("alice")
    assert game.winner == "alice"


def test_forfeit_by_a_stranger(game: Game) -> None:
    with pytest.raises(NotAParticipantError):
        game.forfeit("mallory")
    assert game.status == Status.ACTIVE


# --- TURN TIMEOUT ---
def test_turn_expires_after_the_timeout(game: Game) -> None:
    timeout = timedelta(seconds=120)
    assert not game.is_turn_expired(START + timeout, timeout)
    assert game.is_turn_expired(START + timeout + timedelta(seconds=1), timeout)


def test_turn_never_expires_without_timeout(game: Game) -> None:
    assert not game.is_turn_expired(START + timedelta(days=1), None)


def test_finished_game_does_not_expire(game: Game) -> None:
    game.forfeit("bob")
    assert not game.is_turn_expired(START + timedelta(days=1), timedelta(seconds=1))
