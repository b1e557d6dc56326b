import pytest

from matchplay.api.models import (
    EndGameRequest,
    JoinMatchmakingRequest,
    LeaveMatchmakingRequest,
    MoveRequest,
)
from matchplay.core.exceptions import InvalidRequestError
from matchplay.core.shared_types import GameType


# -- Validation - JoinMatchmakingRequest --
def test_join_request_defaults_to_noughts_and_crosses() -> None:
    request = JoinMatchmakingRequest(participant_id="user-1", display_name="Alice")
    assert request.game_type == GameType.NOUGHTS_CROSSES


def test_join_request_strips_whitespace() -> None:
    request = JoinMatchmakingRequest(participant_id="  user-1 ", display_name=" Alice  ")
    assert request.participant_id == "user-1"
    assert request.display_name == "Alice"


@pytest.mark.parametrize(
    "participant_id, display_name",
    [
        ("", "Alice"),  # no participant
        ("user-1", ""),  # no name
        ("   ", "Alice"),  # only whitespace
        ("user-1", "\t\n"),
    ],
)
def test_join_request_needs_an_id_and_a_name(participant_id: str, display_name: str) -> None:
    with pytest.raises(InvalidRequestError):
        JoinMatchmakingRequest(participant_id=participant_id, display_name=display_name)


def test_unknown_game_type_is_refused() -> None:
    """Pydantic refuses the enum value itself; the API answers it with a validation error."""
    with pytest.raises(ValueError):
        JoinMatchmakingRequest(participant_id="user-1", display_name="Alice", game_type="chess")


# -- Validation - the other requests --
def test_leave_request_needs_a_participant() -> None:
    with pytest.raises(InvalidRequestError):
        LeaveMatchmakingRequest(participant_id=" ")


def test_end_request_needs_a_participant() -> None:
    with pytest.raises(InvalidRequestError):
        EndGameRequest(participant_id="")


def test_move_request_leaves_the_range_to_the_game() -> None:
    """Out-of-range cells are accepted here, so that turn order is checked first."""
    request = MoveRequest(participant_id="user-1", cell_index=12)
    assert request.cell_index == 12


def test_move_request_needs_a_participant() -> None:
    with pytest.raises(InvalidRequestError):
        MoveRequest(participant_id="", cell_index=0)


@pytest.mark.parametrize("cell_index", [True, "4", 4.0])
def test_move_request_needs_a_real_integer(cell_index: object) -> None:
    """JSON true would otherwise be read as cell 1."""
    with pytest.raises(ValueError):
        MoveRequest(participant_id="user-1", cell_index=cell_index)
