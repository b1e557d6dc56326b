"""Requests and Response models"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, StrictInt, field_validator

from matchplay.core.exceptions import InvalidRequestError
from matchplay.core.shared_types import GameType, Status

SeatName = str


def _require_text(value: str, field_name: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise InvalidRequestError(f"{field_name} must not be empty.")
    return stripped


# --- REQUEST MODELS ---
class JoinMatchmakingRequest(BaseModel):
    participant_id: str
    display_name: str
    game_type: GameType = GameType.NOUGHTS_CROSSES

    @field_validator("participant_id")
    @classmethod
    def validate_participant_id(cls, value: str) -> str:
        return _require_text(value, "participant_id")

    @field_validator("display_name")
    @classmethod
    def validate_display_name(cls, value: str) -> str:
        return _require_text(value, "display_name")


class LeaveMatchmakingRequest(BaseModel):
    participant_id: str
    game_type: GameType = GameType.NOUGHTS_CROSSES

    @field_validator("participant_id")
    @classmethod
    def validate_participant_id(cls, value: str) -> str:
        return _require_text(value, "participant_id")


class MoveRequest(BaseModel):
    """The range of cell_index is checked by the game, after turn order (so a wrong-turn move reports NotYourTurn)."""

    participant_id: str
    cell_index: StrictInt

    @field_validator("participant_id")
    @classmethod
    def validate_participant_id(cls, value: str) -> str:
        return _require_text(value, "participant_id")


class EndGameRequest(BaseModel):
    participant_id: str

    @field_validator("participant_id")
    @classmethod
    def validate_participant_id(cls, value: str) -> str:
        return _require_text(value, "participant_id")


# --- RESPONSE MODELS ---
class JoinMatchmakingResponse(BaseModel):
    matched: bool
    session_id: Optional[str] = None
    opponent_name: Optional[str] = None


class AckResponse(BaseModel):
    success: bool = True
    message: str


class PlayerResponse(BaseModel):
    participant_id: str
    display_name: str


class SessionResponse(BaseModel):
    session_id: str
    game_type: GameType
    players: dict[SeatName, PlayerResponse]
    current_turn: str
    board: list[int]
    status: Status
    winner: Optional[str]
    created_at: datetime
    last_move_at: datetime


class ErrorResponse(BaseModel):
    error: str
    message: str
