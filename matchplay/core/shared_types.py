"""
Type definitions used across layers
"""

from enum import IntEnum, StrEnum


class GameType(StrEnum):
    NOUGHTS_CROSSES = "noughts-crosses"


class Status(StrEnum):
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


class Mark(IntEnum):
    """Content of a single cell. Seat A plays the first mark, seat B the second."""

    EMPTY = 0
    SEAT_A = 1
    SEAT_B = 2


class ErrorCode(StrEnum):
    SESSION_NOT_FOUND = "SessionNotFound"
    SESSION_NOT_ACTIVE = "SessionNotActive"
    NOT_YOUR_TURN = "NotYourTurn"
    INVALID_POSITION = "InvalidPosition"
    CELL_OCCUPIED = "CellOccupied"
    NOT_A_PARTICIPANT = "NotAParticipant"
    INVALID_REQUEST = "InvalidRequest"
    STORE_UNAVAILABLE = "StoreUnavailable"


# Winner value of a finished game that nobody won
DRAW = "draw"
