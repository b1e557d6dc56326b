"""
Custom exceptions shared by all layers.

Every exception carries a stable `code`, which is what the API layer returns to clients.
"""

from matchplay.core.shared_types import ErrorCode


class GameError(Exception):
    """Top-level exception of the application."""

    code: ErrorCode = ErrorCode.INVALID_REQUEST


class InvalidRequestError(GameError):
    code = ErrorCode.INVALID_REQUEST


class SessionNotFoundError(GameError):
    code = ErrorCode.SESSION_NOT_FOUND


class NotAParticipantError(GameError):
    code = ErrorCode.NOT_A_PARTICIPANT


# --- Move validation. Terminal for the request: retrying cannot make the move valid ---
class MoveRejectedError(GameError):
    """Base class of the reasons a move is refused."""


class SessionNotActiveError(MoveRejectedError):
    code = ErrorCode.SESSION_NOT_ACTIVE


class NotYourTurnError(MoveRejectedError):
    code = ErrorCode.NOT_YOUR_TURN


class InvalidPositionError(MoveRejectedError):
    code = ErrorCode.INVALID_POSITION


class CellOccupiedError(MoveRejectedError):
    code = ErrorCode.CELL_OCCUPIED


# --- Infrastructure ---
class StoreUnavailableError(GameError):
    """Transient failure of the shared store. The only error that is retried."""

    code = ErrorCode.STORE_UNAVAILABLE
