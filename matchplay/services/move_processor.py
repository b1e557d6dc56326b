"""Applies moves to stored sessions. The only writer of a session after it has been created."""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from matchplay.core.config import Clock, Settings, utc_now
from matchplay.core.exceptions import (
    MoveRejectedError,
    SessionNotFoundError,
    StoreUnavailableError,
)
from matchplay.core.models import GameSession, MoveResult, ParticipantId, SessionId
from matchplay.core.shared_types import Status
from matchplay.db.repository import SessionRepository
from matchplay.game.game import Game

logger = logging.getLogger(__name__)

# Mutates the game in place, or raises to refuse the change
GameChange = Callable[[Game, datetime], None]


class MoveProcessor:
    def __init__(
        self,
        sessions: SessionRepository,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self.sessions = sessions
        self.settings = settings
        self.clock = clock

    def apply_move(
        self, session_id: SessionId, participant_id: ParticipantId, cell_index: int
    ) -> MoveResult:
        """
        Validate and apply a move.
        ----

        Returns the updated session, or the reason the move was refused.
        A refused move never changes the stored session.
        """

        def move(game: Game, now: datetime) -> None:
            game.make_move(participant_id, cell_index, now)

        try:
            # a player whose clock ran out has lost, whoever tries to move
            self.get_session(session_id)
            session = self._update(session_id, move)
        except (SessionNotFoundError, MoveRejectedError) as exc:
            logger.debug(
                "Refused move %r by %s in %s: %s", cell_index, participant_id, session_id, exc.code
            )
            return MoveResult(ok=False, error=exc)

        if session.status == Status.FINISHED:
            logger.info("Session %s finished, winner: %s", session_id, session.winner)
        return MoveResult(ok=True, session=session)

    def end_game(self, session_id: SessionId, participant_id: ParticipantId) -> None:
        """
        Voluntary end (forfeit, rematch request, leaving the result screen).
        Finishes the session, whoever's turn it is, then unlinks both participants.
        The session is finished before anyone is unlinked: a failed write leaves both links in place.
        """
        stored = self.sessions.get(session_id, self.clock())
        if stored is None:
            logger.debug("End of unknown or expired session %s ignored", session_id)
            return
        stored.seat_of(participant_id)

        def forfeit(game: Game, now: datetime) -> None:
            game.forfeit(participant_id)

        try:
            session = self._update(session_id, forfeit, force_write=True)
        except SessionNotFoundError:
            session = None

        for linked_participant in stored.participant_ids:
            self.sessions.unlink_participant(linked_participant, session_id=session_id)

        if session is not None:
            logger.info(
                "Session %s ended by %s, winner: %s", session_id, participant_id, session.winner
            )

    def get_session(self, session_id: SessionId) -> GameSession:
        now = self.clock()
        stored = self.sessions.get(session_id, now)
        if stored is None:
            raise SessionNotFoundError(f"Session {session_id!r} not found.")
        return self._enforce_turn_timeout(stored, now)

    def session_of(self, participant_id: ParticipantId) -> Optional[GameSession]:
        """Session the participant is linked to (finished ones included, until they expire or are ended)."""
        now = self.clock()
        stored = self.sessions.get_by_participant(participant_id, now)
        if stored is None:
            return None
        try:
            return self._enforce_turn_timeout(stored, now)
        except SessionNotFoundError:
            # expired in between the two reads
            return None

    def forfeit_idle_sessions(self) -> list[SessionId]:
        """Finish every active session whose player to move has exceeded the turn timeout."""
        turn_timeout = self.settings.turn_timeout_delta
        if turn_timeout is None:
            return []
        now = self.clock()
        forfeited: list[SessionId] = []
        for stored in self.sessions.list_idle_active(now - turn_timeout, now):
            try:
                session = self._enforce_turn_timeout(stored, now)
            except SessionNotFoundError:
                continue
            if session.status == Status.FINISHED:
                forfeited.append(session.session_id)
        return forfeited

    # -- Internal helpers --
    def _enforce_turn_timeout(self, stored: GameSession, now: datetime) -> GameSession:
        if not Game.from_model(stored).is_turn_expired(now, self.settings.turn_timeout_delta):
            return stored
        return self._update(stored.session_id, self._forfeit_expired_turn)

    def _forfeit_expired_turn(self, game: Game, now: datetime) -> None:
        # re-checked against the freshly read session: a move may have landed meanwhile
        if game.is_turn_expired(now, self.settings.turn_timeout_delta):
            logger.info(
                "Turn timeout in session %s: %s forfeits", game.session_id, game.current_turn
            )
            game.forfeit(game.current_turn)

    def _update(
        self, session_id: SessionId, change: GameChange, force_write: bool = False
    ) -> GameSession:
        """
        Optimistic read-modify-write of one session.
        ----

        1. read the current record (and its version)
        2. apply the change to a Game built from it. Validation errors propagate, nothing is written
        3. write it back only if the stored version is still the one that was read
        4. somebody else wrote in between? start over from the fresh record
        """
        for _ in range(max(1, self.settings.move_attempts)):
            now = self.clock()
            stored = self.sessions.get(session_id, now)
            if stored is None:
                raise SessionNotFoundError(f"Session {session_id!r} not found.")

            game = Game.from_model(stored)
            change(game, now)
            if game.to_model() == stored and not force_write:
                return stored

            updated = self._next_version(game, stored, now)
            if self.sessions.replace(updated, expected_version=stored.version):
                return updated
            logger.debug("Version conflict on session %s, retrying", session_id)

        raise StoreUnavailableError(
            f"Session {session_id!r} is being updated concurrently, try again."
        )

    def _next_version(self, game: Game, stored: GameSession, now: datetime) -> GameSession:
        updated = replace(game.to_model(), version=stored.version + 1)
        if updated.status == Status.FINISHED:
            # keep the result readable for a short while, then let it go
            updated.expires_at = min(stored.expires_at, now + self.settings.finished_ttl_delta)
        return updated
