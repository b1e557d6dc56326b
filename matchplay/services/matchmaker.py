"""Pairs waiting players into sessions. All coordination goes through the store, never through process memory."""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from matchplay.core.config import Clock, Settings, utc_now
from matchplay.core.exceptions import StoreUnavailableError
from matchplay.core.models import (
    GameSession,
    MatchResult,
    ParticipantId,
    PlayerSeat,
    WaitingEntry,
)
from matchplay.core.shared_types import GameType, Status
from matchplay.db.repository import MatchRepository, PairingOutcome
from matchplay.game.game import Game
from matchplay.services.move_processor import MoveProcessor

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class Matchmaker:
    def __init__(
        self,
        repository: MatchRepository,
        processor: MoveProcessor,
        settings: Settings,
        clock: Clock = utc_now,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.repo = repository
        self.processor = processor
        self.settings = settings
        self.clock = clock
        self.id_factory = id_factory

    def request_match(
        self, participant_id: ParticipantId, display_name: str, game_type: GameType
    ) -> MatchResult:
        """
        Find an opponent, or wait for one.
        ----

        1. already playing? hand back that session (joining twice is harmless)
        2. scan the queue oldest-first for somebody else
        3. found? pair atomically with the store, retry the scan if another request got there first
        4. nobody? enqueue, then scan once more for a player that enqueued concurrently
        """
        current = self._live_session(participant_id)
        if current is not None:
            return self._matched(current, participant_id)

        # opportunistic reaping; stale entries are skipped by the scan regardless
        self.repo.remove_expired(game_type, self.clock())

        enqueued: Optional[WaitingEntry] = None
        conflicts = 0
        while conflicts < self.settings.match_attempts:
            now = self.clock()
            waiting = self.repo.peek_all(game_type, now)
            own = next((e for e in waiting if e.participant_id == participant_id), None)
            candidate = next((e for e in waiting if e.participant_id != participant_id), None)

            if candidate is None:
                if enqueued is not None:
                    # a concurrent request may have paired us with its requester meanwhile
                    current = self._live_session(participant_id)
                    if current is not None:
                        self.repo.remove(enqueued)
                        return self._matched(current, participant_id)
                    return MatchResult(matched=False)
                enqueued = self._enqueue(participant_id, display_name, game_type, now)
                continue

            result = self._pair(
                candidate, own, waiting, participant_id, display_name, game_type, now
            )
            if result is not None:
                return result
            conflicts += 1

        raise StoreUnavailableError("Matchmaking is congested, try again.")

    def leave(self, participant_id: ParticipantId, game_type: GameType) -> bool:
        removed = self.repo.remove_participant(participant_id, game_type)
        if removed:
            logger.info("%s left the %s queue", participant_id, game_type)
        return removed

    # -- Internal helpers --
    def _live_session(self, participant_id: ParticipantId) -> Optional[GameSession]:
        session = self.processor.session_of(participant_id)
        if session is None:
            return None
        if session.status == Status.FINISHED:
            # the old result no longer answers "what game am I in" once the player looks for a new one
            self.repo.unlink_participant(participant_id, session_id=session.session_id)
            return None
        return session

    def _enqueue(
        self,
        participant_id: ParticipantId,
        display_name: str,
        game_type: GameType,
        now: datetime,
    ) -> WaitingEntry:
        entry = self.repo.enqueue(
            WaitingEntry(
                entry_id=self.id_factory(),
                participant_id=participant_id,
                display_name=display_name,
                game_type=game_type,
                enqueued_at=now,
            )
        )
        logger.info("%s is waiting for a %s opponent", participant_id, game_type)
        return entry

    def _pair(
        self,
        candidate: WaitingEntry,
        own: Optional[WaitingEntry],
        waiting: list[WaitingEntry],
        participant_id: ParticipantId,
        display_name: str,
        game_type: GameType,
        now: datetime,
    ) -> Optional[MatchResult]:
        """Try to turn the candidate into an opponent. None means: scan again."""
        requester = PlayerSeat(participant_id, display_name)
        opponent = PlayerSeat(candidate.participant_id, candidate.display_name)

        # the player who has waited longest takes the first seat
        if own is not None and waiting.index(own) < waiting.index(candidate):
            first, second = requester, opponent
        else:
            first, second = opponent, requester

        session = Game.new_game(
            session_id=self.id_factory(),
            game_type=game_type,
            first=first,
            second=second,
            now=now,
            expires_at=now + self.settings.session_ttl_delta,
        ).to_model()
        consumed = [candidate] if own is None else [candidate, own]

        outcome = self.repo.commit_match(consumed, session, now)
        if outcome == PairingOutcome.COMMITTED:
            logger.info(
                "Matched %s with %s in session %s",
                first.participant_id,
                second.participant_id,
                session.session_id,
            )
            return MatchResult(
                matched=True,
                session_id=session.session_id,
                opponent_name=candidate.display_name,
            )

        # whatever went wrong, a concurrent request may have paired the requester already
        current = self._live_session(participant_id)
        if current is not None:
            if own is not None:
                self.repo.remove(own)
            return self._matched(current, participant_id)

        if outcome == PairingOutcome.ENTRY_TAKEN:
            logger.debug("Entry of %s was taken concurrently, rescanning", candidate.participant_id)
            return None

        # busy, but not the requester: the candidate plays elsewhere and their entry is a leftover
        logger.debug("Dropping leftover entry of busy participant %s", candidate.participant_id)
        self.repo.remove(candidate)
        return None

    def _matched(self, session: GameSession, participant_id: ParticipantId) -> MatchResult:
        return MatchResult(
            matched=True,
            session_id=session.session_id,
            opponent_name=session.opponent_of(participant_id).display_name,
        )
