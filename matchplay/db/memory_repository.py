"""In-process implementation of the MatchRepository. A single lock makes every method atomic; one process only."""

import threading
from copy import deepcopy
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from matchplay.core.models import GameSession, ParticipantId, SessionId, WaitingEntry
from matchplay.core.shared_types import GameType, Status
from matchplay.db.repository import PairingOutcome

DEFAULT_WAITING_TTL = timedelta(seconds=60)


@dataclass
class _Link:
    session_id: SessionId
    expires_at: datetime


class InMemoryMatchRepository:
    """Mimics the shared store using dictionaries. Records are copied in and out, so callers never share state."""

    def __init__(self, waiting_ttl: timedelta = DEFAULT_WAITING_TTL) -> None:
        self.waiting_ttl = waiting_ttl
        self._lock = threading.RLock()
        self._queues: dict[GameType, list[WaitingEntry]] = {}
        self._sessions: dict[SessionId, GameSession] = {}
        self._links: dict[ParticipantId, _Link] = {}

    # --- Waiting queue ---
    def enqueue(self, entry: WaitingEntry) -> WaitingEntry:
        with self._lock:
            queue = self._queues.setdefault(entry.game_type, [])
            for existing in queue:
                if existing.participant_id != entry.participant_id:
                    continue
                if not self._is_expired(existing, entry.enqueued_at):
                    return existing
                queue.remove(existing)
                break
            queue.append(entry)
            return entry

    def peek_all(self, game_type: GameType, now: datetime) -> list[WaitingEntry]:
        with self._lock:
            return [
                entry
                for entry in self._queues.get(game_type, [])
                if not self._is_expired(entry, now)
            ]

    def remove(self, entry: WaitingEntry) -> bool:
        with self._lock:
            queue = self._queues.get(entry.game_type, [])
            for index, existing in enumerate(queue):
                if existing.entry_id == entry.entry_id:
                    del queue[index]
                    return True
            return False

    def remove_participant(self, participant_id: ParticipantId, game_type: GameType) -> bool:
        with self._lock:
            queue = self._queues.get(game_type, [])
            remaining = [entry for entry in queue if entry.participant_id != participant_id]
            self._queues[game_type] = remaining
            return len(remaining) != len(queue)

    def remove_expired(self, game_type: GameType, now: datetime) -> int:
        with self._lock:
            queue = self._queues.get(game_type, [])
            remaining = [entry for entry in queue if not self._is_expired(entry, now)]
            self._queues[game_type] = remaining
            return len(queue) - len(remaining)

    # --- Sessions ---
    def get(self, session_id: SessionId, now: datetime) -> Optional[GameSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.expires_at <= now:
                return None
            return deepcopy(session)

    def put(self, session: GameSession) -> GameSession:
        with self._lock:
            self._sessions[session.session_id] = deepcopy(session)
        return session

    def replace(self, session: GameSession, expected_version: int) -> bool:
        with self._lock:
            stored = self._sessions.get(session.session_id)
            if stored is None or stored.version != expected_version:
                return False
            self._sessions[session.session_id] = deepcopy(session)
            return True

    def get_by_participant(
        self, participant_id: ParticipantId, now: datetime
    ) -> Optional[GameSession]:
        with self._lock:
            link = self._links.get(participant_id)
            if link is None or link.expires_at <= now:
                return None
            return self.get(link.session_id, now)

    def link_participant(
        self, participant_id: ParticipantId, session_id: SessionId, expires_at: datetime
    ) -> None:
        with self._lock:
            self._links[participant_id] = _Link(session_id, expires_at)

    def unlink_participant(
        self, participant_id: ParticipantId, session_id: Optional[SessionId] = None
    ) -> None:
        with self._lock:
            link = self._links.get(participant_id)
            if link is None:
                return
            if session_id is None or link.session_id == session_id:
                del self._links[participant_id]

    def list_idle_active(self, idle_since: datetime, now: datetime) -> list[GameSession]:
        with self._lock:
            return [
                deepcopy(session)
                for session in self._sessions.values()
                if session.status == Status.ACTIVE
                and session.last_move_at < idle_since
                and session.expires_at > now
            ]

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired_sessions = [
                session_id
                for session_id, session in self._sessions.items()
                if session.expires_at <= now
            ]
            expired_links = [
                participant_id
                for participant_id, link in self._links.items()
                if link.expires_at <= now
            ]
            for session_id in expired_sessions:
                del self._sessions[session_id]
            for participant_id in expired_links:
                del self._links[participant_id]
            return len(expired_sessions) + len(expired_links)

    # --- Pairing ---
    def commit_match(
        self,
        consumed: list[WaitingEntry],
        session: GameSession,
        now: datetime,
    ) -> PairingOutcome:
        with self._lock:
            queue = self._queues.get(session.game_type, [])
            present = {entry.entry_id for entry in queue}
            if any(entry.entry_id not in present for entry in consumed):
                return PairingOutcome.ENTRY_TAKEN

            for participant_id in session.participant_ids:
                linked = self.get_by_participant(participant_id, now)
                if linked is not None and linked.status != Status.FINISHED:
                    return PairingOutcome.PARTICIPANT_BUSY

            consumed_ids = {entry.entry_id for entry in consumed}
            self._queues[session.game_type] = [
                entry for entry in queue if entry.entry_id not in consumed_ids
            ]
            self.put(session)
            for participant_id in session.participant_ids:
                self.link_participant(participant_id, session.session_id, session.expires_at)
            return PairingOutcome.COMMITTED

    # --- Internal helpers ---
    def _is_expired(self, entry: WaitingEntry, now: datetime) -> bool:
        return entry.enqueued_at <= now - self.waiting_ttl

    def clear(self) -> None:
        """Empty the store (useful in between tests)"""
        with self._lock:
            self._queues.clear()
            self._sessions.clear()
            self._links.clear()
