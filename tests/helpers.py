"""Builders and a controllable clock shared by the test modules."""

from datetime import datetime, timedelta, timezone

from matchplay.core.models import GameSession, PlayerSeat, WaitingEntry
from matchplay.core.shared_types import GameType
from matchplay.game.game import Game

START = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


def make_entry(
    participant_id: str,
    enqueued_at: datetime = START,
    game_type: GameType = GameType.NOUGHTS_CROSSES,
) -> WaitingEntry:
    return WaitingEntry(
        entry_id=f"entry-{participant_id}-{int(enqueued_at.timestamp())}",
        participant_id=participant_id,
        display_name=participant_id.capitalize(),
        game_type=game_type,
        enqueued_at=enqueued_at,
    )


def make_session(
    session_id: str = "session-1",
    seat_a: str = "alice",
    seat_b: str = "bob",
    now: datetime = START,
    ttl: float = 3600,
) -> GameSession:
    return Game.new_game(
        session_id=session_id,
        game_type=GameType.NOUGHTS_CROSSES,
        first=PlayerSeat(seat_a, seat_a.capitalize()),
        second=PlayerSeat(seat_b, seat_b.capitalize()),
        now=now,
        expires_at=now + timedelta(seconds=ttl),
    ).to_model()
