"""Runtime configuration, read from MATCHPLAY_* environment variables."""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

# Injected wherever "now" is needed, so tests can move time forward
Clock = Callable[[], datetime]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    waiting_ttl: float = 60.0
    session_ttl: float = 3600.0
    finished_ttl: float = 300.0
    turn_timeout: float = 120.0  # 0 disables the auto-forfeit
    reaper_interval: float = 30.0
    match_attempts: int = 5
    move_attempts: int = 5
    store_retry_attempts: int = 3
    store_retry_backoff: float = 0.05
    store_timeout: float = 2.0
    log_level: str = "INFO"

    @property
    def waiting_ttl_delta(self) -> timedelta:
        return timedelta(seconds=self.waiting_ttl)

    @property
    def session_ttl_delta(self) -> timedelta:
        return timedelta(seconds=self.session_ttl)

    @property
    def finished_ttl_delta(self) -> timedelta:
        return timedelta(seconds=self.finished_ttl)

    @property
    def turn_timeout_delta(self) -> Optional[timedelta]:
        if self.turn_timeout <= 0:
            return None
        return timedelta(seconds=self.turn_timeout)


def load_settings() -> Settings:
    defaults = Settings()
    return Settings(
        database_url=os.getenv("MATCHPLAY_DATABASE_URL") or None,
        waiting_ttl=float(os.getenv("MATCHPLAY_WAITING_TTL", defaults.waiting_ttl)),
        session_ttl=float(os.getenv("MATCHPLAY_SESSION_TTL", defaults.session_ttl)),
        finished_ttl=float(os.getenv("MATCHPLAY_FINISHED_TTL", defaults.finished_ttl)),
        turn_timeout=float(os.getenv("MATCHPLAY_TURN_TIMEOUT", defaults.turn_timeout)),
        reaper_interval=float(
            os.getenv("MATCHPLAY_REAPER_INTERVAL", defaults.reaper_interval)
        ),
        match_attempts=int(os.getenv("MATCHPLAY_MATCH_ATTEMPTS", defaults.match_attempts)),
        move_attempts=int(os.getenv("MATCHPLAY_MOVE_ATTEMPTS", defaults.move_attempts)),
        store_retry_attempts=int(
            os.getenv("MATCHPLAY_STORE_RETRY_ATTEMPTS", defaults.store_retry_attempts)
        ),
        store_retry_backoff=float(
            os.getenv("MATCHPLAY_STORE_RETRY_BACKOFF", defaults.store_retry_backoff)
        ),
        store_timeout=float(os.getenv("MATCHPLAY_STORE_TIMEOUT", defaults.store_timeout)),
        log_level=os.getenv("MATCHPLAY_LOG_LEVEL", defaults.log_level).upper(),
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
