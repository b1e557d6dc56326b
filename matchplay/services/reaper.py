"""Best-effort cleanup of the shared store. Missing a pass only delays cleanup; it can never cause a wrong match."""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from matchplay.core.config import Clock, utc_now
from matchplay.core.exceptions import StoreUnavailableError
from matchplay.core.models import ReaperReport
from matchplay.core.shared_types import GameType
from matchplay.db.repository import MatchRepository
from matchplay.services.move_processor import MoveProcessor

logger = logging.getLogger(__name__)


class Reaper:
    def __init__(
        self,
        repository: MatchRepository,
        processor: MoveProcessor,
        clock: Clock = utc_now,
    ) -> None:
        self.repo = repository
        self.processor = processor
        self.clock = clock

    def run_once(self) -> ReaperReport:
        """
        One cleanup pass:
        1. drop waiting entries older than the waiting TTL (for every game type)
        2. forfeit active sessions whose player to move timed out
        3. drop expired sessions and participant links
        """
        report = ReaperReport()
        try:
            now = self.clock()
            for game_type in GameType:
                report.expired_entries += self.repo.remove_expired(game_type, now)
            report.forfeited_sessions = self.processor.forfeit_idle_sessions()
            report.purged_records = self.repo.purge_expired(self.clock())
        except StoreUnavailableError as exc:
            logger.warning("Reaper pass cut short, next pass will retry: %s", exc)
            return report

        if report.expired_entries or report.forfeited_sessions or report.purged_records:
            logger.info(
                "Reaper: %d expired entries, %d forfeits, %d purged records",
                report.expired_entries,
                len(report.forfeited_sessions),
                report.purged_records,
            )
        return report


def schedule_reaper(reaper: Reaper, interval_seconds: float) -> BackgroundScheduler:
    """Scheduler running the reaper every `interval_seconds`. Not started yet."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        reaper.run_once,
        "interval",
        seconds=interval_seconds,
        id="reaper",
        max_instances=1,
        coalesce=True,
    )
    return scheduler
