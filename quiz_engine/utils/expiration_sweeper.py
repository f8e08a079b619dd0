import asyncio
import logging
import threading
import time
from datetime import timedelta
from typing import Optional, Set

from sqlalchemy import func, update

from quiz_engine.config import settings
from quiz_engine.models import QuizSession, SessionStatus
from quiz_engine.models.quiz_session import LIVE_STATUSES
from quiz_engine.models.results import CleanupResult, SchedulerStatus
from quiz_engine.utils.time_utils import SystemClock, ensure_aware

logger = logging.getLogger(__name__)

class ExpirationSweeper:
    """Periodically moves sessions past their deadline to expired.

    Runs outside the request path. Each batch is one conditional bulk update
    that only touches sessions still active or paused, so a session completed
    by a request a moment earlier is simply skipped, and a second run right
    after the first finds nothing to do.
    """

    def __init__(
        self,
        session_factory,
        clock=None,
        enabled: bool = True,
        interval_minutes: int = 5,
        batch_size: int = 100,
    ):
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.enabled = enabled
        self.interval_minutes = interval_minutes
        self.batch_size = batch_size

        self.cleanup_task: Optional[asyncio.Task] = None
        self._stop_requested = threading.Event()
        self._wakeup: Optional[asyncio.Event] = None
        self._sweep_lock = threading.Lock()

        self.last_run_at = None
        self.last_expired_count = None
        self._wait_started_at = None

        logger.info(
            f"Expiration sweeper initialized: enabled={enabled}, "
            f"interval={interval_minutes}min, batch_size={batch_size}"
        )

    @classmethod
    def from_settings(cls, session_factory, clock=None):
        return cls(
            session_factory,
            clock=clock,
            enabled=settings.scheduler_enabled,
            interval_minutes=settings.session_cleanup_interval_minutes,
            batch_size=settings.session_cleanup_batch_size,
        )

    @property
    def running(self) -> bool:
        return self.cleanup_task is not None and not self.cleanup_task.done()

    # Sweeping

    def _select_batch(self, db, now, skip_ids: Set[int]) -> list:
        query = db.query(QuizSession.id).filter(
            QuizSession.expires_at.isnot(None),
            QuizSession.expires_at < now,
            QuizSession.status.in_(LIVE_STATUSES),
        )
        if skip_ids:
            query = query.filter(QuizSession.id.notin_(skip_ids))
        return [row[0] for row in query.order_by(QuizSession.id).limit(self.batch_size).all()]

    def _expire_ids(self, db, ids: list) -> int:
        """Single bulk update, conditional on the session still being live"""
        result = db.execute(
            update(QuizSession)
            .where(QuizSession.id.in_(ids), QuizSession.status.in_(LIVE_STATUSES))
            .values(status=SessionStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount

    def sweep_once(self) -> CleanupResult:
        """Expire every session past its deadline, one batch at a time.

        A failing batch is logged and skipped for the rest of the run. A stop
        request lets the current batch finish and prevents the next one.
        """
        with self._sweep_lock:
            started = time.monotonic()
            now = ensure_aware(self.clock.now())
            expired_count = 0
            failed_batches = 0
            skip_ids: Set[int] = set()

            db = self.session_factory()
            try:
                while True:
                    try:
                        batch_ids = self._select_batch(db, now, skip_ids)
                    except Exception as e:
                        db.rollback()
                        failed_batches += 1
                        logger.error(f"Error selecting expired sessions: {e}")
                        break
                    if not batch_ids:
                        break

                    try:
                        expired_count += self._expire_ids(db, batch_ids)
                    except Exception as e:
                        db.rollback()
                        failed_batches += 1
                        logger.error(f"Error expiring session batch {batch_ids[0]}..{batch_ids[-1]}: {e}")
                        # Expired rows drop out of the live filter on their own
                        skip_ids.update(batch_ids)

                    if len(batch_ids) < self.batch_size:
                        break
                    if self._stop_requested.is_set():
                        logger.info("Stop requested, ending sweep after current batch")
                        break
            finally:
                db.close()

            self.last_run_at = now
            self.last_expired_count = expired_count
            result = CleanupResult(
                expired_count=expired_count,
                failed_batches=failed_batches,
                duration_ms=int((time.monotonic() - started) * 1000),
                timestamp=now,
            )

        if expired_count > 0:
            logger.warning(f"{expired_count} expired sessions were marked as expired")
        logger.info(f"Session cleanup completed: {expired_count} sessions in {result.duration_ms}ms")
        return result

    # Scheduling

    async def periodic_cleanup(self):
        """Sweep every interval until stop() is called"""
        interval_seconds = self.interval_minutes * 60
        while not self._stop_requested.is_set():
            self._wait_started_at = ensure_aware(self.clock.now())
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
            if self._stop_requested.is_set():
                break

            try:
                await asyncio.to_thread(self.sweep_once)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in periodic session cleanup: {e}")

    def start(self):
        """Start the background task on the running event loop"""
        if not self.enabled:
            logger.debug("Session cleanup scheduler is disabled")
            return
        if self.running:
            return

        self._stop_requested.clear()
        self._wakeup = asyncio.Event()
        self._wait_started_at = ensure_aware(self.clock.now())
        self.cleanup_task = asyncio.create_task(self.periodic_cleanup())
        logger.info(f"Session cleanup scheduler started, every {self.interval_minutes} minutes")

    async def stop(self):
        """Finish the batch in progress, then stop without starting another"""
        self._stop_requested.set()
        if self._wakeup is not None:
            self._wakeup.set()
        if self.cleanup_task is not None:
            await self.cleanup_task
            self.cleanup_task = None
            logger.info("Session cleanup scheduler stopped")

    # Operator interface

    def manual_cleanup(self) -> CleanupResult:
        logger.info("Manual session cleanup initiated")
        return self.sweep_once()

    def next_run_at(self):
        """When the background task sweeps next, or None while it is not running"""
        if not self.running or self._wait_started_at is None:
            return None
        # The wait restarts after each periodic sweep finishes
        return self._wait_started_at + timedelta(minutes=self.interval_minutes)

    def get_status(self) -> SchedulerStatus:
        db = self.session_factory()
        try:
            rows = (
                db.query(QuizSession.status, func.count(QuizSession.id))
                .filter(QuizSession.status.in_([SessionStatus.ACTIVE.value, SessionStatus.EXPIRED.value]))
                .group_by(QuizSession.status)
                .all()
            )
        finally:
            db.close()
        counts = {status: count for status, count in rows}

        return SchedulerStatus(
            enabled=self.enabled,
            interval_minutes=self.interval_minutes,
            batch_size=self.batch_size,
            running=self.running,
            last_run_at=self.last_run_at,
            last_expired_count=self.last_expired_count,
            next_run_at=self.next_run_at(),
            active_sessions=counts.get(SessionStatus.ACTIVE.value, 0),
            expired_sessions=counts.get(SessionStatus.EXPIRED.value, 0),
        )
