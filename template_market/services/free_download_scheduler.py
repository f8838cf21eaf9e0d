import asyncio
import logging
from datetime import datetime, timedelta

from template_market.config import settings
from template_market.database import SessionLocal
from template_market.models.user import User
from template_market.utils.clock import utcnow

logger = logging.getLogger(__name__)


def seconds_until_midnight(now: datetime) -> float:
    next_midnight = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return max((next_midnight - now).total_seconds(), 1.0)


def reset_free_downloads(session_factory=SessionLocal, allowance: int | None = None) -> int:
    """Restore every user's daily allowance; returns the number of rows touched."""
    allowance = settings.DEFAULT_FREE_DOWNLOADS if allowance is None else allowance
    session = session_factory()
    try:
        updated = (
            session.query(User)
            .filter(User.free_downloads != allowance)
            .update({User.free_downloads: allowance}, synchronize_session=False)
        )
        session.commit()
        return updated
    finally:
        session.close()


class FreeDownloadResetScheduler:
    """Background task that resets free-download counters at midnight UTC."""

    def __init__(self, allowance: int, enabled: bool = True, clock=utcnow):
        self.allowance = allowance
        self.enabled = enabled
        self.clock = clock
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    async def start(self) -> None:
        if not self.enabled:
            logger.info("Daily free download reset disabled by configuration.")
            return
        if self._task and not self._task.done():
            return
        logger.info("Starting daily free download reset (allowance=%s)", self.allowance)
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop_event.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=seconds_until_midnight(self.clock()),
                )
            except asyncio.TimeoutError:
                await self._reset()

    async def _reset(self) -> None:
        try:
            updated = await asyncio.to_thread(reset_free_downloads, SessionLocal, self.allowance)
            logger.info("Free downloads reset for %s users", updated)
        except Exception:
            logger.exception("Failed to reset free downloads")


free_download_scheduler = FreeDownloadResetScheduler(
    allowance=settings.DEFAULT_FREE_DOWNLOADS,
    enabled=settings.FREE_DOWNLOAD_RESET_ENABLED,
)
