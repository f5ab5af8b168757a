"""
Autonomous scheduler: runs the analyzer on a fixed wall-clock cadence.

Runs fire at the minutes a ``*/N * * * *`` cron entry would fire, i.e. at
minute 0, N, 2N, ... of every hour, through an APScheduler cron trigger.
One run happens immediately at startup so the paid endpoints have data
right away.
"""
import asyncio
import signal
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger

from signal_agent.data.data_structures import parse_iso
from signal_agent.data.storage import JsonStorage
from signal_agent.orchestration.analyzer import SignalAnalyzer
from signal_agent.utils.logging import get_logger

logger = get_logger(__name__)

JOB_ID = "signal_analysis"


class StorageUnavailableError(RuntimeError):
    """Raised when the storage health check fails at startup."""


def _validate_interval(interval_minutes: int) -> None:
    if not 1 <= interval_minutes <= 59:
        raise ValueError("Interval must be between 1 and 59 minutes")


def cron_trigger(interval_minutes: int, timezone: Optional[tzinfo] = None) -> CronTrigger:
    """A trigger firing every ``interval_minutes`` minutes, aligned to the hour."""
    _validate_interval(interval_minutes)
    if timezone is None:
        return CronTrigger(minute=f"*/{interval_minutes}")
    return CronTrigger(minute=f"*/{interval_minutes}", timezone=timezone)


def next_run_time(now: datetime, interval_minutes: int) -> datetime:
    """
    The next time a ``*/interval_minutes`` cron entry fires strictly after ``now``.

    Args:
        now: Current time, timezone aware; the schedule is evaluated in its zone.
        interval_minutes: Cron step, 1 to 59.
    """
    trigger = cron_trigger(interval_minutes, now.tzinfo)
    # cron triggers fire at or after the given time
    return trigger.get_next_fire_time(None, now + timedelta(microseconds=1))


class AgentScheduler:
    """
    Drives SignalAnalyzer.run_analysis() until stopped.
    """

    def __init__(
        self,
        analyzer: SignalAnalyzer,
        storage: JsonStorage,
        interval_minutes: int,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
        trigger: Optional[BaseTrigger] = None,
    ):
        """
        Args:
            analyzer: The analysis pass to run.
            storage: Checked at startup.
            interval_minutes: Cron step, 1 to 59.
            clock: Current time, used for startup reporting.
            trigger: Schedule override; defaults to the ``*/interval`` cron trigger
                in local time.
        """
        _validate_interval(interval_minutes)
        self.analyzer = analyzer
        self.storage = storage
        self.interval_minutes = interval_minutes
        self.trigger = trigger or cron_trigger(interval_minutes)
        self._clock = clock
        self._stop_event = asyncio.Event()
        self._max_runs: Optional[int] = None
        self.runs_completed = 0

    @property
    def cron_expression(self) -> str:
        return f"*/{self.interval_minutes} * * * *"

    def startup(self) -> None:
        """
        Verify storage and report the previous run.

        Raises:
            StorageUnavailableError: If storage is not usable.
        """
        logger.info(
            "Signal agent starting",
            interval_minutes=self.interval_minutes,
            schedule=self.cron_expression,
            tokens=self.analyzer.tokens,
        )

        health = self.storage.health_check()
        if not health["ok"]:
            raise StorageUnavailableError("Storage health check failed")
        logger.info("Storage health OK", files=health["files"])

        last_run = self.storage.get_last_agent_run()
        if last_run is None:
            logger.info("No previous runs found, fresh start")
            return

        minutes_ago = round((self._clock() - parse_iso(last_run.timestamp)).total_seconds() / 60)
        logger.info(
            "Last run",
            minutes_ago=minutes_ago,
            status=last_run.status,
            signals_generated=last_run.signals_generated,
        )

    async def safe_run(self) -> None:
        """Run one analysis; a failing run is logged and retried at the next slot."""
        try:
            await self.analyzer.run_analysis()
        except Exception as e:
            logger.error("Unhandled error in analysis run, retrying at next slot", error=str(e))
        finally:
            self.runs_completed += 1
            if self._max_runs is not None and self.runs_completed >= self._max_runs:
                self.stop()

    def seconds_until_next_run(self) -> float:
        now = self._clock()
        return max(0.0, (next_run_time(now, self.interval_minutes) - now).total_seconds())

    async def run_forever(self, max_runs: Optional[int] = None) -> None:
        """
        Start up, run once immediately, then run on schedule until stopped.

        Args:
            max_runs: Stop after this many runs (including the first one).
        """
        self._max_runs = max_runs
        self.startup()

        logger.info("Running initial analysis on startup")
        await self.safe_run()
        if self._stop_event.is_set():
            logger.info("Scheduler stopped")
            return

        scheduler = AsyncIOScheduler()
        job = scheduler.add_job(
            self.safe_run,
            trigger=self.trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        logger.info("Next run scheduled", next_run_time=str(job.next_run_time))

        try:
            await self._stop_event.wait()
        finally:
            scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    def stop(self, signame: Optional[str] = None) -> None:
        if signame:
            logger.info("Received signal, shutting down gracefully", signal=signame)
        self._stop_event.set()

    def install_signal_handlers(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Stop gracefully on SIGINT and SIGTERM."""
        loop = loop or asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop, sig.name)
            except NotImplementedError:
                # add_signal_handler is unavailable on Windows event loops
                signal.signal(sig, lambda *_args, name=sig.name: self.stop(name))
