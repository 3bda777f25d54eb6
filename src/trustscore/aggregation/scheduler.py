"""In-process periodic job runner hosting the aggregation pass."""

import asyncio
import inspect
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import structlog

from trustscore.common import constants

logger = structlog.get_logger()


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class PeriodicJob:
    """
    A named job run at a fixed interval, at most one run at a time.

    A trigger that arrives while the previous run is still active is
    dropped and counted in ``skipped_ticks``; it is never queued.
    """

    def __init__(
        self,
        name: str,
        func: Callable[[], Any],
        interval_seconds: float,
        metrics=None,
    ):
        """
        Initialize job.

        Args:
            name: Job name used in logs and metrics
            func: Coroutine function, or plain function run in a worker thread
            interval_seconds: Seconds between runs
            metrics: Optional AggregationMetrics for skipped ticks and failures
        """
        self.name = name
        self.func = func
        self.interval_seconds = interval_seconds
        self.metrics = metrics
        self.state = SchedulerState.IDLE
        self.runs = 0
        self.failures = 0
        self.skipped_ticks = 0
        self.last_result: Any = None
        self.last_error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.func) or inspect.iscoroutinefunction(
            getattr(self.func, "__call__", None)
        )

    @property
    def running(self) -> bool:
        return self.state is SchedulerState.RUNNING or (
            self._task is not None and not self._task.done()
        )

    def _skip(self) -> None:
        self.skipped_ticks += 1
        logger.warning(
            "Previous run still active, tick skipped",
            job=self.name,
            skipped_ticks=self.skipped_ticks,
        )
        if self.metrics is not None:
            self.metrics.record_skipped_tick(self.name)

    async def run_once(self) -> Any:
        """
        Run the job now unless it is already running.

        Returns:
            The job's result, or None if skipped or failed
        """
        if self.state is SchedulerState.RUNNING:
            self._skip()
            return None

        self.state = SchedulerState.RUNNING
        started = time.monotonic()
        logger.info("Job started", job=self.name)

        try:
            if self.is_async:
                result = await self.func()
            else:
                result = await asyncio.to_thread(self.func)
        except Exception as e:
            self.failures += 1
            self.last_error = str(e)
            logger.error(
                "Job failed",
                job=self.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            if self.metrics is not None:
                self.metrics.record_job_failure(self.name)
            return None
        finally:
            self.state = SchedulerState.IDLE

        self.runs += 1
        self.last_result = result
        self.last_error = None
        logger.info(
            "Job finished",
            job=self.name,
            duration_seconds=round(time.monotonic() - started, 3),
        )
        return result

    def trigger(self) -> Optional[asyncio.Task]:
        """Start a run in the background. Returns None if the tick was skipped."""
        if self.running:
            self._skip()
            return None
        self._task = asyncio.get_running_loop().create_task(self.run_once())
        return self._task


class AggregationScheduler:
    """
    Fixed-interval ticker for the aggregation pass and daily maintenance jobs.

    Ticks can be simulated by calling :meth:`tick` with an explicit clock
    value, which makes interval handling testable without sleeping.
    """

    def __init__(
        self,
        aggregation: Callable[[], Any],
        interval_seconds: float = constants.DEFAULT_AGGREGATION_INTERVAL,
        metrics=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize scheduler.

        Args:
            aggregation: The aggregation pass, usually AggregationService.run_pass
            interval_seconds: Seconds between aggregation passes
            metrics: Optional AggregationMetrics
            clock: Monotonic time source used by :meth:`tick`
        """
        self.metrics = metrics
        self.clock = clock
        self.aggregation_job = PeriodicJob("aggregation", aggregation, interval_seconds, metrics)
        self.jobs: List[PeriodicJob] = [self.aggregation_job]
        self._next_due: Dict[str, float] = {}
        self._stop_event: Optional[asyncio.Event] = None
        self._stopped = False

    def add_job(
        self,
        name: str,
        func: Callable[[], Any],
        interval_seconds: float = constants.DAILY_INTERVAL,
    ) -> PeriodicJob:
        """Host an additional single-flight job, e.g. the daily domain refresh."""
        job = PeriodicJob(name, func, interval_seconds, self.metrics)
        self.jobs.append(job)
        return job

    def get_job(self, name: str) -> Optional[PeriodicJob]:
        return next((job for job in self.jobs if job.name == name), None)

    @property
    def state(self) -> SchedulerState:
        if self._stopped:
            return SchedulerState.STOPPED
        return self.aggregation_job.state

    def tick(self, now: Optional[float] = None) -> List[asyncio.Task]:
        """
        Trigger every job whose interval has elapsed.

        Jobs are due immediately on the first tick. A due job that is still
        running is skipped and becomes due again one interval later.

        Returns:
            Tasks for the runs started by this tick
        """
        now = self.clock() if now is None else now
        started = []

        for job in self.jobs:
            if now < self._next_due.get(job.name, now):
                continue
            self._next_due[job.name] = now + job.interval_seconds
            task = job.trigger()
            if task is not None:
                started.append(task)

        return started

    async def run_forever(
        self,
        stop_event: Optional[asyncio.Event] = None,
        poll_interval: float = 1.0,
    ) -> None:
        """Tick until stopped, then wait for running jobs to finish."""
        self._stop_event = stop_event or asyncio.Event()
        self._stopped = False

        logger.info(
            "Scheduler started",
            jobs=[job.name for job in self.jobs],
            aggregation_interval=self.aggregation_job.interval_seconds,
        )

        while not self._stop_event.is_set():
            self.tick()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                pass

        running = [job._task for job in self.jobs if job._task is not None and not job._task.done()]
        if running:
            logger.info("Waiting for running jobs", count=len(running))
            await asyncio.gather(*running, return_exceptions=True)

        self._stopped = True
        logger.info("Scheduler stopped")

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
