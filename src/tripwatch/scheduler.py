"""Per-domain polling timers."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import timedelta

from tripwatch.models._base import Domain

_logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[None]]
SleepFn = Callable[[float], Awaitable[None]]


class MonitoringScheduler:
    """One independent repeating timer per domain.

    Each timer sleeps for ``interval_for(domain)`` and then runs the domain's
    job. Intervals are re-read before every sleep. A job that raises is
    logged and the timer keeps firing.

    ``stop()`` cancels the timers but not a job already running: that job is
    shielded, completes on its own and can be awaited with :meth:`wait_idle`.

    ``sleep`` is injectable so tests can drive the timers with virtual time.
    """

    def __init__(
        self,
        jobs: Mapping[Domain, Job],
        interval_for: Callable[[Domain], timedelta],
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._jobs = dict(jobs)
        self._interval_for = interval_for
        self._sleep = sleep
        self._timers: dict[Domain, asyncio.Task[None]] = {}
        self._in_flight: set[asyncio.Task[None]] = set()

    @property
    def is_running(self) -> bool:
        return bool(self._timers)

    @property
    def active_timers(self) -> dict[Domain, asyncio.Task[None]]:
        return {domain: task for domain, task in self._timers.items() if not task.done()}

    def intervals(self) -> dict[Domain, timedelta]:
        return {domain: self._interval_for(domain) for domain in self._jobs}

    def start(self) -> bool:
        """Arm all timers. Returns ``False`` (and does nothing) if already running.

        Must be called from within a running event loop.
        """
        if self._timers:
            _logger.debug("Monitoring already running; start ignored")
            return False
        for domain, job in self._jobs.items():
            self._timers[domain] = asyncio.create_task(self._run(domain, job), name=f"tripwatch-monitor-{domain}")
        _logger.info(
            "Monitoring started: %s",
            ", ".join(f"{domain}={interval.total_seconds():g}s" for domain, interval in self.intervals().items()),
        )
        return True

    def stop(self) -> None:
        """Cancel all timers. Safe to call when not running."""
        if not self._timers:
            return
        for task in self._timers.values():
            task.cancel()
        self._timers.clear()
        _logger.info("Monitoring stopped")

    def restart(self) -> None:
        self.stop()
        self.start()

    async def wait_idle(self) -> None:
        """Wait for jobs started by timers to finish."""
        while self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _run(self, domain: Domain, job: Job) -> None:
        while True:
            await self._sleep(self._interval_for(domain).total_seconds())
            task = asyncio.ensure_future(job())
            self._in_flight.add(task)
            task.add_done_callback(lambda t, d=domain: self._job_done(d, t))
            # Failures are reported by _job_done.
            with contextlib.suppress(Exception):
                await asyncio.shield(task)

    def _job_done(self, domain: Domain, task: asyncio.Task[None]) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Scheduled %s refresh failed", domain, exc_info=exc)
