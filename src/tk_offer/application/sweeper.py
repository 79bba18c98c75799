"""BackgroundSweeper: periodic expiry and reconciliation passes.

Started from the FastAPI lifespan. Each job runs once per interval; a job that
raises is logged and retried on the next tick, it never stops the loop.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable

from src.tk_offer.domain.models import SweepResult

logger = logging.getLogger(__name__)

SweepJob = Callable[[], Awaitable[SweepResult]]


class BackgroundSweeper:
    def __init__(self, jobs: dict[str, SweepJob], interval_seconds: float) -> None:
        self._jobs = jobs
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def run_once(self) -> dict[str, SweepResult]:
        results: dict[str, SweepResult] = {}
        for name, job in self._jobs.items():
            try:
                results[name] = await job()
            except Exception:
                logger.exception("Sweep job %s failed", name)
        return results

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
            except TimeoutError:
                pass

    def start(self) -> None:
        if self._task is None:
            self._stopping.clear()
            self._task = asyncio.create_task(self._loop(), name="offer-sweeper")
            logger.info("Sweeper started: jobs=%s interval=%.0fs", list(self._jobs), self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None
