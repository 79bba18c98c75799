"""Unit tests for BackgroundSweeper."""
import asyncio
from unittest.mock import AsyncMock

from src.tk_offer.application.sweeper import BackgroundSweeper
from src.tk_offer.domain.models import SweepResult


class TestRunOnce:
    async def test_runs_every_job(self) -> None:
        expiry = AsyncMock(return_value=SweepResult(examined=2, succeeded=2))
        reconcile = AsyncMock(return_value=SweepResult())
        sweeper = BackgroundSweeper({"expiry": expiry, "reconcile": reconcile}, 60)

        results = await sweeper.run_once()

        assert results["expiry"].succeeded == 2
        assert results["reconcile"].examined == 0
        expiry.assert_awaited_once()
        reconcile.assert_awaited_once()

    async def test_failing_job_does_not_block_others(self) -> None:
        broken = AsyncMock(side_effect=RuntimeError("db down"))
        reconcile = AsyncMock(return_value=SweepResult(examined=1, succeeded=1))
        sweeper = BackgroundSweeper({"expiry": broken, "reconcile": reconcile}, 60)

        results = await sweeper.run_once()

        assert "expiry" not in results
        assert results["reconcile"].succeeded == 1


class TestLoop:
    async def test_start_and_stop(self) -> None:
        job = AsyncMock(return_value=SweepResult())
        sweeper = BackgroundSweeper({"expiry": job}, 0.01)

        sweeper.start()
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert job.await_count >= 2
        calls = job.await_count
        await asyncio.sleep(0.03)
        assert job.await_count == calls

    async def test_stop_without_start(self) -> None:
        await BackgroundSweeper({}, 1).stop()

    async def test_start_is_idempotent(self) -> None:
        job = AsyncMock(return_value=SweepResult())
        sweeper = BackgroundSweeper({"expiry": job}, 10)
        sweeper.start()
        sweeper.start()
        await asyncio.sleep(0.01)
        await sweeper.stop()
        assert job.await_count == 1
