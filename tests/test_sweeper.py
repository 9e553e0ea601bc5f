"""Tests for the background expiry sweeper."""

import asyncio
import logging
from datetime import timedelta

import anyio
import pytest
from apscheduler.triggers.interval import IntervalTrigger

from expiration import utc_now
from sweeper import ExpirySweeper

pytestmark = pytest.mark.anyio


class FlakyStore:
    """Stand-in store: fails on the first sweep, then reports removals."""

    def __init__(self, results):
        self.results = list(results)
        self.calls = 0
        self.done = asyncio.Event()
        self.clock = utc_now

    async def sweep_expired(self, now=None):
        self.calls += 1
        result = self.results.pop(0) if self.results else 0
        if not self.results:
            self.done.set()
        if isinstance(result, Exception):
            raise result
        return result


class TestSweepOnce:
    async def test_removes_expired_pastes(self, store, clock):
        await store.create("minute", expiration="1m")
        await store.create("forever")
        sweeper = ExpirySweeper(store, interval=300)

        assert await sweeper.sweep_once() == 0
        clock.advance(minutes=2)
        assert await sweeper.sweep_once() == 1
        assert await sweeper.sweep_once() == 0

    async def test_logs_only_when_something_was_removed(self, store, clock, caplog):
        await store.create("minute", expiration="1m")
        sweeper = ExpirySweeper(store)

        with caplog.at_level(logging.INFO, logger="sweeper"):
            await sweeper.sweep_once()
            assert "expired pastes" not in caplog.text

            clock.advance(minutes=2)
            await sweeper.sweep_once()
        assert "Cleaned up 1 expired pastes" in caplog.text


class TestRun:
    async def test_failed_tick_does_not_stop_later_ticks(self, caplog):
        store = FlakyStore([RuntimeError("database is locked"), 2, 0])
        sweeper = ExpirySweeper(store, interval=1)

        with caplog.at_level(logging.INFO, logger="sweeper"):
            sweeper.start()
            with anyio.fail_after(10):
                await store.done.wait()
            sweeper.stop()

        assert store.calls >= 3
        assert "Expiry sweep failed" in caplog.text
        assert "Cleaned up 2 expired pastes" in caplog.text

    async def test_first_tick_runs_immediately(self):
        store = FlakyStore([0])
        sweeper = ExpirySweeper(store, interval=3600)

        sweeper.start()
        with anyio.fail_after(5):
            await store.done.wait()
        sweeper.stop()

        assert store.calls == 1

    async def test_job_uses_interval_trigger(self):
        sweeper = ExpirySweeper(FlakyStore([0]), interval=120)

        job = sweeper.start()
        try:
            assert isinstance(job.trigger, IntervalTrigger)
            assert job.trigger.interval == timedelta(seconds=120)
            assert sweeper.scheduler.running
        finally:
            sweeper.stop()

        assert not sweeper.scheduler.running

    async def test_start_is_idempotent(self):
        store = FlakyStore([0])
        sweeper = ExpirySweeper(store, interval=3600)

        first = sweeper.start()
        second = sweeper.start()
        sweeper.stop()

        assert first is second
        assert first.id == "expiry-sweep"

    async def test_stop_without_start(self):
        ExpirySweeper(FlakyStore([])).stop()
