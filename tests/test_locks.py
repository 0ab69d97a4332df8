"""Tests for per-key locks and the periodic sweeper."""

import asyncio

from src.core.safety import KeyedLock, PeriodicSweeper


class TestKeyedLock:
    async def test_same_key_serializes(self):
        locks = KeyedLock()
        events = []

        async def worker(name):
            async with locks.hold("u1"):
                events.append(f"{name} in")
                await asyncio.sleep(0.01)
                events.append(f"{name} out")

        await asyncio.gather(worker("a"), worker("b"))
        assert events == ["a in", "a out", "b in", "b out"]

    async def test_different_keys_overlap(self):
        locks = KeyedLock()
        events = []

        async def worker(key):
            async with locks.hold(key):
                events.append(f"{key} in")
                await asyncio.sleep(0.01)
                events.append(f"{key} out")

        await asyncio.gather(worker("u1"), worker("u2"))
        assert events[:2] == ["u1 in", "u2 in"]

    async def test_unused_locks_are_dropped(self):
        locks = KeyedLock()
        async with locks.hold("u1"):
            assert len(locks) == 1
        assert len(locks) == 0


class TestSweeper:
    def test_run_once_continues_after_failure(self):
        called = []

        def broken():
            raise RuntimeError("boom")

        sweeper = PeriodicSweeper([broken, lambda: called.append(1)], interval=60)
        sweeper.run_once()
        assert called == [1]

    async def test_start_and_stop(self):
        called = []
        sweeper = PeriodicSweeper([lambda: called.append(1)], interval=0.01)
        sweeper.start()
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert called
        count = len(called)
        await asyncio.sleep(0.03)
        assert len(called) == count
