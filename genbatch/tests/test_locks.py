"""Unit tests for per-record locks."""

import asyncio

import pytest

from genbatch.core.reconciliation.locks import RecordLocks


class TestRecordLocks:
    """Test RecordLocks functionality."""

    @pytest.mark.asyncio
    async def test_same_record_is_serialized(self):
        """Test two holders of the same record never overlap."""
        locks = RecordLocks()
        events = []

        async def worker(name):
            async with locks.hold("rec_1"):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    @pytest.mark.asyncio
    async def test_different_records_run_concurrently(self):
        """Test locks for different records do not block each other."""
        locks = RecordLocks()
        inside = asyncio.Event()

        async def first():
            async with locks.hold("rec_1"):
                await asyncio.wait_for(inside.wait(), timeout=1)

        async def second():
            async with locks.hold("rec_2"):
                inside.set()

        await asyncio.gather(first(), second())
        assert inside.is_set()

    @pytest.mark.asyncio
    async def test_idle_locks_are_released(self):
        """Test the registry is empty once nobody holds a lock."""
        locks = RecordLocks()

        async with locks.hold("rec_1"):
            assert locks.active() == 1

        assert locks.active() == 0

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        """Test an exception inside the block releases the lock."""
        locks = RecordLocks()

        with pytest.raises(RuntimeError):
            async with locks.hold("rec_1"):
                raise RuntimeError("boom")

        assert locks.active() == 0
        async with locks.hold("rec_1"):
            pass
