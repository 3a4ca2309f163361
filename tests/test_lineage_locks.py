"""
Tests for per-lineage serialization and the database execution context.
"""
import asyncio

import pytest

from intake.application.lineage_locks import LineageLocks
from intake.db.execution_context import DatabaseExecutionContext
from intake.domain.value_objects import LineageKey


@pytest.mark.asyncio
async def test_same_lineage_is_serialized():
    locks = LineageLocks()
    lineage = LineageKey(1, "housing")
    timeline = []

    async def critical_section(name):
        async with locks.hold(lineage):
            timeline.append(f"{name}:start")
            await asyncio.sleep(0.01)
            timeline.append(f"{name}:end")

    await asyncio.gather(critical_section("a"), critical_section("b"))

    assert timeline == ["a:start", "a:end", "b:start", "b:end"]


@pytest.mark.asyncio
async def test_different_lineages_do_not_wait_on_each_other():
    locks = LineageLocks()
    housing = LineageKey(1, "housing")
    food = LineageKey(1, "food")
    entered_food = asyncio.Event()

    async def hold_housing():
        async with locks.hold(housing):
            # Would time out if food were blocked behind housing
            await asyncio.wait_for(entered_food.wait(), timeout=1)

    async def hold_food():
        async with locks.hold(food):
            entered_food.set()

    await asyncio.gather(hold_housing(), hold_food())


@pytest.mark.asyncio
async def test_unused_locks_are_released():
    locks = LineageLocks()
    lineage = LineageKey(1, "housing")

    async with locks.hold(lineage):
        assert locks.is_held(lineage)
        assert len(locks) == 1

    assert not locks.is_held(lineage)
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_is_released_when_block_raises():
    locks = LineageLocks()
    lineage = LineageKey(1, "housing")

    with pytest.raises(RuntimeError):
        async with locks.hold(lineage):
            raise RuntimeError("boom")

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_execution_context_bounds_concurrency():
    context = DatabaseExecutionContext(max_concurrency=2)
    peak = 0

    async def task():
        nonlocal peak
        async with context.slot():
            peak = max(peak, context.in_flight)
            await asyncio.sleep(0.01)

    await asyncio.gather(*(task() for _ in range(6)))

    assert peak == 2
    assert context.in_flight == 0


def test_execution_context_requires_a_slot():
    with pytest.raises(ValueError):
        DatabaseExecutionContext(max_concurrency=0)
