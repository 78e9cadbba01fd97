from __future__ import annotations

import asyncio

import pytest

from safety_engine.scheduler import PeriodicTask


@pytest.mark.asyncio
async def test_periodic_task_runs_until_stopped() -> None:
    calls: list[int] = []

    async def action() -> None:
        calls.append(1)

    task = PeriodicTask(0.01, action, name="test")
    task.start()
    await asyncio.sleep(0.05)
    await task.stop()
    count = len(calls)
    await asyncio.sleep(0.03)

    assert count >= 1
    assert len(calls) == count
    assert task.running is False


@pytest.mark.asyncio
async def test_periodic_task_survives_failing_action() -> None:
    calls: list[int] = []

    async def action() -> None:
        calls.append(1)
        raise RuntimeError("boom")

    task = PeriodicTask(0.01, action)
    task.start()
    await asyncio.sleep(0.05)

    assert task.running is True
    assert len(calls) >= 2
    await task.stop()


@pytest.mark.asyncio
async def test_stop_without_start_is_noop() -> None:
    async def action() -> None:
        return None

    task = PeriodicTask(1.0, action)
    await task.stop()
    assert task.running is False


def test_interval_must_be_positive() -> None:
    async def action() -> None:
        return None

    with pytest.raises(ValueError):
        PeriodicTask(0, action)
