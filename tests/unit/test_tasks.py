"""Tests for sweetconnect.engine.tasks -- BackgroundTasks."""

from __future__ import annotations

import asyncio
import logging

import pytest

from sweetconnect.engine.tasks import BackgroundTasks


class TestBackgroundTasks:
    @pytest.mark.asyncio
    async def test_spawn_does_not_block(self) -> None:
        tasks = BackgroundTasks()
        gate = asyncio.Event()
        done: list[str] = []

        async def work() -> None:
            await gate.wait()
            done.append("x")

        tasks.spawn(work())
        assert done == []
        assert tasks.pending == 1
        gate.set()
        await tasks.drain()
        assert done == ["x"]
        assert tasks.pending == 0

    @pytest.mark.asyncio
    async def test_drain_waits_for_nested_spawns(self) -> None:
        tasks = BackgroundTasks()
        done: list[str] = []

        async def inner() -> None:
            await asyncio.sleep(0)
            done.append("inner")

        async def outer() -> None:
            tasks.spawn(inner())
            done.append("outer")

        tasks.spawn(outer())
        await tasks.drain()
        assert sorted(done) == ["inner", "outer"]

    @pytest.mark.asyncio
    async def test_crash_is_logged(self, caplog) -> None:
        tasks = BackgroundTasks()

        async def crash() -> None:
            raise ValueError("nope")

        with caplog.at_level(logging.ERROR, logger="sweetconnect.engine.tasks"):
            tasks.spawn(crash(), name="crasher")
            await tasks.drain()
            await asyncio.sleep(0)
        assert "crasher" in caplog.text

    @pytest.mark.asyncio
    async def test_drain_timeout(self) -> None:
        tasks = BackgroundTasks()
        tasks.spawn(asyncio.sleep(10))
        await tasks.drain(timeout=0.01)
        assert tasks.pending == 1
        await tasks.cancel_all()

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self) -> None:
        await BackgroundTasks().drain()
