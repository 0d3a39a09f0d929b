"""Tests for MutationQueue."""

import asyncio

import pytest

from casebuilder.application.mutation_queue import MutationQueue


class TestMutationQueue:
    async def test_runs_in_submission_order(self) -> None:
        """Later submissions wait for earlier ones even if they are faster."""
        queue = MutationQueue()
        order: list[str] = []

        def job(name: str, delay: float):
            async def run() -> str:
                order.append(f"start {name}")
                await asyncio.sleep(delay)
                order.append(f"end {name}")
                return name

            return run

        results = await asyncio.gather(
            queue.run("slow", job("slow", 0.02)),
            queue.run("fast", job("fast", 0)),
        )

        assert results == ["slow", "fast"]
        assert order == ["start slow", "end slow", "start fast", "end fast"]

    async def test_failure_does_not_block_queue(self) -> None:
        queue = MutationQueue()

        async def boom() -> None:
            raise RuntimeError("boom")

        async def ok() -> str:
            return "ok"

        with pytest.raises(RuntimeError):
            await queue.run("boom", boom)
        assert await queue.run("ok", ok) == "ok"
        assert queue.pending == 0
        assert not queue.busy

    async def test_pending_counts_waiters(self) -> None:
        queue = MutationQueue()
        release = asyncio.Event()

        async def blocked() -> None:
            await release.wait()

        first = asyncio.create_task(queue.run("first", blocked))
        second = asyncio.create_task(queue.run("second", blocked))
        await asyncio.sleep(0)

        assert queue.pending == 2
        assert queue.busy

        release.set()
        await asyncio.gather(first, second)
        assert queue.pending == 0
