"""Tests for mk_common.locks.KeyedLocks."""

import asyncio

from src.mk_common.locks import KeyedLocks


class TestKeyedLocks:
    async def test_same_key_serializes(self) -> None:
        locks = KeyedLocks()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("acct-1"):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert events in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    async def test_different_keys_do_not_block(self) -> None:
        locks = KeyedLocks()
        async with locks.hold("x"):
            assert not locks.get("y").locked()

    async def test_opposite_order_does_not_deadlock(self) -> None:
        locks = KeyedLocks()

        async def worker(first: str, second: str) -> None:
            async with locks.hold(first, second):
                await asyncio.sleep(0.01)

        await asyncio.wait_for(
            asyncio.gather(worker("u1", "u2"), worker("u2", "u1")), timeout=1
        )

    async def test_duplicate_keys(self) -> None:
        locks = KeyedLocks()
        async with locks.hold("k", "k"):
            assert locks.get("k").locked()
        assert not locks.get("k").locked()

    async def test_discard_only_when_free(self) -> None:
        locks = KeyedLocks()
        async with locks.hold("k"):
            locks.discard("k")
            assert locks.get("k").locked()
        locks.discard("k")
        assert not locks.get("k").locked()
