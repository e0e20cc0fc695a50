# tests/test_live.py

from __future__ import annotations

import asyncio

import pytest

from flow_mentor.core.live import LiveSnapshot


@pytest.mark.asyncio
async def test_publish_replaces_value_and_notifies_listeners() -> None:
    live: LiveSnapshot[int] = LiveSnapshot("nums")
    seen: list[tuple[int, ...]] = []
    remove = live.add_listener(seen.append)

    assert not live.loaded
    await live.publish((1, 2))
    await live.publish((3,))
    assert live.value == (3,)
    assert live.version == 2
    assert seen == [(1, 2), (3,)]

    remove()
    await live.publish(())
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_broken_listener_does_not_stop_publish(caplog) -> None:
    live: LiveSnapshot[int] = LiveSnapshot("nums")
    ok: list[tuple[int, ...]] = []

    def boom(_items) -> None:
        raise RuntimeError("listener bug")

    live.add_listener(boom)
    live.add_listener(ok.append)
    await live.publish((1,))
    assert ok == [(1,)]
    assert "nums listener failed" in caplog.text


@pytest.mark.asyncio
async def test_updates_stream_current_then_later_snapshots_until_close() -> None:
    live: LiveSnapshot[str] = LiveSnapshot("words")
    await live.publish(("a",))

    received: list[tuple[str, ...]] = []

    async def consume() -> None:
        async for snap in live.updates():
            received.append(snap)

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    await live.publish(("a", "b"))
    live.close()
    await asyncio.wait_for(task, 1.0)

    assert received == [("a",), ("a", "b")]


@pytest.mark.asyncio
async def test_wait_for_and_publish_after_close() -> None:
    live: LiveSnapshot[int] = LiveSnapshot("nums")

    waiter = asyncio.create_task(live.wait_for(lambda items: len(items) >= 2, timeout=1.0))
    await live.publish((1,))
    await live.publish((1, 2))
    assert await waiter == (1, 2)

    live.close()
    await live.publish((9,))
    assert live.value == (1, 2)
    assert live.closed


@pytest.mark.asyncio
async def test_updates_after_close_ends_instead_of_hanging() -> None:
    live: LiveSnapshot[int] = LiveSnapshot("nums")
    await live.publish((1,))
    live.close()

    assert await asyncio.wait_for(_collect(live), 1.0) == [(1,)]

    never_loaded: LiveSnapshot[int] = LiveSnapshot("empty")
    never_loaded.close()
    assert await asyncio.wait_for(_collect(never_loaded), 1.0) == []


async def _collect(live: LiveSnapshot) -> list:
    return [s async for s in live.updates()]
