from __future__ import annotations

import asyncio
from typing import Any, Callable

# Short poll so stop and error paths settle quickly.
POLL = 0.02


class FakePubSub:
    """Scriptable stand-in for redis.asyncio.client.PubSub."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.psubscribed: list[str] = []
        self.punsubscribed: list[str] = []
        self.closed = False
        self.subscribe_error: BaseException | None = None
        self.unsubscribe_error: BaseException | None = None
        self.read_errors: list[BaseException] = []

    async def psubscribe(self, *patterns: str) -> None:
        if self.subscribe_error is not None:
            raise self.subscribe_error
        self.psubscribed.extend(patterns)

    async def punsubscribe(self, *patterns: str) -> None:
        if self.unsubscribe_error is not None:
            raise self.unsubscribe_error
        self.punsubscribed.extend(patterns)

    async def get_message(self, ignore_subscribe_messages: bool = False, timeout: float = 0.0):
        if self.read_errors:
            raise self.read_errors.pop(0)
        try:
            return await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    async def aclose(self) -> None:
        self.closed = True

    def publish(self, pattern: Any, channel: Any, data: Any, kind: str = "pmessage") -> None:
        self.queue.put_nowait({"type": kind, "pattern": pattern, "channel": channel, "data": data})


class FakeSubClient:
    """Subscriber client handing out one pre-built FakePubSub."""

    def __init__(self) -> None:
        self.pubsub_obj = FakePubSub()
        self.pubsub_calls = 0
        self.closed = False

    def pubsub(self, **kwargs: Any) -> FakePubSub:
        self.pubsub_calls += 1
        return self.pubsub_obj

    async def aclose(self) -> None:
        self.closed = True


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


async def settle(rounds: int = 5) -> None:
    """Give the reader task a few loop turns to drain its queue."""
    for _ in range(rounds):
        await asyncio.sleep(0.01)
