from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol

DEFAULT_FRAME_INTERVAL_SECONDS = 1.0 / 60.0


class FrameHandle(Protocol):
    def cancel(self) -> None: ...


class FrameScheduler(Protocol):
    def schedule(self, callback: Callable[[], None]) -> FrameHandle: ...


class AsyncioFrameScheduler:
    """Runs one callback per frame on an asyncio loop.

    Each ``schedule`` call arms exactly one ``loop.call_later``; the returned
    ``asyncio.TimerHandle`` cancels it. Must be used from the loop's thread.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        interval_seconds: float = DEFAULT_FRAME_INTERVAL_SECONDS,
    ) -> None:
        self.loop = loop or asyncio.get_running_loop()
        self.interval_seconds = max(0.0, interval_seconds)

    def schedule(self, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(self.interval_seconds, callback)
