from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .runtime_utils import now_ms

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class TimerScheduler:
    """Deferred room work on the running event loop.

    Every timer is a plain ``asyncio.Task``; cancelling the task before it
    fires drops the callback, cancelling a repeating task stops the loop at
    its next sleep.
    """

    def now_ms(self) -> int:
        return now_ms()

    def call_later(
        self,
        delay_ms: float,
        callback: TimerCallback,
        *,
        name: str | None = None,
    ) -> asyncio.Task[None]:
        delay_s = max(0.0, float(delay_ms or 0) / 1000)

        async def runner() -> None:
            try:
                await asyncio.sleep(delay_s)
            except asyncio.CancelledError:
                return
            try:
                await callback()
            except Exception:
                logger.exception("Timer %s failed", name or "-")

        return asyncio.create_task(runner(), name=name)

    def call_every(
        self,
        interval_ms: float,
        callback: TimerCallback,
        *,
        name: str | None = None,
    ) -> asyncio.Task[None]:
        interval_s = max(0.001, float(interval_ms or 0) / 1000)

        async def runner() -> None:
            while True:
                try:
                    await asyncio.sleep(interval_s)
                except asyncio.CancelledError:
                    return
                try:
                    await callback()
                except asyncio.CancelledError:
                    return
                except Exception:
                    logger.exception("Repeating timer %s failed", name or "-")

        return asyncio.create_task(runner(), name=name)
