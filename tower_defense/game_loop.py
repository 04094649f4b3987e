from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from tower_defense.api.models import GameStateMessage
from tower_defense.core.session import now_ms
from tower_defense.session_registry import SessionRegistry
from tower_defense.websocket_hub import Broadcaster

logger = logging.getLogger(__name__)


class TickScheduler:
    """Fixed-interval driver of every started session.

    Each pass ticks the started sessions one after another and broadcasts their
    new state. There is no catch-up: a late pass simply simulates a larger delta.
    """

    def __init__(
        self,
        *,
        sessions: SessionRegistry,
        broadcaster: Broadcaster,
        interval_ms: float = 50,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self._sessions = sessions
        self._broadcaster = broadcaster
        self._interval_ms = interval_ms
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick_once(self, now: float | None = None) -> int:
        """Advance every started session once. Returns how many were advanced."""

        now = self._clock() if now is None else now
        advanced = 0
        for session in self._sessions:
            if not session.started:
                continue
            try:
                async with session.lock:
                    # Destroyed (and maybe replaced under the same id) while an earlier broadcast awaited.
                    if self._sessions.get(session.id) is not session:
                        continue
                    session.tick(now)
                    state = session.snapshot()
                await self._broadcaster.broadcast(session.id, GameStateMessage(state=state))
            except Exception:
                logger.exception("tick failed for session %s", session.id)
                continue
            advanced += 1
        return advanced

    async def run(self) -> None:
        interval = self._interval_ms / 1000
        while True:
            started = self._clock()
            await self.tick_once(started)
            spent = (self._clock() - started) / 1000
            await asyncio.sleep(max(0.0, interval - spent))

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="tick-scheduler")
            logger.info("tick scheduler started (%s ms)", self._interval_ms)
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("tick scheduler stopped")
