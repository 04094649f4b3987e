from __future__ import annotations

import json
from collections.abc import Awaitable, Callable

import pytest
from starlette.websockets import WebSocketState

from tower_defense.config import Settings
from tower_defense.server import GameServer, build_game_server


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


class FakeConnection:
    """In-memory stand-in for a Starlette WebSocket on the server side."""

    def __init__(self, *, fail_sends: bool = False) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.fail_sends = fail_sends
        self.sent: list[dict] = []
        # Awaited once, inside the next send, to interleave other work with a broadcast.
        self.on_send: Callable[[], Awaitable[None]] | None = None

    async def send_text(self, data: str) -> None:
        hook, self.on_send = self.on_send, None
        if hook is not None:
            await hook()
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent.append(json.loads(data))

    def close(self) -> None:
        self.client_state = WebSocketState.DISCONNECTED

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]

    def last(self, type_: str) -> dict:
        return next(m for m in reversed(self.sent) if m["type"] == type_)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(now=10_000.0)


@pytest.fixture()
def server(clock: FakeClock) -> GameServer:
    return build_game_server(Settings(tick_interval_ms=50, spawn_stagger_ms=1000), clock=clock)


@pytest.fixture()
def make_connection() -> Callable[..., FakeConnection]:
    def _make(**kwargs: bool) -> FakeConnection:
        return FakeConnection(**kwargs)

    return _make
