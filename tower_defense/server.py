from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from tower_defense.config import Settings
from tower_defense.connections import ConnectionRegistry
from tower_defense.core.session import now_ms
from tower_defense.game_loop import TickScheduler
from tower_defense.message_router import MessageRouter
from tower_defense.session_registry import SessionRegistry
from tower_defense.websocket_hub import Broadcaster


@dataclass(slots=True)
class GameServer:
    """Everything one server process shares: registries, router and scheduler.

    Built per app (and per test) instead of living in module globals.
    """

    settings: Settings
    sessions: SessionRegistry
    connections: ConnectionRegistry
    broadcaster: Broadcaster
    router: MessageRouter
    scheduler: TickScheduler


def build_game_server(settings: Settings, *, clock: Callable[[], float] = now_ms) -> GameServer:
    sessions = SessionRegistry(clock=clock, spawn_stagger_ms=settings.spawn_stagger_ms)
    connections = ConnectionRegistry()
    broadcaster = Broadcaster(connections)
    router = MessageRouter(
        sessions=sessions,
        connections=connections,
        broadcaster=broadcaster,
        default_session_id=settings.default_session_id,
        clock=clock,
    )
    scheduler = TickScheduler(
        sessions=sessions,
        broadcaster=broadcaster,
        interval_ms=settings.tick_interval_ms,
        clock=clock,
    )
    return GameServer(
        settings=settings,
        sessions=sessions,
        connections=connections,
        broadcaster=broadcaster,
        router=router,
        scheduler=scheduler,
    )
