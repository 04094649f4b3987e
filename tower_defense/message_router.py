from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from tower_defense.api.models import (
    CLIENT_MESSAGE_ADAPTER,
    CLIENT_MESSAGE_TYPES,
    GameStartedMessage,
    GameStateMessage,
    JoinedMessage,
    JoinMessage,
    PlaceTowerMessage,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PlayerSummary,
    ReadyMessage,
    StartWaveMessage,
)
from tower_defense.connections import Binding, Connection, ConnectionRegistry
from tower_defense.core.session import Session, now_ms
from tower_defense.session_registry import SessionRegistry
from tower_defense.websocket_hub import Broadcaster

logger = logging.getLogger(__name__)

Handler = Callable[[Connection, Any], Awaitable[None]]


class MessageRouter:
    """Entry point for everything a client sends.

    Decodes a frame, dispatches on its `type` tag and applies the intent to the
    caller's session:
    - protocol errors (bad JSON, bad fields) are logged and dropped, the socket stays open
    - unknown message types are ignored
    - messages from a connection that never joined are ignored
    """

    def __init__(
        self,
        *,
        sessions: SessionRegistry,
        connections: ConnectionRegistry,
        broadcaster: Broadcaster,
        default_session_id: str = "default",
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self._sessions = sessions
        self._connections = connections
        self._broadcaster = broadcaster
        self._default_session_id = default_session_id
        self._clock = clock
        self._handlers: dict[str, Handler] = {
            "join": self._on_join,
            "ready": self._on_ready,
            "placeTower": self._on_place_tower,
            "startWave": self._on_start_wave,
        }

    async def handle_message(self, connection: Connection, raw: str | bytes) -> None:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("undecodable message from %s: %s", self._describe(connection), e)
            return

        if not isinstance(data, dict):
            logger.warning("non-object message from %s", self._describe(connection))
            return

        kind = data.get("type")
        if not isinstance(kind, str) or kind not in CLIENT_MESSAGE_TYPES:
            logger.debug("ignoring message of unknown type %r", kind)
            return

        try:
            message = CLIENT_MESSAGE_ADAPTER.validate_python(data)
        except ValidationError as e:
            logger.warning("invalid %s message from %s: %s", kind, self._describe(connection), e)
            return

        await self._handlers[kind](connection, message)

    async def handle_disconnect(self, connection: Connection) -> None:
        binding = self._connections.unbind(connection)
        if binding is None:
            return

        session = self._sessions.get(binding.session_id)
        if session is None:
            return

        async with session.lock:
            session.remove_player(binding.player_id)
            emptied = session.is_empty
            if emptied and self._sessions.get(session.id) is session:
                self._sessions.remove(session.id)

        if not emptied:
            await self._broadcaster.broadcast(session.id, PlayerLeftMessage(player_id=binding.player_id))

    # ---- handlers ----

    async def _on_join(self, connection: Connection, message: JoinMessage) -> None:
        if self._connections.lookup(connection) is not None:
            logger.warning("ignoring repeated join from %s", self._describe(connection))
            return

        session_id = message.game_id or self._default_session_id
        while True:
            session = self._sessions.get_or_create(session_id)
            async with session.lock:
                # The last player may have left (destroying the session) while we waited.
                if self._sessions.get(session_id) is not session:
                    continue
                player_id = session.add_player(message.player_name)
                self._connections.bind(connection, session_id, player_id)
                state = session.snapshot()
            break

        await self._broadcaster.send(connection, JoinedMessage(player_id=player_id, game_state=state))
        await self._broadcaster.broadcast(
            session_id,
            PlayerJoinedMessage(player=PlayerSummary(id=player_id, name=message.player_name)),
            exclude=connection,
        )

    async def _on_ready(self, connection: Connection, message: ReadyMessage) -> None:
        resolved = self._resolve(connection)
        if resolved is None:
            return
        binding, session = resolved

        async with session.lock:
            started_now = session.mark_ready(binding.player_id, now=self._clock())
            state = session.snapshot()

        await self._broadcaster.broadcast(session.id, GameStateMessage(state=state))
        if started_now:
            await self._broadcaster.broadcast(session.id, GameStartedMessage())

    async def _on_place_tower(self, connection: Connection, message: PlaceTowerMessage) -> None:
        resolved = self._resolve(connection)
        if resolved is None:
            return
        binding, session = resolved

        async with session.lock:
            session.place_tower(message.x, message.y, message.tower_type, binding.player_id)
            state = session.snapshot()

        # Sent whether or not the tower was placed; clients read the outcome from gold/towers.
        await self._broadcaster.broadcast(session.id, GameStateMessage(state=state))

    async def _on_start_wave(self, connection: Connection, message: StartWaveMessage) -> None:
        resolved = self._resolve(connection)
        if resolved is None:
            return
        _, session = resolved

        async with session.lock:
            if session.wave_in_progress:
                logger.debug("session %s: wave %d still in progress", session.id, session.wave)
                return
            session.spawn_wave(self._clock())
            state = session.snapshot()

        await self._broadcaster.broadcast(session.id, GameStateMessage(state=state))

    # ---- helpers ----

    def _resolve(self, connection: Connection) -> tuple[Binding, Session] | None:
        binding = self._connections.lookup(connection)
        if binding is None:
            logger.debug("ignoring message from a connection that has not joined")
            return None
        session = self._sessions.get(binding.session_id)
        if session is None:
            logger.debug("ignoring message for missing session %s", binding.session_id)
            return None
        return binding, session

    def _describe(self, connection: Connection) -> str:
        binding = self._connections.lookup(connection)
        if binding is None:
            return "unjoined connection"
        return f"player {binding.player_id} in session {binding.session_id}"
