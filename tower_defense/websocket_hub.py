from __future__ import annotations

import logging

from tower_defense.api.models import WireModel
from tower_defense.connections import Connection, ConnectionRegistry, is_open

logger = logging.getLogger(__name__)


class Broadcaster:
    """Fan-out of server messages to the connections bound to a session.

    Contract:
      - `broadcast(session_id, message)` reaches every open connection bound to
        that session and nothing else.
      - sends are fire-and-forget: a closed or failing connection is skipped,
        never retried and never raised. Its close notification cleans it up.

    Note: this is in-process only. Running several server replicas would need a
    shared pub/sub in front of it.
    """

    def __init__(self, connections: ConnectionRegistry) -> None:
        self._connections = connections

    async def send(self, connection: Connection, message: WireModel) -> bool:
        return await self._send_text(connection, message.to_json())

    async def broadcast(
        self,
        session_id: str,
        message: WireModel,
        *,
        exclude: Connection | None = None,
    ) -> int:
        conns = [c for c in self._connections.connections_for(session_id) if c is not exclude]
        if not conns:
            return 0

        payload = message.to_json()
        sent = 0
        for conn in conns:
            if await self._send_text(conn, payload):
                sent += 1
        return sent

    async def _send_text(self, connection: Connection, payload: str) -> bool:
        if not is_open(connection):
            return False
        try:
            await connection.send_text(payload)
        except Exception:
            logger.debug("dropping message to unreachable connection", exc_info=True)
            return False
        return True
