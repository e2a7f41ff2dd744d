from fastapi import WebSocket, WebSocketDisconnect
from typing import List
import time
import uuid
import logging

import config
from connection_store import ConnectionStore, connection_store
from message_router import MessageRouter, error_envelope, message_router
from models import Connection
from transport import WebSocketTransport, transport

logger = logging.getLogger(__name__)


class SocketManager:
    """Owns the socket lifecycle: open, read loop, close.

    Messages from one connection are handled one at a time, to completion;
    separate connections run concurrently.
    """

    def __init__(self, store: ConnectionStore, transport: WebSocketTransport, router: MessageRouter):
        self.store = store
        self.transport = transport
        self.router = router
        self.allowed_origins: List[str] = []

    async def connect(self, websocket: WebSocket, player_id: str, room_id: str):
        # Validate WebSocket origin
        origin = websocket.headers.get("origin", "")
        if self.allowed_origins and origin not in self.allowed_origins:
            logger.warning("Rejected WebSocket from unauthorized origin: %s", origin)
            await websocket.close(code=1008)
            return

        if not player_id or not room_id:
            logger.warning("Rejected WebSocket missing playerId/roomId (playerId=%r, roomId=%r)",
                           player_id, room_id)
            await websocket.close(code=1008, reason="Missing required parameters: playerId and roomId")
            return

        await websocket.accept()
        connection_id = uuid.uuid4().hex
        connection = await self.store.put(Connection(
            connection_id=connection_id,
            player_id=player_id,
            room_id=room_id,
            connected_at=time.time(),
        ))
        self.transport.register(connection_id, websocket)
        logger.info("Player %s connected to room %s as %s", player_id, room_id, connection_id)

        timestamps: List[float] = []
        try:
            while True:
                data = await websocket.receive_text()

                # Enforce message size limit
                if len(data) > config.MAX_WS_MESSAGE_SIZE:
                    await websocket.send_json(error_envelope("Message too large", "413"))
                    continue

                # Per-connection rate limiting
                now = time.time()
                timestamps[:] = [t for t in timestamps if now - t < 1.0]
                if len(timestamps) >= config.WS_RATE_LIMIT_PER_SEC:
                    await websocket.send_json(error_envelope("Too many messages", "429"))
                    continue
                timestamps.append(now)

                if not await self.store.touch(connection_id):
                    # The lease lapsed under us; re-register the connection.
                    connection = await self.store.put(connection)

                reply = await self.router.route(connection, data)
                if reply is not None:
                    await websocket.send_json(reply)
        except WebSocketDisconnect:
            logger.info("Connection %s disconnected from room %s", connection_id, room_id)
        except Exception:
            logger.exception("WebSocket error for connection %s in room %s", connection_id, room_id)
        finally:
            self.transport.unregister(connection_id)
            await self.store.remove(connection_id)


socket_manager = SocketManager(connection_store, transport, message_router)
