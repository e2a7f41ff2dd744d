from typing import Dict
import logging

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from errors import RecipientGone

logger = logging.getLogger(__name__)


class WebSocketTransport:
    """Send primitive over the sockets held open by this process.

    ``send`` either delivers, raises RecipientGone when the addressed
    socket no longer exists, or lets any other failure propagate.
    """

    def __init__(self):
        self.sockets: Dict[str, WebSocket] = {}  # connection_id -> ws

    def register(self, connection_id: str, websocket: WebSocket):
        self.sockets[connection_id] = websocket

    def unregister(self, connection_id: str):
        self.sockets.pop(connection_id, None)

    async def send(self, connection_id: str, message: dict):
        ws = self.sockets.get(connection_id)
        if ws is None or ws.client_state == WebSocketState.DISCONNECTED \
                or ws.application_state == WebSocketState.DISCONNECTED:
            raise RecipientGone(connection_id)
        try:
            await ws.send_json(message)
        except WebSocketDisconnect:
            self.unregister(connection_id)
            raise RecipientGone(connection_id)


transport = WebSocketTransport()
