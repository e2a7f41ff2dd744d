import asyncio
import logging

from connection_store import ConnectionStore, connection_store
from errors import RecipientGone
from transport import transport as default_transport

logger = logging.getLogger(__name__)


class Broadcaster:
    def __init__(self, store: ConnectionStore, transport):
        self.store = store
        self.transport = transport

    async def send_to_connection(self, connection_id: str, message: dict) -> bool:
        """True if delivered, False if the recipient is gone; anything else raises."""
        try:
            await self.transport.send(connection_id, message)
        except RecipientGone:
            logger.warning("Connection %s is gone", connection_id)
            return False
        return True

    async def _deliver(self, connection_id: str, message: dict):
        if not await self.send_to_connection(connection_id, message):
            logger.info("Removing stale connection %s", connection_id)
            await self.store.remove(connection_id)

    async def broadcast_to_room(self, room_id: str, message: dict):
        """Fan ``message`` out to every connection in the room.

        Gone recipients are removed from the store. Any other delivery
        failure fails the broadcast: it is raised once every attempt has
        settled, so no delivery outlives the call.
        """
        connections = await self.store.list_by_room(room_id)
        if not connections:
            logger.debug("No connections in room %s", room_id)
            return
        logger.info("Broadcasting %s to %d connection(s) in room %s",
                    message.get("type"), len(connections), room_id)
        results = await asyncio.gather(
            *(self._deliver(c.connection_id, message) for c in connections),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            logger.error("Error broadcasting to room %s: %r", room_id, failure)
        if failures:
            raise failures[0]


broadcaster = Broadcaster(connection_store, default_transport)
