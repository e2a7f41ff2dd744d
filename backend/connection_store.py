from typing import Callable, Dict, List, Optional, Set
import asyncio
import logging
import time

import config
from models import Connection

logger = logging.getLogger(__name__)


class ConnectionStore:
    """Ephemeral connection records with a room index and a lease TTL.

    Every record carries an explicit ``expires_at``. Reads lazily drop
    expired records and a background loop reaps the rest, so expiry is
    eventually consistent. Mutations never await part-way through, which
    keeps the record table and the room index in step.
    """

    def __init__(self, ttl_seconds: int = config.CONNECTION_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._connections: Dict[str, Connection] = {}  # connection_id -> record
        self._by_room: Dict[str, Set[str]] = {}  # room_id -> connection_ids
        self._cleanup_task: Optional[asyncio.Task] = None

    def _is_expired(self, connection: Connection) -> bool:
        return connection.expires_at <= self._clock()

    def _drop(self, connection_id: str) -> Optional[Connection]:
        connection = self._connections.pop(connection_id, None)
        if connection:
            members = self._by_room.get(connection.room_id)
            if members is not None:
                members.discard(connection_id)
                if not members:
                    del self._by_room[connection.room_id]
        return connection

    async def put(self, connection: Connection) -> Connection:
        """Upsert by connection id and stamp a fresh lease."""
        stamped = connection.model_copy(update={"expires_at": self._clock() + self.ttl_seconds})
        previous = self._connections.get(stamped.connection_id)
        if previous and previous.room_id != stamped.room_id:
            self._drop(previous.connection_id)
        self._connections[stamped.connection_id] = stamped
        self._by_room.setdefault(stamped.room_id, set()).add(stamped.connection_id)
        return stamped

    async def get(self, connection_id: str) -> Optional[Connection]:
        connection = self._connections.get(connection_id)
        if connection and self._is_expired(connection):
            self._drop(connection_id)
            return None
        return connection

    async def touch(self, connection_id: str) -> bool:
        """Heartbeat: extend the lease. Returns False if the record is gone."""
        connection = await self.get(connection_id)
        if connection is None:
            return False
        connection.expires_at = self._clock() + self.ttl_seconds
        return True

    async def remove(self, connection_id: str) -> None:
        self._drop(connection_id)

    async def list_by_room(self, room_id: str) -> List[Connection]:
        live = []
        for connection_id in list(self._by_room.get(room_id, ())):
            connection = self._connections[connection_id]
            if self._is_expired(connection):
                self._drop(connection_id)
            else:
                live.append(connection)
        return live

    async def reap_expired(self) -> int:
        expired = [cid for cid, c in self._connections.items() if self._is_expired(c)]
        for connection_id in expired:
            self._drop(connection_id)
        if expired:
            logger.info("Reaped %d expired connection(s)", len(expired))
        return len(expired)

    def start_cleanup_loop(self, interval: int = config.CONNECTION_REAP_INTERVAL):
        """Start the background reaper task."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_expired(interval))

    async def stop_cleanup_loop(self):
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

    async def _cleanup_expired(self, interval: int):
        """Periodically remove expired connections."""
        while True:
            try:
                await asyncio.sleep(interval)
                await self.reap_expired()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Error in connection cleanup loop")

    def clear(self):
        self._connections.clear()
        self._by_room.clear()


connection_store = ConnectionStore()
