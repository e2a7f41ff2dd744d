from typing import Dict, Optional
import logging

from errors import SessionConflict
from models import GameSession

logger = logging.getLogger(__name__)


class SessionStore:
    """Key-value store for game sessions with compare-and-set writes.

    Records are kept as plain dicts so callers always work on a private
    copy, the same way they would after a round-trip to a remote table.
    """

    def __init__(self):
        self._items: Dict[str, dict] = {}

    async def get(self, session_id: str) -> Optional[GameSession]:
        item = self._items.get(session_id)
        if item is None:
            return None
        return GameSession.model_validate(item)

    async def exists(self, session_id: str) -> bool:
        return session_id in self._items

    async def save(self, session: GameSession, expected_version: Optional[int] = None) -> GameSession:
        """Write ``session`` only if the stored version still matches.

        ``expected_version=None`` means the session must not exist yet.
        The stored copy gets ``expected_version + 1``; the saved session is
        returned with that version.
        """
        current = self._items.get(session.session_id)
        if expected_version is None:
            if current is not None:
                raise SessionConflict(f"Session already exists: {session.session_id}")
            new_version = 0
        else:
            if current is None or current["version"] != expected_version:
                found = None if current is None else current["version"]
                logger.warning("Version conflict on session %s (expected %s, found %s)",
                               session.session_id, expected_version, found)
                raise SessionConflict(f"Session was modified concurrently: {session.session_id}")
            new_version = expected_version + 1

        saved = session.model_copy(update={"version": new_version}, deep=True)
        self._items[session.session_id] = saved.model_dump()
        return saved

    async def delete(self, session_id: str) -> None:
        self._items.pop(session_id, None)

    def clear(self):
        self._items.clear()


session_store = SessionStore()
