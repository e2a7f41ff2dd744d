from typing import Awaitable, Callable, Dict
import asyncio
import logging

import config

logger = logging.getLogger(__name__)


class RoundTimer:
    """Fire-once countdown per session, owned outside the game engine."""

    def __init__(self, on_expire: Callable[[str], Awaitable[None]],
                 delay: float = config.GAME_TIME_LIMIT):
        self.on_expire = on_expire
        self.delay = delay
        self.tasks: Dict[str, asyncio.Task] = {}  # session_id -> countdown

    def start(self, session_id: str):
        self.cancel(session_id)
        self.tasks[session_id] = asyncio.create_task(self._run(session_id))

    def cancel(self, session_id: str):
        task = self.tasks.pop(session_id, None)
        if task and task is not asyncio.current_task():
            task.cancel()

    def cancel_all(self):
        for session_id in list(self.tasks):
            self.cancel(session_id)

    async def _run(self, session_id: str):
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            return
        try:
            await self.on_expire(session_id)
        except Exception:
            logger.exception("Error handling timeout for session %s", session_id)
        finally:
            self.tasks.pop(session_id, None)
