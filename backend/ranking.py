from typing import Dict, List
import time

import config
from models import RankingEntry


class RankingBoard:
    """Best finished-round score per room, ranked highest first."""

    def __init__(self):
        self._best: Dict[str, dict] = {}  # room_id -> {team_name, score, finished_at}

    def record(self, room_id: str, team_name: str, score: int, finished_at: float = 0):
        finished_at = finished_at or time.time()
        current = self._best.get(room_id)
        if current is None or score > current["score"]:
            self._best[room_id] = {
                "team_name": team_name or room_id,
                "score": score,
                "finished_at": finished_at,
            }

    def rankings(self, limit: int = config.MAX_RANKINGS) -> List[RankingEntry]:
        ordered = sorted(self._best.items(), key=lambda kv: (-kv[1]["score"], kv[1]["finished_at"]))
        entries: List[RankingEntry] = []
        for position, (room_id, best) in enumerate(ordered[:limit], start=1):
            # Equal scores share the rank of the first of them
            if entries and entries[-1].score == best["score"]:
                rank = entries[-1].rank
            else:
                rank = position
            entries.append(RankingEntry(room_id=room_id, team_name=best["team_name"],
                                        score=best["score"], rank=rank))
        return entries

    def clear(self):
        self._best.clear()


ranking_board = RankingBoard()
