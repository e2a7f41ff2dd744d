from typing import Callable, Optional, Tuple
import logging
import secrets
import time

import config
from answer_matcher import match
from errors import DatabaseError, GameError, SessionNotFound
from models import AnswerRecord, AnswerResult, GameResult, GameSession, Question, QuestionPayload
from question_repository import QuestionRepository, question_repository
from session_store import SessionStore, session_store

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    return f"session-{secrets.token_hex(8)}"


class GameService:
    """Per-round state machine: start, submit answers, complete or time out.

    ``currentTurn`` advances only on a correct answer. A session moves from
    ``playing`` to ``completed`` when the correct count reaches
    ``config.REQUIRED_ANSWERS``, or to ``timeout`` on the external clock
    signal; whichever happens first is final.

    Every write is a compare-and-set against the version that was read; a
    stale writer gets SessionConflict and may resubmit.
    """

    def __init__(self, sessions: SessionStore, questions: QuestionRepository,
                 clock: Callable[[], float] = time.time):
        self.sessions = sessions
        self.questions = questions
        self._clock = clock

    async def _load_session(self, session_id: str) -> GameSession:
        try:
            session = await self.sessions.get(session_id)
        except GameError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to load session {session_id}: {e}") from e
        if session is None:
            raise SessionNotFound(f"Session not found: {session_id}")
        return session

    async def start_game(self, room_id: str, question_id: str,
                         team_name: str = "") -> Tuple[GameSession, QuestionPayload]:
        question = await self.questions.get_question_by_id(question_id)
        session = GameSession(
            session_id=generate_session_id(),
            room_id=room_id,
            question_id=question.id,
            started_at=self._clock(),
            team_name=team_name,
        )
        try:
            session = await self.sessions.save(session)
        except GameError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to start game: {e}") from e
        logger.info("Round %s started in room %s (question %s)", session.session_id, room_id, question.id)
        return session, question.to_payload()

    async def get_session(self, session_id: str) -> GameSession:
        return await self._load_session(session_id)

    async def get_question_payload(self, session: GameSession) -> QuestionPayload:
        question = await self.questions.get_question_by_id(session.question_id)
        return question.to_payload()

    async def submit_answer(self, session_id: str, player_id: str, answer: str) -> AnswerResult:
        session = await self._load_session(session_id)
        question: Question = await self.questions.get_question_by_id(session.question_id)

        result = match(answer, question.answers, question.acceptable_variations)
        expected_version = session.version

        # Non-playing sessions still accept entries; only the status is frozen.
        session.answers.append(AnswerRecord(
            player_id=player_id,
            answer=answer,
            is_correct=result.is_correct,
            timestamp=self._clock(),
        ))
        score = 0
        game_completed = False
        if result.is_correct:
            session.current_turn += 1
            score = config.SCORE_PER_ANSWER
            if session.status == "playing" and session.correct_count() >= config.REQUIRED_ANSWERS:
                session.finish("completed", session.answers[-1].timestamp)
                game_completed = True

        try:
            session = await self.sessions.save(session, expected_version=expected_version)
        except GameError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to submit answer: {e}") from e

        logger.info("Answer in %s by %s: %s (turn %d)", session_id, player_id,
                    "correct" if result.is_correct else "incorrect", session.current_turn)
        if game_completed:
            logger.info("Round %s completed", session_id)
        return AnswerResult(
            correct=result.is_correct,
            score=score,
            next_turn=session.current_turn,
            game_completed=game_completed,
        )

    async def timeout(self, session_id: str) -> Optional[GameResult]:
        """Clock signal: end a still-playing round. Returns None if already over."""
        session = await self._load_session(session_id)
        if session.status != "playing":
            return None
        expected_version = session.version
        session.finish("timeout", self._clock())
        try:
            session = await self.sessions.save(session, expected_version=expected_version)
        except GameError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to time out session: {e}") from e
        logger.info("Round %s timed out with %d correct", session_id, session.correct_count())
        return self.game_result(session)

    def game_result(self, session: GameSession) -> GameResult:
        correct = session.scored_correct_count()
        time_bonus = 0
        if session.status == "completed":
            remaining = config.GAME_TIME_LIMIT - int(session.finished_at - session.started_at)
            time_bonus = max(0, remaining) * config.SCORE_PER_SECOND
        return GameResult(
            success=session.status == "completed",
            total_score=correct * config.SCORE_PER_ANSWER + time_bonus,
            time_bonus=time_bonus,
            correct_answers=correct,
        )


game_service = GameService(session_store, question_repository)
