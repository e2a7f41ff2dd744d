"""Inbound protocol envelopes -> game operations -> outbound envelopes.

Inbound messages form a closed union keyed on ``type``. Anything outside
it gets an explicit "unknown type" error, and no failure ever escapes past
``route``: every problem becomes an ``error`` envelope.
"""
import json
import logging
from typing import Annotated, Literal, Optional, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

import config
from broadcaster import Broadcaster, broadcaster as default_broadcaster
from errors import GameError, ParseError, UnknownMessageType, ValidationError
from game_service import GameService, game_service as default_game_service
from models import Connection, GameSession
from ranking import RankingBoard, ranking_board as default_ranking_board
from round_timer import RoundTimer

logger = logging.getLogger(__name__)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SubmitAnswerPayload(_Payload):
    session_id: str = Field(alias="sessionId", min_length=1)
    player_id: str = Field(alias="playerId", min_length=1)
    answer: str


class SyncGameStatePayload(_Payload):
    session_id: str = Field(alias="sessionId", min_length=1)


class StartGamePayload(_Payload):
    question_id: str = Field(alias="questionId", min_length=1)
    team_name: str = Field(default="", alias="teamName", max_length=config.MAX_TEAM_NAME_LENGTH)


class SubmitAnswerMessage(BaseModel):
    type: Literal["submitAnswer"]
    payload: SubmitAnswerPayload


class SyncGameStateMessage(BaseModel):
    type: Literal["syncGameState"]
    payload: SyncGameStatePayload


class StartGameMessage(BaseModel):
    type: Literal["startGame"]
    payload: StartGamePayload


InboundMessage = Annotated[
    Union[SubmitAnswerMessage, SyncGameStateMessage, StartGameMessage],
    Field(discriminator="type"),
]
_inbound_adapter = TypeAdapter(InboundMessage)
MESSAGE_TYPES = ("submitAnswer", "syncGameState", "startGame")


def envelope(msg_type: str, payload: dict) -> dict:
    return {"type": msg_type, "payload": payload}


def error_envelope(message: str, code: Optional[str] = None) -> dict:
    payload = {"message": message}
    if code is not None:
        payload["code"] = code
    return envelope("error", payload)


def _describe(error: pydantic.ValidationError) -> str:
    fields = []
    for err in error.errors():
        loc = [str(p) for p in err["loc"] if p != "payload" and p not in MESSAGE_TYPES]
        fields.append(".".join(loc) or "payload")
    return ", ".join(dict.fromkeys(fields))


def parse_message(raw: str):
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        raise ParseError("Invalid JSON format")
    if not isinstance(data, dict):
        raise ParseError("Message must be a JSON object")
    msg_type = data.get("type")
    if msg_type not in MESSAGE_TYPES:
        raise UnknownMessageType(msg_type)
    if not isinstance(data.get("payload"), dict):
        raise ValidationError(f"Invalid {msg_type} payload: payload must be an object")
    try:
        return _inbound_adapter.validate_python(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {msg_type} payload: {_describe(e)}")


class MessageRouter:
    def __init__(self, engine: GameService, broadcaster: Broadcaster,
                 rankings: RankingBoard, time_limit: float = config.GAME_TIME_LIMIT):
        self.engine = engine
        self.broadcaster = broadcaster
        self.rankings = rankings
        self.timer = RoundTimer(self.on_round_timeout, delay=time_limit)

    async def route(self, connection: Connection, raw: str) -> Optional[dict]:
        """Handle one inbound message; returns the direct reply, if any."""
        try:
            message = parse_message(raw)
            if isinstance(message, SubmitAnswerMessage):
                return await self.handle_submit_answer(connection, message.payload)
            elif isinstance(message, SyncGameStateMessage):
                return await self.handle_sync_game_state(message.payload)
            elif isinstance(message, StartGameMessage):
                return await self.handle_start_game(connection, message.payload)
            else:
                raise UnknownMessageType(getattr(message, "type", None))
        except GameError as e:
            logger.warning("Rejected message from %s: %s", connection.connection_id, e.message)
            return error_envelope(e.message, e.code)
        except Exception:
            logger.exception("Internal error handling message from %s", connection.connection_id)
            return error_envelope("Internal server error", "500")

    async def start_round(self, room_id: str, question_id: str, team_name: str = "") -> GameSession:
        session, question = await self.engine.start_game(room_id, question_id, team_name)
        payload = question.to_wire()
        payload["sessionId"] = session.session_id
        await self.broadcaster.broadcast_to_room(room_id, envelope("questionStart", payload))
        self.timer.start(session.session_id)
        return session

    async def handle_start_game(self, connection: Connection, payload: StartGamePayload) -> Optional[dict]:
        # The questionStart broadcast reaches the sender too.
        await self.start_round(connection.room_id, payload.question_id, payload.team_name)
        return None

    async def handle_submit_answer(self, connection: Connection, payload: SubmitAnswerPayload) -> dict:
        session = await self.engine.get_session(payload.session_id)
        if session.room_id != connection.room_id:
            raise ValidationError(f"Session {payload.session_id} does not belong to room {connection.room_id}")
        result = await self.engine.submit_answer(payload.session_id, payload.player_id, payload.answer)
        reply = envelope("answerResult", {
            "correct": result.correct,
            "score": result.score,
            "nextTurn": result.next_turn,
        })
        await self.broadcaster.broadcast_to_room(session.room_id, envelope("answerResult", {
            **reply["payload"],
            "playerId": payload.player_id,
        }))
        if result.game_completed:
            session = await self.engine.get_session(payload.session_id)
            await self.finish_round(session)
        return reply

    async def handle_sync_game_state(self, payload: SyncGameStatePayload) -> dict:
        session = await self.engine.get_session(payload.session_id)
        if session.status != "playing":
            return self._game_over(session)
        question = await self.engine.get_question_payload(session)
        state = question.to_wire()
        state["sessionId"] = session.session_id
        state["currentTurn"] = session.current_turn
        return envelope("questionStart", state)

    def _game_over(self, session: GameSession) -> dict:
        result = self.engine.game_result(session)
        return envelope("gameOver", result.to_wire())

    async def finish_round(self, session: GameSession):
        self.timer.cancel(session.session_id)
        result = self.engine.game_result(session)
        self.rankings.record(session.room_id, session.team_name, result.total_score)
        await self.broadcaster.broadcast_to_room(session.room_id, self._game_over(session))
        rankings = [entry.to_wire() for entry in self.rankings.rankings()]
        await self.broadcaster.broadcast_to_room(session.room_id, envelope("rankingUpdate", {"rankings": rankings}))

    async def on_round_timeout(self, session_id: str):
        if await self.engine.timeout(session_id) is None:
            return
        session = await self.engine.get_session(session_id)
        await self.finish_round(session)


message_router = MessageRouter(default_game_service, default_broadcaster, default_ranking_board)
