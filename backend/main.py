from fastapi import FastAPI, WebSocket, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, field_validator
from contextlib import asynccontextmanager
import re
import uvicorn
import logging

import config
config.setup_logging()

from connection_store import connection_store
from errors import GameError, NotFoundError
from game_service import game_service
from message_router import message_router
from ranking import ranking_board
from socket_manager import socket_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting quiz session backend")
    connection_store.start_cleanup_loop()
    yield
    logger.info("Shutting down quiz session backend")
    message_router.timer.cancel_all()
    await connection_store.stop_cleanup_loop()


app = FastAPI(title="Quiz Session Backend", lifespan=lifespan)


def _http_error(e: GameError) -> HTTPException:
    status = 404 if isinstance(e, NotFoundError) else int(e.code)
    return HTTPException(status_code=status, detail=e.message)


class StartSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(alias="questionId")
    team_name: str = Field(default="", alias="teamName")

    @field_validator('team_name')
    @classmethod
    def validate_team_name(cls, v: str) -> str:
        v = re.sub(r'<[^>]+>', '', v)
        v = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', v).strip()
        if len(v) > config.MAX_TEAM_NAME_LENGTH:
            raise ValueError(f'Team name must be at most {config.MAX_TEAM_NAME_LENGTH} characters')
        return v


@app.post("/rooms/{room_id}/sessions")
async def start_session(room_id: str, request: StartSessionRequest):
    try:
        session = await message_router.start_round(room_id, request.question_id, request.team_name)
    except GameError as e:
        raise _http_error(e)
    return {"sessionId": session.session_id, "session": session.to_wire()}


@app.get("/sessions/{session_id}")
async def get_session(session_id: str):
    try:
        session = await game_service.get_session(session_id)
    except GameError as e:
        raise _http_error(e)
    return session.to_wire()


@app.get("/rankings")
async def get_rankings():
    return {"rankings": [entry.to_wire() for entry in ranking_board.rankings()]}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket,
                             player_id: str = Query("", alias="playerId"),
                             room_id: str = Query("", alias="roomId")):
    await socket_manager.connect(websocket, player_id.strip(), room_id.strip())


# Configure CORS
if config.ALLOWED_ORIGINS.strip():
    origins = [o.strip() for o in config.ALLOWED_ORIGINS.split(",")]
    socket_manager.allowed_origins = origins
else:
    origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)


@app.get("/")
async def root():
    return {"message": "Quiz session API is running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    uvicorn.run("main:app", host=config.HOST, port=config.PORT, reload=True)
