"""
Async WebSocket integration tests using a real uvicorn server.

Covers what the sync TestClient can't:
- Round timer expiry broadcasting gameOver
- HTTP-started rounds reaching sockets in the room
- Abruptly dropped sockets being reclaimed from the connection store

Requires: pytest-asyncio, httpx, websockets
"""
import sys
import os
import json
import asyncio

import pytest
import pytest_asyncio
import httpx
import websockets

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import uvicorn
from main import app
from connection_store import connection_store
from message_router import message_router
from models import Question
from question_repository import question_repository
from ranking import ranking_board
from session_store import session_store
from socket_manager import socket_manager


# ---------------------------------------------------------------------------
# Fixtures & helpers
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def server_port():
    """Start a real uvicorn server on a random port, yield the port, shut down."""
    # Clear state
    connection_store.clear()
    session_store.clear()
    ranking_board.clear()
    question_repository.clear()
    question_repository.register(Question(
        id="q1",
        question="日本の都市を答えよ",
        answers=["東京", "Tokyo", "大阪", "京都", "名古屋"],
        category="geography",
        difficulty="easy",
    ))
    saved_origins = socket_manager.allowed_origins
    socket_manager.allowed_origins = []
    saved_delay = message_router.timer.delay
    message_router.timer.delay = 0.5

    config = uvicorn.Config(app, host="127.0.0.1", port=0, log_level="warning")
    server = uvicorn.Server(config)
    serve_task = asyncio.create_task(server.serve())

    # Wait for server to start
    while not server.started:
        await asyncio.sleep(0.01)

    # Extract the OS-assigned port
    port = server.servers[0].sockets[0].getsockname()[1]
    yield port

    # Teardown
    server.should_exit = True
    await serve_task
    connection_store.clear()
    session_store.clear()
    ranking_board.clear()
    question_repository.clear()
    socket_manager.allowed_origins = saved_origins
    message_router.timer.delay = saved_delay


def ws_url(port, player_id, room_id="ROOM01"):
    return f"ws://127.0.0.1:{port}/ws?playerId={player_id}&roomId={room_id}"


async def send_json(ws, msg_type, **payload):
    await ws.send(json.dumps({"type": msg_type, "payload": payload}))


async def recv_until(ws, msg_type, timeout=10.0, max_messages=100):
    """Drain messages until we get the expected type, with timeout."""
    deadline = asyncio.get_event_loop().time() + timeout
    for _ in range(max_messages):
        remaining = deadline - asyncio.get_event_loop().time()
        if remaining <= 0:
            raise TimeoutError(f"Never received {msg_type} within {timeout}s")
        data = await asyncio.wait_for(ws.recv(), timeout=remaining)
        msg = json.loads(data)
        if msg.get("type") == msg_type:
            return msg
    raise TimeoutError(f"Never received {msg_type} after {max_messages} messages")


async def wait_for_connections(room_id, count, timeout=5.0):
    deadline = asyncio.get_event_loop().time() + timeout
    while asyncio.get_event_loop().time() < deadline:
        if len(await connection_store.list_by_room(room_id)) == count:
            return
        await asyncio.sleep(0.02)
    raise TimeoutError(f"Room {room_id} never reached {count} connection(s)")


# ---------------------------------------------------------------------------
# Timer Expiry
# ---------------------------------------------------------------------------

class TestTimerExpiry:
    @pytest.mark.asyncio
    async def test_unanswered_round_times_out(self, server_port):
        async with websockets.connect(ws_url(server_port, "p1")) as ws1, \
                websockets.connect(ws_url(server_port, "p2")) as ws2:
            await wait_for_connections("ROOM01", 2)
            await send_json(ws1, "startGame", questionId="q1")
            start = await recv_until(ws1, "questionStart")
            await recv_until(ws2, "questionStart")

            for ws in (ws1, ws2):
                game_over = await recv_until(ws, "gameOver", timeout=5)
                assert game_over["payload"]["success"] is False
                assert game_over["payload"]["timeBonus"] == 0

            session = await session_store.get(start["payload"]["sessionId"])
            assert session.status == "timeout"

    @pytest.mark.asyncio
    async def test_partial_round_scores_correct_answers(self, server_port):
        async with websockets.connect(ws_url(server_port, "p1")) as ws:
            await wait_for_connections("ROOM01", 1)
            await send_json(ws, "startGame", questionId="q1")
            sid = (await recv_until(ws, "questionStart"))["payload"]["sessionId"]
            await send_json(ws, "submitAnswer", sessionId=sid, playerId="p1", answer="とうきょう")
            await recv_until(ws, "answerResult")
            game_over = await recv_until(ws, "gameOver", timeout=5)
            assert game_over["payload"]["totalScore"] == 10
            ranking = await recv_until(ws, "rankingUpdate")
            assert ranking["payload"]["rankings"][0]["score"] == 10


# ---------------------------------------------------------------------------
# HTTP-started rounds
# ---------------------------------------------------------------------------

class TestHttpStart:
    @pytest.mark.asyncio
    async def test_http_start_reaches_room(self, server_port):
        async with websockets.connect(ws_url(server_port, "p1")) as ws:
            await wait_for_connections("ROOM01", 1)
            async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{server_port}") as http:
                res = await http.post("/rooms/ROOM01/sessions", json={"questionId": "q1"})
                assert res.status_code == 200
            start = await recv_until(ws, "questionStart")
            assert start["payload"]["sessionId"] == res.json()["sessionId"]
            assert "answers" not in start["payload"]


# ---------------------------------------------------------------------------
# Connection cleanup
# ---------------------------------------------------------------------------

class TestConnectionCleanup:
    @pytest.mark.asyncio
    async def test_closed_socket_removed(self, server_port):
        async with websockets.connect(ws_url(server_port, "p1")) as ws1:
            ws2 = await websockets.connect(ws_url(server_port, "p2"))
            await wait_for_connections("ROOM01", 2)
            await ws2.close()
            await wait_for_connections("ROOM01", 1)

            await send_json(ws1, "startGame", questionId="q1")
            start = await recv_until(ws1, "questionStart")
            assert start["payload"]["questionId"] == "q1"
