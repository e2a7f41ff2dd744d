"""Centralized configuration: all env vars in one place."""
import os
import logging
from dotenv import load_dotenv

load_dotenv()

# --- Server ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "")

# --- WebSocket Security ---
WS_RATE_LIMIT_PER_SEC = 10  # max messages per second per connection
MAX_WS_MESSAGE_SIZE = 4096  # bytes

# --- Connection lease ---
CONNECTION_TTL_SECONDS = int(os.getenv("CONNECTION_TTL_SECONDS", "3600"))
CONNECTION_REAP_INTERVAL = int(os.getenv("CONNECTION_REAP_INTERVAL", "60"))

# --- Game ---
REQUIRED_ANSWERS = 5
GAME_TIME_LIMIT = int(os.getenv("GAME_TIME_LIMIT", "30"))  # seconds
MIN_CANONICAL_ANSWERS = 5
VALID_DIFFICULTIES = ("easy", "medium", "hard")
MAX_TEAM_NAME_LENGTH = 30

# --- Scoring ---
SCORE_PER_ANSWER = 10
SCORE_PER_SECOND = 1  # time bonus per remaining second

# --- Rankings ---
MAX_RANKINGS = int(os.getenv("MAX_RANKINGS", "10"))

# --- Question source ---
QUESTIONS_DIR = os.getenv("QUESTIONS_DIR", "questions")
QUESTIONS_BASE_URL = os.getenv("QUESTIONS_BASE_URL", "")  # empty = use QUESTIONS_DIR
QUESTION_FETCH_TIMEOUT = int(os.getenv("QUESTION_FETCH_TIMEOUT", "10"))

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")  # empty = stdout only


def setup_logging():
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if LOG_FILE:
        handlers.append(logging.FileHandler(LOG_FILE))
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
