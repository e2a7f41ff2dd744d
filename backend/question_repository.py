"""Read-only question lookup backed by a directory or by object storage."""
import asyncio
import json
import logging
import os
import re
from typing import Dict, Optional

import pydantic
import requests

import config
from errors import ParseError, QuestionNotFound, StoreConnectionError
from models import Question

logger = logging.getLogger(__name__)

_QUESTION_ID_RE = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


def parse_question(raw: str, question_id: str) -> Question:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse question JSON: {e}")
    try:
        return Question.model_validate(data)
    except pydantic.ValidationError as e:
        logger.warning("Question %s failed validation: %s", question_id, e)
        raise ParseError(f"Invalid question data: {question_id}")


class QuestionRepository:
    """Caches parsed questions; subclasses implement ``_fetch``."""

    def __init__(self):
        self._cache: Dict[str, Question] = {}

    def register(self, question: Question):
        """Seed a question directly (local play and tests)."""
        self._cache[question.id] = question

    def clear(self):
        self._cache.clear()

    async def get_question_by_id(self, question_id: str) -> Question:
        cached = self._cache.get(question_id)
        if cached is not None:
            return cached
        if not _QUESTION_ID_RE.match(question_id or ""):
            raise QuestionNotFound(f"Question not found: {question_id}")
        raw = await self._fetch(question_id)
        question = parse_question(raw, question_id)
        self._cache[question_id] = question
        return question

    async def _fetch(self, question_id: str) -> str:
        raise QuestionNotFound(f"Question not found: {question_id}")


class FileQuestionRepository(QuestionRepository):
    def __init__(self, directory: str = config.QUESTIONS_DIR):
        super().__init__()
        self.directory = directory

    async def _fetch(self, question_id: str) -> str:
        path = os.path.join(self.directory, f"{question_id}.json")
        try:
            with open(path, encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            raise QuestionNotFound(f"Question not found: {question_id}")
        except OSError as e:
            raise StoreConnectionError(f"Failed to read question {question_id}: {e}")


class HttpQuestionRepository(QuestionRepository):
    """Fetches ``<base_url>/questions/<id>.json`` from object storage."""

    def __init__(self, base_url: str, timeout: int = config.QUESTION_FETCH_TIMEOUT):
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, question_id: str) -> str:
        url = f"{self.base_url}/questions/{question_id}.json"
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("HTTP error fetching question %s: %s", question_id, e)
            raise StoreConnectionError(f"Question storage unavailable: {e}")
        # Buckets without list permission answer 403 for missing keys
        if response.status_code in (403, 404):
            raise QuestionNotFound(f"Question not found: {question_id}")
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise StoreConnectionError(f"Question storage error: {e}")
        return response.text

    async def _fetch(self, question_id: str) -> str:
        return await asyncio.to_thread(self._get, question_id)


def create_question_repository(base_url: Optional[str] = None) -> QuestionRepository:
    base_url = config.QUESTIONS_BASE_URL if base_url is None else base_url
    if base_url:
        logger.info("Loading questions from %s", base_url)
        return HttpQuestionRepository(base_url)
    logger.info("Loading questions from directory %s", config.QUESTIONS_DIR)
    return FileQuestionRepository(config.QUESTIONS_DIR)


question_repository = create_question_repository()
