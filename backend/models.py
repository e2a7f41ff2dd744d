from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

import config

SessionStatus = Literal["playing", "completed", "timeout"]


class WireModel(BaseModel):
    """Snake-case attributes in Python, camelCase keys on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class Connection(WireModel):
    connection_id: str = Field(alias="connectionId")
    player_id: str = Field(alias="playerId")
    room_id: str = Field(alias="roomId")
    connected_at: float = Field(alias="connectedAt")
    expires_at: float = Field(default=0, alias="expiresAt")


class AnswerRecord(WireModel):
    player_id: str = Field(alias="playerId")
    answer: str
    is_correct: bool = Field(alias="isCorrect")
    timestamp: float


class GameSession(WireModel):
    session_id: str = Field(alias="sessionId")
    room_id: str = Field(alias="roomId")
    question_id: str = Field(alias="questionId")
    started_at: float = Field(alias="startedAt")
    current_turn: int = Field(default=0, alias="currentTurn")
    answers: List[AnswerRecord] = Field(default_factory=list)
    status: SessionStatus = "playing"
    team_name: str = Field(default="", alias="teamName")
    # Set by the write that ends the round; later entries never count.
    finished_at: Optional[float] = Field(default=None, alias="finishedAt")
    scored_answers: Optional[int] = Field(default=None, alias="scoredAnswers")
    version: int = 0

    def correct_count(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)

    def finish(self, status: SessionStatus, finished_at: float):
        self.status = status
        self.finished_at = finished_at
        self.scored_answers = len(self.answers)

    def scored_correct_count(self) -> int:
        """Correct entries logged up to the end of the round."""
        scored = self.answers if self.scored_answers is None else self.answers[:self.scored_answers]
        return sum(1 for a in scored if a.is_correct)


class Question(WireModel):
    id: str
    question: str
    answers: List[str]
    acceptable_variations: Dict[str, List[str]] = Field(default_factory=dict, alias="acceptableVariations")
    category: str = "general"
    difficulty: str = "medium"
    created_at: Optional[int] = Field(default=None, alias="createdAt")
    updated_at: Optional[int] = Field(default=None, alias="updatedAt")

    @field_validator('answers')
    @classmethod
    def validate_answers(cls, v: List[str]) -> List[str]:
        if len(v) < config.MIN_CANONICAL_ANSWERS:
            raise ValueError(f'Question must have at least {config.MIN_CANONICAL_ANSWERS} answers')
        return v

    @field_validator('difficulty')
    @classmethod
    def validate_difficulty(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in config.VALID_DIFFICULTIES:
            raise ValueError(f'Difficulty must be one of: {", ".join(config.VALID_DIFFICULTIES)}')
        return v

    def to_payload(self) -> "QuestionPayload":
        """Player-safe projection: never carries answers or variations."""
        return QuestionPayload(
            question_id=self.id,
            question_text=self.question,
            category=self.category,
            difficulty=self.difficulty,
        )


class QuestionPayload(WireModel):
    question_id: str = Field(alias="questionId")
    question_text: str = Field(alias="questionText")
    category: str
    difficulty: str


class AnswerResult(WireModel):
    correct: bool
    score: int
    next_turn: int = Field(alias="nextTurn")
    game_completed: bool = Field(alias="gameCompleted")


class GameResult(WireModel):
    success: bool
    total_score: int = Field(alias="totalScore")
    time_bonus: int = Field(alias="timeBonus")
    correct_answers: int = Field(alias="correctAnswers")


class RankingEntry(WireModel):
    room_id: str = Field(alias="roomId")
    team_name: str = Field(alias="teamName")
    score: int
    rank: int
