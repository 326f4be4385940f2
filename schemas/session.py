from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so comparisons never mix naive and aware values."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    WAITING = "waiting"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipantStatus(str, Enum):
    WAITING = "waiting"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ABSENT = "absent"


class SessionSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    allow_late_join: bool = False
    show_live_leaderboard: bool = True
    randomize_questions: bool = False
    show_results_immediately: bool = True


class ParticipantAnswer(BaseModel):
    question_index: int = Field(..., ge=0)
    selected_answer: str
    is_correct: bool
    answered_at: datetime

    @field_validator("answered_at")
    @classmethod
    def normalize_timestamps(cls, value):
        return as_utc(value)


class Participant(BaseModel):
    student_id: int
    student_name: str
    status: ParticipantStatus = ParticipantStatus.WAITING
    joined_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    answers: List[ParticipantAnswer] = Field(default_factory=list)
    current_question: int = 0
    correct_answers: int = 0
    total_answers: int = 0
    accuracy: float = 0.0
    score: int = 0
    time_taken: int = Field(0, description="Seconds between start and completion")

    @field_validator("joined_at", "started_at", "completed_at", "last_activity")
    @classmethod
    def normalize_timestamps(cls, value):
        return as_utc(value)


class ProgressDelta(BaseModel):
    """Fields a progress update is allowed to overwrite on a participant."""
    model_config = ConfigDict(extra="forbid")

    status: Optional[ParticipantStatus] = None
    current_question: Optional[int] = Field(None, ge=0)
    score: Optional[int] = None
    correct_answers: Optional[int] = Field(None, ge=0)
    total_answers: Optional[int] = Field(None, ge=0)
    accuracy: Optional[float] = Field(None, ge=0, le=100)
    time_taken: Optional[int] = Field(None, ge=0)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_validator("started_at", "completed_at")
    @classmethod
    def normalize_timestamps(cls, value):
        return as_utc(value)


class LeaderboardEntry(BaseModel):
    rank: int
    student_id: int
    student_name: str
    score: int
    correct_answers: int
    time_taken: int
    accuracy: float
