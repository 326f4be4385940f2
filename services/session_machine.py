"""State machine for live, competitive quiz sessions.

Everything here is pure and in-memory: ``SessionService`` loads a session row
under a lock, hydrates a ``SessionState``, calls one transition and writes the
result back.
"""
import secrets
import string
from datetime import datetime, timedelta
from typing import ClassVar, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from constants.messages import Messages
from core.config import settings as config
from core.exceptions import (
    InvalidProgressUpdate,
    InvalidQuestionIndex,
    InvalidStateTransition,
    ParticipantNotFound,
    SessionFull,
)
from schemas.quiz import Question
from schemas.session import (
    LeaderboardEntry,
    Participant,
    ParticipantAnswer,
    ParticipantStatus,
    ProgressDelta,
    SessionSettings,
    SessionStatus,
    as_utc,
    utcnow,
)

FULL_ALPHABET = string.ascii_uppercase + string.digits
UNAMBIGUOUS_ALPHABET = "".join(c for c in FULL_ALPHABET if c not in "IO01")


def generate_session_code(length: int = None, exclude_ambiguous: bool = None) -> str:
    """Random join code. Callers must still check it against stored sessions."""
    length = length or config.SESSION_CODE_LENGTH
    if exclude_ambiguous is None:
        exclude_ambiguous = config.SESSION_CODE_EXCLUDE_AMBIGUOUS
    alphabet = UNAMBIGUOUS_ALPHABET if exclude_ambiguous else FULL_ALPHABET
    return "".join(secrets.choice(alphabet) for _ in range(length))


def apply_progress(participant: Participant, delta: ProgressDelta, now: datetime = None) -> Participant:
    """Return a copy of ``participant`` with the fields set on ``delta`` applied."""
    changes = delta.model_dump(exclude_unset=True, exclude_none=True)
    updated = participant.model_copy(update=changes, deep=True)
    updated.last_activity = as_utc(now) or utcnow()
    return updated


def compute_leaderboard(participants: Iterable[Participant]) -> List[LeaderboardEntry]:
    """Rank completed participants by score, faster time breaking ties."""
    completed = [p for p in participants if p.status == ParticipantStatus.COMPLETED]
    ranked = sorted(completed, key=lambda p: (-p.score, p.time_taken))
    return [
        LeaderboardEntry(
            rank=rank,
            student_id=p.student_id,
            student_name=p.student_name,
            score=p.score,
            correct_answers=p.correct_answers,
            time_taken=p.time_taken,
            accuracy=p.accuracy,
        )
        for rank, p in enumerate(ranked, 1)
    ]


def _elapsed_seconds(start: Optional[datetime], end: datetime) -> int:
    if start is None:
        return 0
    return max(0, int((end - as_utc(start)).total_seconds()))


class SessionState(BaseModel):
    """In-memory view of one ``QuizSession`` document."""

    EARLY_START: ClassVar[timedelta] = timedelta(minutes=config.SESSION_EARLY_START_MINUTES)

    session_code: str
    status: SessionStatus = SessionStatus.SCHEDULED
    scheduled_start_time: datetime
    actual_start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: int = Field(config.DEFAULT_SESSION_DURATION_MINUTES, ge=1, description="Minutes")
    max_participants: int = Field(config.DEFAULT_MAX_PARTICIPANTS, ge=1)
    settings: SessionSettings = Field(default_factory=SessionSettings)
    participants: List[Participant] = Field(default_factory=list)
    leaderboard: List[LeaderboardEntry] = Field(default_factory=list)

    @field_validator("scheduled_start_time", "actual_start_time", "end_time")
    @classmethod
    def normalize_timestamps(cls, value):
        return as_utc(value)

    @property
    def is_ended(self) -> bool:
        return self.status in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.actual_start_time is None:
            return None
        return self.actual_start_time + timedelta(minutes=self.duration)

    def is_expired(self, now: datetime = None) -> bool:
        now = as_utc(now) or utcnow()
        return self.status == SessionStatus.IN_PROGRESS and self.expires_at is not None and now >= self.expires_at

    # Participants

    def find_participant(self, student_id: int) -> Optional[Participant]:
        for participant in self.participants:
            if participant.student_id == student_id:
                return participant
        return None

    def _participant_index(self, student_id: int) -> int:
        for index, participant in enumerate(self.participants):
            if participant.student_id == student_id:
                return index
        raise ParticipantNotFound(student_id=student_id)

    def add_participant(self, student_id: int, student_name: str, now: datetime = None) -> Participant:
        """Join the session. Rejoining returns the existing record."""
        now = as_utc(now) or utcnow()

        existing = self.find_participant(student_id)
        if existing is not None:
            existing.last_activity = now
            return existing

        if self.is_ended:
            raise InvalidStateTransition(Messages.get("SESSION_ALREADY_ENDED"))
        late_join = self.status == SessionStatus.IN_PROGRESS
        if late_join and not self.settings.allow_late_join:
            raise InvalidStateTransition(Messages.get("SESSION_ALREADY_STARTED"))
        if len(self.participants) >= self.max_participants:
            raise SessionFull(max_participants=self.max_participants)

        participant = Participant(
            student_id=student_id,
            student_name=student_name,
            joined_at=now,
            last_activity=now,
        )
        if late_join:
            participant.status = ParticipantStatus.IN_PROGRESS
            participant.started_at = now

        self.participants.append(participant)
        return participant

    def update_participant_progress(self, student_id: int, delta: Union[ProgressDelta, Mapping],
                                    now: datetime = None) -> Participant:
        if not isinstance(delta, ProgressDelta):
            try:
                delta = ProgressDelta.model_validate(delta)
            except ValidationError as e:
                fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
                raise InvalidProgressUpdate(fields=fields or "progress") from e

        index = self._participant_index(student_id)
        updated = apply_progress(self.participants[index], delta, now)
        self.participants[index] = updated

        if delta.status is not None:
            self.update_leaderboard()
        return updated

    # Lifecycle

    def open_lobby(self):
        if self.status != SessionStatus.SCHEDULED:
            raise InvalidStateTransition(Messages.get("LOBBY_NOT_OPENABLE"))
        self.status = SessionStatus.WAITING

    def _within_start_window(self, now: datetime) -> bool:
        return now >= self.scheduled_start_time - self.EARLY_START

    def can_start(self, now: datetime = None) -> bool:
        now = as_utc(now) or utcnow()
        return self.status == SessionStatus.SCHEDULED and self._within_start_window(now)

    def start(self, now: datetime = None):
        now = as_utc(now) or utcnow()

        if self.status not in (SessionStatus.SCHEDULED, SessionStatus.WAITING):
            key = "SESSION_ALREADY_ENDED" if self.is_ended else "SESSION_ALREADY_STARTED"
            raise InvalidStateTransition(Messages.get(key))
        if not self._within_start_window(now):
            raise InvalidStateTransition(Messages.get("SESSION_NOT_STARTABLE_YET"))

        self.status = SessionStatus.IN_PROGRESS
        self.actual_start_time = now

        for participant in self.participants:
            if participant.status == ParticipantStatus.WAITING:
                participant.status = ParticipantStatus.IN_PROGRESS
                participant.started_at = now

    def submit_answer(self, student_id: int, question_index: int, selected_answer: str,
                      questions: Sequence[Question], now: datetime = None) -> ParticipantAnswer:
        """Record one answer and update the participant's counters."""
        now = as_utc(now) or utcnow()

        if self.status != SessionStatus.IN_PROGRESS:
            key = "SESSION_ALREADY_ENDED" if self.is_ended else "SESSION_NOT_IN_PROGRESS"
            raise InvalidStateTransition(Messages.get(key))

        participant = self.participants[self._participant_index(student_id)]
        if participant.status in (ParticipantStatus.COMPLETED, ParticipantStatus.ABSENT):
            raise InvalidStateTransition(Messages.get("PARTICIPANT_ALREADY_COMPLETED"))
        if not 0 <= question_index < len(questions):
            raise InvalidQuestionIndex(index=question_index)

        question = questions[question_index]
        is_correct = selected_answer == question.correct_answer

        answer = ParticipantAnswer(
            question_index=question_index,
            selected_answer=selected_answer,
            is_correct=is_correct,
            answered_at=now,
        )
        participant.answers.append(answer)
        participant.total_answers += 1
        if is_correct:
            participant.correct_answers += 1
            participant.score += question.points if question.points is not None else 1
        participant.accuracy = participant.correct_answers / participant.total_answers * 100
        participant.current_question = max(participant.current_question, question_index + 1)
        participant.last_activity = now
        return answer

    def complete(self, student_id: int, now: datetime = None) -> Participant:
        now = as_utc(now) or utcnow()
        participant = self.participants[self._participant_index(student_id)]
        if participant.status == ParticipantStatus.COMPLETED:
            return participant

        self._finish(participant, now)
        self.update_leaderboard()
        return participant

    @staticmethod
    def _finish(participant: Participant, now: datetime):
        participant.status = ParticipantStatus.COMPLETED
        participant.completed_at = now
        participant.last_activity = now
        if participant.started_at is not None:
            participant.time_taken = _elapsed_seconds(participant.started_at, now)

    def update_leaderboard(self) -> List[LeaderboardEntry]:
        self.leaderboard = compute_leaderboard(self.participants)
        return self.leaderboard

    def end(self, now: datetime = None):
        """Close the session, force-completing anyone still answering."""
        now = as_utc(now) or utcnow()

        if self.status != SessionStatus.IN_PROGRESS:
            key = "SESSION_ALREADY_ENDED" if self.is_ended else "SESSION_NOT_IN_PROGRESS"
            raise InvalidStateTransition(Messages.get(key))

        self.status = SessionStatus.COMPLETED
        self.end_time = now

        for participant in self.participants:
            if participant.status == ParticipantStatus.IN_PROGRESS:
                self._finish(participant, now)
            elif participant.status == ParticipantStatus.WAITING:
                participant.status = ParticipantStatus.ABSENT

        self.update_leaderboard()

    def cancel(self, now: datetime = None):
        if self.status not in (SessionStatus.SCHEDULED, SessionStatus.WAITING):
            raise InvalidStateTransition(Messages.get("SESSION_NOT_CANCELLABLE"))
        self.status = SessionStatus.CANCELLED
        self.end_time = as_utc(now) or utcnow()
