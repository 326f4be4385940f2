import json
from datetime import datetime
from typing import Callable, List, Mapping, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from redis.asyncio import Redis
from models.quiz import Quiz
from models.session import QuizSession
from schemas.quiz import Question
from schemas.session import (
    LeaderboardEntry,
    Participant,
    ParticipantAnswer,
    ProgressDelta,
    SessionSettings,
    SessionStatus,
)
from services.session_machine import SessionState, generate_session_code
from core.exceptions import QuizNotFound, SessionCodeUnavailable, SessionNotFound
from core.config import settings
from core.logger import logger

LEADERBOARD_CACHE_KEY = "quizdesk:leaderboard:{session_id}"


class SessionService:
    """Persists competitive sessions and applies state transitions atomically.

    Every mutation locks the session row (``SELECT ... FOR UPDATE``), hydrates a
    ``SessionState``, runs one transition and writes the document back, so
    concurrent answers from different participants never overwrite each other.
    """

    def __init__(self, db: AsyncSession, redis: Redis = None):
        self.db = db
        self.redis = redis

    # Document mapping

    @staticmethod
    def _to_state(session: QuizSession) -> SessionState:
        return SessionState(
            session_code=session.session_code,
            status=SessionStatus(session.status),
            scheduled_start_time=session.scheduled_start_time,
            actual_start_time=session.actual_start_time,
            end_time=session.end_time,
            duration=session.duration,
            max_participants=session.max_participants,
            settings=session.settings or {},
            participants=session.participants or [],
            leaderboard=session.leaderboard or [],
        )

    @staticmethod
    def _store_state(session: QuizSession, state: SessionState):
        document = state.model_dump(mode="json", include={"settings", "participants", "leaderboard"})
        session.status = state.status.value
        session.actual_start_time = state.actual_start_time
        session.end_time = state.end_time
        # Reassign JSON columns so SQLAlchemy flags them dirty
        session.settings = document["settings"]
        session.participants = document["participants"]
        session.leaderboard = document["leaderboard"]

    async def _load(self, session_id: int, organization_id: int = None, for_update: bool = False) -> QuizSession:
        query = select(QuizSession).filter(QuizSession.id == session_id)
        if organization_id is not None:
            query = query.filter(QuizSession.organization_id == organization_id)
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        session = result.scalar_one_or_none()
        if not session:
            raise SessionNotFound(session_id=session_id)
        return session

    async def _apply(self, session: QuizSession, operation: Callable[[SessionState], object]):
        state = self._to_state(session)
        try:
            outcome = operation(state)
        except Exception:
            # Release the row lock before surfacing the rejection
            await self.db.rollback()
            raise

        self._store_state(session, state)
        await self.db.commit()
        # Overwrite rather than delete so a reader holding an older row cannot refill stale data
        await self._cache_leaderboard(session.id, self._leaderboard_payload(state))
        return outcome

    async def _mutate(self, session_id: int, operation: Callable[[SessionState], object],
                      organization_id: int = None):
        session = await self._load(session_id, organization_id, for_update=True)
        return await self._apply(session, operation)

    # Lifecycle

    async def create_session(self, quiz_id: int, organization_id: int, teacher_id: int,
                             scheduled_start_time: datetime, duration: int = None,
                             max_participants: int = None, session_settings: Mapping = None) -> QuizSession:
        result = await self.db.execute(
            select(Quiz).filter(
                Quiz.id == quiz_id,
                Quiz.organization_id == organization_id,
                Quiz.is_approved == True,
            )
        )
        quiz = result.scalar_one_or_none()
        if not quiz:
            raise QuizNotFound(quiz_id=quiz_id)

        session_code = await self._allocate_session_code()
        state = SessionState(
            session_code=session_code,
            scheduled_start_time=scheduled_start_time,
            duration=duration or settings.DEFAULT_SESSION_DURATION_MINUTES,
            max_participants=max_participants or settings.DEFAULT_MAX_PARTICIPANTS,
            settings=SessionSettings.model_validate(session_settings or {}),
        )

        session = QuizSession(
            quiz_id=quiz.id,
            quiz_title=quiz.title,
            teacher_id=teacher_id,
            organization_id=organization_id,
            session_code=state.session_code,
            status=state.status.value,
            scheduled_start_time=state.scheduled_start_time,
            duration=state.duration,
            max_participants=state.max_participants,
            settings=state.settings.model_dump(mode="json"),
            participants=[],
            leaderboard=[],
        )
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)
        logger.info("Quiz session created", session_id=session.id, quiz_id=quiz_id,
                    teacher_id=teacher_id, session_code=session_code)
        return session

    async def _allocate_session_code(self) -> str:
        for attempt in range(1, settings.SESSION_CODE_MAX_ATTEMPTS + 1):
            code = generate_session_code()
            result = await self.db.execute(select(QuizSession.id).filter(QuizSession.session_code == code))
            if result.scalar_one_or_none() is None:
                return code
            logger.debug("Session code collision", attempt=attempt)
        logger.error("Could not allocate a session code", attempts=settings.SESSION_CODE_MAX_ATTEMPTS)
        raise SessionCodeUnavailable()

    async def get_session(self, session_id: int, organization_id: int = None) -> QuizSession:
        return await self._load(session_id, organization_id)

    async def get_session_by_code(self, session_code: str) -> QuizSession:
        code = (session_code or "").strip().upper()
        result = await self.db.execute(select(QuizSession).filter(QuizSession.session_code == code))
        session = result.scalar_one_or_none()
        if not session:
            raise SessionNotFound(session_code=code)
        return session

    async def get_state(self, session_id: int, organization_id: int = None) -> SessionState:
        return self._to_state(await self._load(session_id, organization_id))

    async def get_teacher_sessions(self, teacher_id: int, organization_id: int, status: SessionStatus = None):
        query = select(QuizSession).filter(
            QuizSession.teacher_id == teacher_id,
            QuizSession.organization_id == organization_id,
        )
        if status is not None:
            query = query.filter(QuizSession.status == SessionStatus(status).value)
        result = await self.db.execute(query.order_by(QuizSession.scheduled_start_time.desc()))
        return result.scalars().all()

    async def open_lobby(self, session_id: int, organization_id: int = None):
        await self._mutate(session_id, lambda state: state.open_lobby(), organization_id)
        logger.info("Session lobby opened", session_id=session_id)

    async def start(self, session_id: int, organization_id: int = None, now: datetime = None):
        await self._mutate(session_id, lambda state: state.start(now), organization_id)
        logger.info("Quiz session started", session_id=session_id)

    async def end_session(self, session_id: int, organization_id: int = None, now: datetime = None) -> List[LeaderboardEntry]:
        def end(state: SessionState):
            state.end(now)
            return state.leaderboard

        leaderboard = await self._mutate(session_id, end, organization_id)
        logger.info("Quiz session ended", session_id=session_id, ranked=len(leaderboard))
        return leaderboard

    async def cancel_session(self, session_id: int, organization_id: int = None, now: datetime = None):
        await self._mutate(session_id, lambda state: state.cancel(now), organization_id)
        logger.info("Quiz session cancelled", session_id=session_id)

    # Participants

    async def join(self, session_id: int, student_id: int, student_name: str,
                   organization_id: int = None, now: datetime = None) -> Participant:
        participant = await self._mutate(
            session_id, lambda state: state.add_participant(student_id, student_name, now), organization_id
        )
        logger.info("Participant joined", session_id=session_id, student_id=student_id,
                    status=participant.status.value)
        return participant

    async def submit_answer(self, session_id: int, student_id: int, question_index: int,
                            selected_answer: str, now: datetime = None) -> ParticipantAnswer:
        session = await self._load(session_id, for_update=True)
        questions = await self._questions_for(session)

        answer = await self._apply(
            session,
            lambda state: state.submit_answer(student_id, question_index, selected_answer, questions, now),
        )
        logger.debug("Answer recorded", session_id=session_id, student_id=student_id,
                     question_index=question_index, is_correct=answer.is_correct)
        return answer

    async def _questions_for(self, session: QuizSession) -> List[Question]:
        result = await self.db.execute(select(Quiz).filter(Quiz.id == session.quiz_id))
        quiz = result.scalar_one_or_none()
        if not quiz:
            await self.db.rollback()
            raise QuizNotFound(quiz_id=session.quiz_id)
        return [Question.model_validate(q) for q in quiz.questions_json or []]

    async def update_progress(self, session_id: int, student_id: int,
                              delta: Union[ProgressDelta, Mapping], now: datetime = None) -> Participant:
        return await self._mutate(
            session_id, lambda state: state.update_participant_progress(student_id, delta, now)
        )

    async def complete(self, session_id: int, student_id: int, now: datetime = None) -> Participant:
        participant = await self._mutate(session_id, lambda state: state.complete(student_id, now))
        logger.info("Participant completed", session_id=session_id, student_id=student_id,
                    score=participant.score, time_taken=participant.time_taken)
        return participant

    # Leaderboard

    async def get_leaderboard(self, session_id: int, include_hidden: bool = False) -> List[LeaderboardEntry]:
        """Ranked completed participants.

        While a session is running with ``show_live_leaderboard`` off, only
        callers passing ``include_hidden`` (the teacher) see the ranking.
        """
        payload = await self._cached_leaderboard(session_id)
        if payload is None:
            payload = self._leaderboard_payload(await self.get_state(session_id))
            await self._cache_leaderboard(session_id, payload, only_if_missing=True)

        if not payload["visible"] and not include_hidden:
            return []
        return [LeaderboardEntry.model_validate(entry) for entry in payload["entries"]]

    async def _cached_leaderboard(self, session_id: int) -> Optional[dict]:
        if not self.redis:
            return None
        raw = await self.redis.get(LEADERBOARD_CACHE_KEY.format(session_id=session_id))
        return json.loads(raw) if raw else None

    @staticmethod
    def _leaderboard_payload(state: SessionState) -> dict:
        return {
            "visible": state.status == SessionStatus.COMPLETED or state.settings.show_live_leaderboard,
            "entries": [entry.model_dump(mode="json") for entry in state.leaderboard],
        }

    async def _cache_leaderboard(self, session_id: int, payload: dict, only_if_missing: bool = False):
        """Store the payload. Lazy fills pass ``only_if_missing`` so they never replace a post-commit write."""
        if not self.redis:
            return
        await self.redis.set(
            LEADERBOARD_CACHE_KEY.format(session_id=session_id),
            json.dumps(payload),
            ex=settings.LEADERBOARD_CACHE_TTL_SECONDS,
            nx=only_if_missing,
        )

    # Expiry

    async def close_expired_sessions(self, now: datetime = None) -> int:
        """End every in-progress session whose duration has elapsed."""
        result = await self.db.execute(
            select(QuizSession.id).filter(QuizSession.status == SessionStatus.IN_PROGRESS.value)
        )
        session_ids = result.scalars().all()

        closed = 0
        for session_id in session_ids:
            session = await self._load(session_id, for_update=True)
            if not self._to_state(session).is_expired(now):
                await self.db.rollback()
                continue
            await self._apply(session, lambda state: state.end(now))
            closed += 1
            logger.info("Expired session closed", session_id=session_id)
        return closed
