from sqlalchemy import Column, Integer, String, BigInteger, ForeignKey, DateTime, JSON
from models.base import Base, TimestampMixin

class QuizSession(Base, TimestampMixin):
    __tablename__ = "quiz_sessions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), index=True, nullable=False)
    quiz_title = Column(String(255), nullable=True)
    teacher_id = Column(BigInteger, index=True, nullable=False)
    organization_id = Column(BigInteger, index=True, nullable=False)

    session_code = Column(String(16), unique=True, index=True, nullable=False)
    status = Column(String(20), default="scheduled", index=True, nullable=False)

    scheduled_start_time = Column(DateTime(timezone=True), nullable=False)
    actual_start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration = Column(Integer, default=30, nullable=False)  # minutes
    max_participants = Column(Integer, default=100, nullable=False)

    # Session document: SessionSettings, Participant list, LeaderboardEntry list
    settings = Column(JSON, nullable=True)
    participants = Column(JSON, nullable=False, default=list)
    leaderboard = Column(JSON, nullable=False, default=list)
