from sqlalchemy import Column, Integer, String, Text, JSON, Boolean, BigInteger
from models.base import Base, TimestampMixin

class Quiz(Base, TimestampMixin):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(BigInteger, index=True, nullable=False)
    created_by = Column(BigInteger, index=True, nullable=False)
    created_by_name = Column(String(255), nullable=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    grade_level = Column(String(50), nullable=True)
    subjects = Column(JSON, nullable=True)
    language = Column(String(20), default="English", nullable=False)

    # List of Question dicts (text, options, correct_answer, points, type)
    questions_json = Column(JSON, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
