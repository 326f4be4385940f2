"""
Pytest configuration and fixtures for quizdesk tests.
"""
import sys
import os
from datetime import datetime, timedelta, timezone
import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

from schemas.quiz import Question
from schemas.session import ParticipantStatus
from services.session_machine import SessionState

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_state():
    """Factory for sessions scheduled ten minutes after ``NOW``."""
    def _make(**overrides):
        data = {
            "session_code": "ABC234",
            "scheduled_start_time": NOW + timedelta(minutes=10),
            "duration": 30,
            "max_participants": 3,
        }
        data.update(overrides)
        return SessionState(**data)
    return _make


@pytest.fixture
def completed_participant():
    def _make(student_id, score, time_taken):
        return {
            "student_id": student_id,
            "student_name": f"Student {student_id}",
            "status": ParticipantStatus.COMPLETED,
            "score": score,
            "correct_answers": score,
            "total_answers": score,
            "time_taken": time_taken,
        }
    return _make


@pytest.fixture
def sample_questions():
    """Sample quiz questions for testing"""
    return [
        Question(text="What is the capital of France?", options=["Paris", "London", "Berlin", "Rome"],
                 correct_answer="Paris", points=2),
        Question(text="What is 2+2?", options=["3", "4", "5", "6"], correct_answer="4"),
    ]


@pytest.fixture
def multiline_text():
    """Numbered questions with options on their own lines"""
    return "\n".join([
        "1. What is the largest planet?",
        "a) Earth",
        "b) Mars",
        "c) Jupiter",
        "d) Saturn",
        "2. What is H2O",
        "commonly called?",
        "a) Water",
        "b) Salt",
        "c) Sugar",
    ])


@pytest.fixture
def flexible_text():
    """Numbered questions whose options carry no markers"""
    return "\n".join([
        "1.",
        "Which ocean is the largest?",
        "Pacific Ocean",
        "Atlantic Ocean",
        "Indian Ocean",
        "Arctic Ocean",
        "2.",
        "Which planet is known as the red planet?",
        "Mars planet",
        "Venus planet",
        "Jupiter planet",
        "Mercury planet",
    ])
