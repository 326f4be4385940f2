from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator


OPTION_COUNT = 4


class Language(str, Enum):
    ENGLISH = "English"
    SPANISH = "Spanish"
    FRENCH = "French"
    KANNADA = "Kannada"


class Question(BaseModel):
    """A multiple-choice question as stored in ``Quiz.questions_json``."""
    text: str = Field("", description="The question prompt")
    options: List[str] = Field(default_factory=list, description="Answer options, normalized to exactly 4")
    correct_answer: str = Field("", description="Text of the correct option")
    points: int = Field(1, ge=0)
    type: str = "multiple-choice"


class AnswerKeyEntry(BaseModel):
    """One ``question number -> letter`` line of an answer-key document."""
    question_number: int = Field(..., ge=1)
    answer_letter: str = Field(..., min_length=1, max_length=1)

    @field_validator("answer_letter")
    @classmethod
    def uppercase_letter(cls, value: str) -> str:
        return value.upper()

    @property
    def option_index(self) -> int:
        return ord(self.answer_letter) - ord("A")
