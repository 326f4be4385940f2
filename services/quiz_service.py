import asyncio
from typing import Optional, List, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from models.quiz import Quiz
from schemas.quiz import Language, Question
from constants.messages import Messages
from core.exceptions import ExtractionFailed, ParseEmptyResult, QuizNotFound
from core.logger import logger
from core.config import settings
from utils.extractor import extract_text
from utils.parser import (
    ensure_four_options,
    finalize_questions,
    merge_questions_with_answers,
    parse_answer_key,
    parse_questions,
)


def build_questions(question_text: str, answer_text: Optional[str] = None,
                    language=Language.ENGLISH, log=None) -> List[Question]:
    """Parse question paper text (and an optional answer key) into final questions.

    Raises ``ParseEmptyResult`` when no strategy recognizes any question.
    """
    log = log or logger
    questions = parse_questions(question_text, language, log=log)
    if not questions:
        raise ParseEmptyResult()

    if answer_text:
        answers = parse_answer_key(answer_text, log=log)
        questions = merge_questions_with_answers(questions, answers, log=log)

    questions = finalize_questions(questions)
    if len(questions) > settings.MAX_QUESTIONS_PER_QUIZ:
        log.warning("Question limit exceeded, truncating", parsed=len(questions), limit=settings.MAX_QUESTIONS_PER_QUIZ)
        questions = questions[:settings.MAX_QUESTIONS_PER_QUIZ]
    return questions


def _questions_payload(questions: Sequence[Question]) -> list:
    return [q.model_dump() for q in questions]


class QuizService:
    def __init__(self, db: AsyncSession, redis=None):
        self.db = db
        self.redis = redis

    async def create_quiz_from_documents(self, organization_id: int, teacher_id: int, teacher_name: str,
                                         title: str, question_file: bytes, question_filename: str,
                                         answer_file: bytes = None, answer_filename: str = None,
                                         language=Language.ENGLISH, description: str = None,
                                         grade_level: str = None, subjects: list = None) -> Quiz:
        """Extract, parse and store a quiz uploaded as a question paper plus optional answer key."""
        question_text = await asyncio.to_thread(extract_text, question_file, question_filename)
        if not question_text.strip():
            raise ExtractionFailed(Messages.get("TEXT_EMPTY"))

        answer_text = None
        if answer_file:
            answer_text = await asyncio.to_thread(extract_text, answer_file, answer_filename)

        questions = await asyncio.to_thread(build_questions, question_text, answer_text, Language(language))
        logger.info("Quiz parsed from documents", organization_id=organization_id,
                    teacher_id=teacher_id, questions=len(questions), with_answer_key=bool(answer_text))

        return await self.save_quiz(
            organization_id=organization_id,
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            title=title,
            questions=questions,
            language=language,
            description=description,
            grade_level=grade_level,
            subjects=subjects,
        )

    async def save_quiz(self, organization_id: int, teacher_id: int, teacher_name: str, title: str,
                        questions: Sequence[Question], language=Language.ENGLISH, description: str = None,
                        grade_level: str = None, subjects: list = None, is_approved: bool = False) -> Quiz:
        quiz = Quiz(
            organization_id=organization_id,
            created_by=teacher_id,
            created_by_name=teacher_name,
            title=title,
            description=description,
            grade_level=grade_level,
            subjects=subjects or [],
            language=Language(language).value,
            questions_json=_questions_payload(questions),
            is_approved=is_approved,
        )
        self.db.add(quiz)
        await self.db.commit()
        await self.db.refresh(quiz)
        logger.info("Quiz saved", organization_id=organization_id, quiz_id=quiz.id, title=title)
        return quiz

    async def get_quiz(self, quiz_id: int, organization_id: int) -> Quiz:
        result = await self.db.execute(
            select(Quiz).filter(Quiz.id == quiz_id, Quiz.organization_id == organization_id)
        )
        quiz = result.scalar_one_or_none()
        if not quiz:
            raise QuizNotFound(quiz_id=quiz_id)
        return quiz

    async def get_quiz_by_id_and_teacher(self, quiz_id: int, organization_id: int, teacher_id: int) -> Quiz:
        """Get a quiz ensuring it belongs to the teacher."""
        quiz = await self.get_quiz(quiz_id, organization_id)
        if quiz.created_by != teacher_id:
            raise QuizNotFound(quiz_id=quiz_id)
        return quiz

    async def list_quizzes(self, organization_id: int, approved_only: bool = False, teacher_id: int = None):
        query = select(Quiz).filter(Quiz.organization_id == organization_id)
        if approved_only:
            query = query.filter(Quiz.is_approved == True)
        if teacher_id is not None:
            query = query.filter(Quiz.created_by == teacher_id)
        result = await self.db.execute(query.order_by(Quiz.created_at.desc()))
        return result.scalars().all()

    async def approve_quiz(self, quiz_id: int, organization_id: int) -> Quiz:
        quiz = await self.get_quiz(quiz_id, organization_id)
        quiz.is_approved = True
        await self.db.commit()
        logger.info("Quiz approved", quiz_id=quiz_id, organization_id=organization_id)
        return quiz

    async def delete_quiz(self, quiz_id: int, organization_id: int, teacher_id: int) -> bool:
        # Import here to avoid circular dependencies
        from models.session import QuizSession

        await self.get_quiz_by_id_and_teacher(quiz_id, organization_id, teacher_id)

        # Delete related sessions first to avoid foreign key constraints
        await self.db.execute(
            delete(QuizSession).where(QuizSession.quiz_id == quiz_id)
        )
        result = await self.db.execute(
            delete(Quiz).where(Quiz.id == quiz_id, Quiz.organization_id == organization_id)
        )
        await self.db.commit()
        success = result.rowcount > 0
        logger.info("Quiz deleted", quiz_id=quiz_id, organization_id=organization_id, success=success)
        return success

    async def fix_quiz_options(self, quiz_id: int, organization_id: int, teacher_id: int) -> Quiz:
        """Re-normalize every stored question of a quiz to exactly four options."""
        quiz = await self.get_quiz_by_id_and_teacher(quiz_id, organization_id, teacher_id)
        language = quiz.language or Language.ENGLISH.value

        questions = [Question.model_validate(q) for q in quiz.questions_json or []]
        fixed = finalize_questions([ensure_four_options(q, language) for q in questions])
        quiz.questions_json = _questions_payload(fixed)

        await self.db.commit()
        logger.info("Quiz options fixed", quiz_id=quiz_id, questions=len(fixed))
        return quiz

    async def recreate_quiz(self, quiz_id: int, organization_id: int, teacher_id: int, teacher_name: str) -> Quiz:
        """Copy a quiz with normalized options as a new, unapproved quiz."""
        original = await self.get_quiz_by_id_and_teacher(quiz_id, organization_id, teacher_id)
        language = original.language or Language.ENGLISH.value

        questions = finalize_questions(
            [ensure_four_options(Question.model_validate(q), language) for q in original.questions_json or []]
        )
        new_quiz = await self.save_quiz(
            organization_id=organization_id,
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            title=f"{original.title} (Updated)",
            questions=questions,
            language=language,
            description=original.description,
            grade_level=original.grade_level,
            subjects=original.subjects,
        )
        logger.info("Quiz recreated", from_id=quiz_id, to_id=new_quiz.id)
        return new_quiz
