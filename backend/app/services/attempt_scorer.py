"""
Attempt Scorer

Scores a submission against a completed quiz and records the attempt.

Grading rules:
- An answer is correct only if it equals the stored correct_answer exactly
  (case-sensitive, no trimming)
- Score is 100 * correct / questions on the quiz, rounded half up
- Elapsed time comes from the client's started/completed timestamps
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Dict, Any, Optional

from sqlalchemy.orm import Session, joinedload

from app.models.models import Quiz, QuizAttempt
from app.schemas.quiz import AnswerSubmission

logger = logging.getLogger(__name__)

ATTEMPT_HISTORY_LIMIT = 20


class QuestionNotFoundError(ValueError):
    """A submitted answer refers to a question that is not on the quiz."""

    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"Question {question_id} not found in quiz")


class DuplicateAnswerError(ValueError):
    """A submission answers the same question more than once."""

    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"Question {question_id} answered more than once")


@dataclass
class ScoredAttempt:
    answers: List[Dict[str, Any]] = field(default_factory=list)
    score: int = 0
    total_questions: int = 0
    correct_answers: int = 0
    time_taken: int = 0


def _to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def calculate_score(correct: int, total: int) -> int:
    """Percentage of correct answers, rounded half up (1/8 -> 13, 1/3 -> 33)."""
    if total <= 0:
        return 0
    percent = Decimal(correct * 100) / Decimal(total)
    return int(percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_elapsed_seconds(started_at: datetime, completed_at: datetime) -> int:
    """Whole seconds between the client-reported timestamps."""
    delta = _to_utc_naive(completed_at) - _to_utc_naive(started_at)
    return math.floor(delta.total_seconds())


def score_attempt(
    quiz: Quiz,
    answers: List[AnswerSubmission],
    started_at: datetime,
    completed_at: datetime
) -> ScoredAttempt:
    """
    Grade a submission without touching the database.

    Raises:
        QuestionNotFoundError: If any answer names a question the quiz does
            not have.
        DuplicateAnswerError: If two answers name the same question.

    Nothing is scored when either is raised.
    """
    graded = []
    correct_count = 0
    seen = set()

    for answer in answers:
        if answer.question_id in seen:
            raise DuplicateAnswerError(answer.question_id)
        seen.add(answer.question_id)

        question = quiz.find_question(answer.question_id)
        if question is None:
            raise QuestionNotFoundError(answer.question_id)

        is_correct = question["correct_answer"] == answer.user_answer
        if is_correct:
            correct_count += 1

        graded.append({
            "question_id": answer.question_id,
            "user_answer": answer.user_answer,
            "is_correct": is_correct,
            "time_spent": answer.time_spent,
        })

    total_questions = len(quiz.questions or [])

    return ScoredAttempt(
        answers=graded,
        score=calculate_score(correct_count, total_questions),
        total_questions=total_questions,
        correct_answers=correct_count,
        time_taken=calculate_elapsed_seconds(started_at, completed_at),
    )


def record_attempt(
    db: Session,
    quiz: Quiz,
    user_id: str,
    answers: List[AnswerSubmission],
    started_at: datetime,
    completed_at: datetime
) -> QuizAttempt:
    """Score a submission and persist it as a new attempt."""
    scored = score_attempt(quiz, answers, started_at, completed_at)

    attempt = QuizAttempt(
        quiz_id=quiz.id,
        user_id=user_id,
        answers=scored.answers,
        score=scored.score,
        total_questions=scored.total_questions,
        correct_answers=scored.correct_answers,
        time_taken=scored.time_taken,
        started_at=_to_utc_naive(started_at),
        completed_at=_to_utc_naive(completed_at),
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)

    logger.info(
        f"Attempt {attempt.id} on quiz {quiz.id}: "
        f"{scored.correct_answers}/{scored.total_questions} ({scored.score}%)"
    )
    return attempt


def get_attempt(db: Session, attempt_id: str, user_id: str) -> Optional[QuizAttempt]:
    """Get one of the user's attempts together with its quiz."""
    return db.query(QuizAttempt).options(joinedload(QuizAttempt.quiz)).filter(
        QuizAttempt.id == attempt_id,
        QuizAttempt.owned_by(user_id)
    ).first()


def list_attempts(db: Session, user_id: str, limit: int = ATTEMPT_HISTORY_LIMIT) -> List[QuizAttempt]:
    """The user's most recent attempts, newest first."""
    return db.query(QuizAttempt).options(joinedload(QuizAttempt.quiz)).filter(
        QuizAttempt.owned_by(user_id)
    ).order_by(QuizAttempt.created_at.desc()).limit(limit).all()
