"""
Attempts API Router

Provides endpoints for:
- Submitting answers to a completed quiz
- Viewing attempt history and individual attempts
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies.auth import get_current_user
from app.models.models import User, QuizAttempt
from app.schemas.quiz import (
    SubmitAttemptRequest,
    SubmitAttemptResponse,
    AttemptResponse,
    AttemptAnswerResponse,
    AttemptQuizInfo,
    AttemptListResponse,
    QuestionResponse,
)
from app.services.attempt_scorer import (
    record_attempt,
    get_attempt,
    list_attempts,
    QuestionNotFoundError,
    DuplicateAnswerError,
)
from app.services.quiz_store import get_completed_quiz

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["attempts"])


def attempt_to_response(attempt: QuizAttempt, include_questions: bool = False) -> AttemptResponse:
    """Convert an attempt to its API response, with the quiz it was taken on."""
    quiz_info = None
    if attempt.quiz is not None:
        quiz = attempt.quiz
        quiz_info = AttemptQuizInfo(
            id=quiz.id,
            title=quiz.title,
            difficulty=quiz.difficulty,
            quiz_type=quiz.quiz_type,
            questions=[QuestionResponse(**q) for q in quiz.questions or []] if include_questions else None
        )

    return AttemptResponse(
        id=attempt.id,
        quiz_id=attempt.quiz_id,
        answers=[AttemptAnswerResponse(**a) for a in attempt.answers or []],
        score=attempt.score,
        total_questions=attempt.total_questions,
        correct_answers=attempt.correct_answers,
        time_taken=attempt.time_taken,
        started_at=attempt.started_at,
        completed_at=attempt.completed_at,
        created_at=attempt.created_at,
        quiz=quiz_info
    )


@router.post(
    "/quizzes/{quiz_id}/attempts",
    response_model=SubmitAttemptResponse,
    status_code=status.HTTP_201_CREATED
)
async def submit_attempt(
    quiz_id: str,
    request: SubmitAttemptRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Submit answers for a completed quiz.

    Every answer must name a distinct question on the quiz. Questions
    left unanswered count as wrong.
    """
    quiz = get_completed_quiz(db, quiz_id, current_user.id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")

    try:
        attempt = record_attempt(
            db,
            quiz=quiz,
            user_id=current_user.id,
            answers=request.answers,
            started_at=request.started_at,
            completed_at=request.completed_at
        )
    except (QuestionNotFoundError, DuplicateAnswerError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SubmitAttemptResponse(
        message="Quiz attempt submitted successfully",
        attempt=attempt_to_response(attempt)
    )


@router.get("/attempts", response_model=AttemptListResponse)
async def get_attempt_history(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the user's 20 most recent attempts, newest first."""
    attempts = list_attempts(db, current_user.id)
    return AttemptListResponse(
        attempts=[attempt_to_response(a) for a in attempts],
        total=len(attempts)
    )


@router.get("/attempts/{attempt_id}", response_model=AttemptResponse)
async def get_attempt_detail(
    attempt_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get one attempt, including the quiz questions for review."""
    attempt = get_attempt(db, attempt_id, current_user.id)
    if not attempt:
        raise HTTPException(status_code=404, detail="Attempt not found")

    return attempt_to_response(attempt, include_questions=True)
