"""
Quizzes API Router

Provides endpoints for:
- Requesting quiz generation from uploaded files
- Polling generation status
- Fetching and listing completed quizzes
- Deleting quizzes
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies.auth import get_current_user
from app.models.models import User
from app.schemas.quiz import (
    GenerateQuizRequest,
    GenerateQuizResponse,
    QuizStatus,
    QuizStatusResponse,
    QuizSummaryResponse,
    QuizDetailResponse,
    QuizListResponse,
    MessageResponse,
)
from app.services.background_tasks import request_quiz_generation, QuizRequestError
from app.services.quiz_store import (
    get_quiz_status,
    get_completed_quiz,
    list_completed_quizzes,
    soft_delete_quiz,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])


@router.post("/generate", response_model=GenerateQuizResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_quiz(
    request: GenerateQuizRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Start generating a quiz from uploaded files.

    Returns immediately with the quiz ID. Poll /api/quizzes/{quiz_id}/status
    until the status is "completed" or "failed" (every 2 seconds is enough).
    """
    try:
        quiz = request_quiz_generation(db, current_user.id, request)
    except QuizRequestError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return GenerateQuizResponse(
        message="Quiz generation started",
        quiz_id=quiz.id,
        status=QuizStatus.GENERATING
    )


@router.get("", response_model=QuizListResponse)
async def list_quizzes(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the user's completed quizzes, newest first, without questions."""
    quizzes = list_completed_quizzes(db, current_user.id)
    return QuizListResponse(
        quizzes=[QuizSummaryResponse.model_validate(q) for q in quizzes],
        total=len(quizzes)
    )


@router.get("/{quiz_id}/status", response_model=QuizStatusResponse)
async def get_generation_status(
    quiz_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the generation status of a quiz.

    Read-only and safe to poll. When the status is "failed", error holds
    the reason.
    """
    quiz_status = get_quiz_status(db, quiz_id, current_user.id)
    if not quiz_status:
        raise HTTPException(status_code=404, detail="Quiz not found")

    return QuizStatusResponse(**quiz_status)


@router.get("/{quiz_id}", response_model=QuizDetailResponse)
async def get_quiz(
    quiz_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a completed quiz with all of its questions."""
    quiz = get_completed_quiz(db, quiz_id, current_user.id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")

    return QuizDetailResponse.model_validate(quiz)


@router.delete("/{quiz_id}", response_model=MessageResponse)
async def delete_quiz(
    quiz_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a quiz. Its attempts stay in the user's history."""
    if not soft_delete_quiz(db, quiz_id, current_user.id):
        raise HTTPException(status_code=404, detail="Quiz not found")

    return MessageResponse(message="Quiz deleted successfully")
