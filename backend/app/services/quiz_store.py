"""
Quiz Lifecycle Store

Durable record of each quiz's generation state. A quiz is created in
"generating" and moves exactly once to "completed" or "failed".

The terminal transition is a single conditional UPDATE that only matches
rows still in "generating". Whoever issues it first (the generation worker
or the stale-quiz sweeper) wins; any later terminal write is a no-op, so
readers never see a terminal status change.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from sqlalchemy import func
from sqlalchemy.orm import Session, defer

from app.models.models import (
    Quiz,
    UploadedFile,
    QUIZ_STATUS_GENERATING,
    QUIZ_STATUS_COMPLETED,
    QUIZ_STATUS_FAILED,
)

logger = logging.getLogger(__name__)

STALE_QUIZ_ERROR = "Quiz generation timed out"


# ============================================================================
# CREATION
# ============================================================================

def snapshot_source_files(files: List[UploadedFile]) -> List[Dict[str, Any]]:
    """Copy the identifying fields of the source files onto the quiz."""
    return [
        {
            "filename": f.filename,
            "original_name": f.original_name,
            "file_path": f.file_path,
            "uploaded_at": f.created_at.isoformat() if f.created_at else None,
        }
        for f in files
    ]


def create_quiz(
    db: Session,
    user_id: str,
    files: List[UploadedFile],
    quiz_type: str,
    difficulty: str,
    time_limit: Optional[int] = None
) -> Quiz:
    """Create a quiz in the generating state."""
    quiz = Quiz(
        user_id=user_id,
        title=f"Quiz - {datetime.utcnow().strftime('%b %d, %Y')}",
        quiz_type=quiz_type,
        difficulty=difficulty,
        time_limit=time_limit,
        questions=[],
        source_files=snapshot_source_files(files),
        status=QUIZ_STATUS_GENERATING,
    )
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info(f"Quiz {quiz.id} created for user {user_id} from {len(files)} files")
    return quiz


# ============================================================================
# READS
# ============================================================================

def get_quiz(db: Session, quiz_id: str, user_id: str) -> Optional[Quiz]:
    """Get a quiz owned by the user, in any status."""
    return db.query(Quiz).filter(
        Quiz.id == quiz_id,
        Quiz.owned_by(user_id)
    ).first()


def get_quiz_status(db: Session, quiz_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    """Read only the id/status/error projection of a quiz."""
    row = db.query(Quiz.id, Quiz.status, Quiz.generation_error).filter(
        Quiz.id == quiz_id,
        Quiz.owned_by(user_id)
    ).first()

    if row is None:
        return None

    return {"quiz_id": row.id, "status": row.status, "error": row.generation_error}


def get_completed_quiz(db: Session, quiz_id: str, user_id: str) -> Optional[Quiz]:
    """Get a quiz with its questions; only completed quizzes are visible."""
    return db.query(Quiz).filter(
        Quiz.id == quiz_id,
        Quiz.owned_by(user_id),
        Quiz.status == QUIZ_STATUS_COMPLETED
    ).first()


def list_completed_quizzes(db: Session, user_id: str, limit: Optional[int] = None) -> List[Quiz]:
    """Completed quizzes for a user, newest first, without loading questions."""
    query = db.query(Quiz).options(defer(Quiz.questions)).filter(
        Quiz.owned_by(user_id),
        Quiz.status == QUIZ_STATUS_COMPLETED
    ).order_by(Quiz.created_at.desc())

    if limit:
        query = query.limit(limit)

    return query.all()


# ============================================================================
# TERMINAL TRANSITIONS
# ============================================================================

def _finish_quiz(db: Session, quiz_id: str, values: Dict[str, Any]) -> bool:
    now = datetime.utcnow()
    updated = db.query(Quiz).filter(
        Quiz.id == quiz_id,
        Quiz.status == QUIZ_STATUS_GENERATING
    ).update(
        {**values, "completed_at": now, "updated_at": now},
        synchronize_session=False
    )
    db.commit()
    return updated == 1


def complete_quiz(db: Session, quiz_id: str, questions: List[Dict[str, Any]]) -> bool:
    """
    Store the generated questions and mark the quiz completed.

    Returns:
        False if the quiz had already reached a terminal state
    """
    won = _finish_quiz(db, quiz_id, {
        "questions": questions,
        "status": QUIZ_STATUS_COMPLETED,
        "generation_error": None,
    })
    if won:
        logger.info(f"Quiz {quiz_id} completed with {len(questions)} questions")
    else:
        logger.warning(f"Quiz {quiz_id} already terminal, discarding {len(questions)} generated questions")
    return won


def fail_quiz(db: Session, quiz_id: str, error: str) -> bool:
    """
    Mark the quiz failed with the given error.

    Returns:
        False if the quiz had already reached a terminal state
    """
    won = _finish_quiz(db, quiz_id, {
        "status": QUIZ_STATUS_FAILED,
        "generation_error": error,
    })
    if won:
        logger.info(f"Quiz {quiz_id} failed: {error}")
    else:
        logger.warning(f"Quiz {quiz_id} already terminal, ignoring failure: {error}")
    return won


def fail_stale_quizzes(db: Session, max_age_minutes: int) -> int:
    """
    Fail quizzes that have been generating for too long.

    Quizzes stuck in generating (worker crashed, process restarted) would
    otherwise keep clients polling forever.

    Returns:
        Number of quizzes transitioned to failed
    """
    cutoff = datetime.utcnow() - timedelta(minutes=max_age_minutes)
    now = datetime.utcnow()

    updated = db.query(Quiz).filter(
        Quiz.status == QUIZ_STATUS_GENERATING,
        Quiz.created_at < cutoff
    ).update(
        {
            "status": QUIZ_STATUS_FAILED,
            "generation_error": STALE_QUIZ_ERROR,
            "completed_at": now,
            "updated_at": now,
        },
        synchronize_session=False
    )
    db.commit()

    if updated:
        logger.info(f"Failed {updated} stale quizzes older than {max_age_minutes} minutes")

    return updated


# ============================================================================
# DELETION
# ============================================================================

def soft_delete_quiz(db: Session, quiz_id: str, user_id: str) -> bool:
    """Soft-delete a quiz. Returns False if no such quiz is visible to the user."""
    quiz = get_quiz(db, quiz_id, user_id)
    if not quiz:
        return False

    quiz.soft_delete()
    db.commit()
    return True


# ============================================================================
# MONITORING
# ============================================================================

def count_quizzes_by_status(db: Session) -> Dict[str, int]:
    """Live quiz counts per lifecycle status, soft-deleted quizzes excluded."""
    counts = {QUIZ_STATUS_GENERATING: 0, QUIZ_STATUS_COMPLETED: 0, QUIZ_STATUS_FAILED: 0}
    rows = db.query(Quiz.status, func.count(Quiz.id)).filter(
        Quiz.is_deleted.is_(False)
    ).group_by(Quiz.status).all()
    for status, count in rows:
        counts[status] = count
    return counts
