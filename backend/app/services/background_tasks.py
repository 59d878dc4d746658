"""
Background Tasks Service for StudyQuiz

Handles the asynchronous side of quiz generation:
- Request intake: validates the selected files and creates the quiz
- Fire-and-forget generation on a worker thread
- Periodic sweep that fails quizzes stuck in "generating"

The HTTP request returns as soon as the quiz row exists. The worker is the
only writer of the quiz afterwards and reports its outcome through the
quiz's status, which clients poll.
"""

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import List

from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models.models import Quiz
from app.schemas.quiz import GenerateQuizRequest
from app.services.file_store import get_owned_files
from app.services.quiz_generator import GenerationSettings, generate_quiz_questions
from app.services.quiz_store import create_quiz, complete_quiz, fail_quiz, fail_stale_quizzes

# Configure logging
logger = logging.getLogger(__name__)

QUIZ_GENERATION_WORKERS = int(os.getenv("QUIZ_GENERATION_WORKERS", "3"))
QUIZ_GENERATION_TIMEOUT_MINUTES = int(os.getenv("QUIZ_GENERATION_TIMEOUT_MINUTES", "10"))
STALE_QUIZ_SWEEP_INTERVAL_SECONDS = int(os.getenv("STALE_QUIZ_SWEEP_INTERVAL_SECONDS", "60"))

# Thread pool for generation tasks
_executor = ThreadPoolExecutor(max_workers=QUIZ_GENERATION_WORKERS, thread_name_prefix="quiz-generation")


# ============================================================================
# REQUEST ERRORS
# ============================================================================

class QuizRequestError(Exception):
    """A generation request rejected before any background work starts."""
    status_code = 400
    message = "Invalid quiz request"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)


class NoFilesSelectedError(QuizRequestError):
    message = "No files selected"


class FilesNotFoundError(QuizRequestError):
    status_code = 404
    message = "No valid files found"


class NoTextContentError(QuizRequestError):
    message = "No text content found in uploaded files. Please upload files with text content."


# ============================================================================
# INTAKE
# ============================================================================

def request_quiz_generation(db: Session, user_id: str, request: GenerateQuizRequest) -> Quiz:
    """
    Validate a generation request, create the quiz and start generation.

    Returns immediately after the quiz is created; the returned quiz is
    in the generating state.

    Raises:
        NoFilesSelectedError: If no file ids were given
        FilesNotFoundError: If none of the ids match the user's files
        NoTextContentError: If none of the matched files has extracted text
    """
    if not request.file_ids:
        raise NoFilesSelectedError()

    files = get_owned_files(db, user_id, request.file_ids)
    logger.info(f"Quiz request from user {user_id}: {len(files)}/{len(request.file_ids)} files found")
    if not files:
        raise FilesNotFoundError()

    extracted_texts = [f.extracted_text for f in files if f.extracted_text]
    if not extracted_texts:
        raise NoTextContentError()

    quiz = create_quiz(
        db,
        user_id=user_id,
        files=files,
        quiz_type=request.quiz_type.value,
        difficulty=request.difficulty.value,
        time_limit=request.time_limit
    )

    settings = GenerationSettings(
        quiz_type=request.quiz_type.value,
        num_questions=request.num_questions,
        difficulty=request.difficulty.value
    )
    start_quiz_generation(quiz.id, extracted_texts, settings)

    return quiz


# ============================================================================
# GENERATION
# ============================================================================

def run_quiz_generation(quiz_id: str, extracted_texts: List[str], settings: GenerationSettings):
    """
    Generate questions for a quiz and write its terminal state.

    Runs on a worker thread with its own database session. Any exception
    from the provider call or the response validation ends the quiz as
    failed with the exception message.
    """
    db = SessionLocal()
    try:
        try:
            questions = generate_quiz_questions(extracted_texts, settings)
            complete_quiz(db, quiz_id, questions)
        except Exception as e:
            logger.error(f"Quiz {quiz_id} generation failed: {str(e)}")
            db.rollback()
            fail_quiz(db, quiz_id, str(e))
    except Exception as e:
        # Terminal write itself failed; the stale sweep fails the quiz later
        logger.error(f"Quiz {quiz_id} could not be finalized: {str(e)}", exc_info=True)
    finally:
        db.close()


def start_quiz_generation(quiz_id: str, extracted_texts: List[str], settings: GenerationSettings):
    """
    Start quiz generation in a background thread.

    The caller does not wait for the result.
    """
    _executor.submit(run_quiz_generation, quiz_id, extracted_texts, settings)
    logger.info(f"Quiz {quiz_id} generation scheduled")


# ============================================================================
# STALE QUIZ SWEEP
# ============================================================================

def sweep_stale_quizzes(max_age_minutes: int = QUIZ_GENERATION_TIMEOUT_MINUTES) -> int:
    """Fail every quiz generating for longer than max_age_minutes."""
    db = SessionLocal()
    try:
        return fail_stale_quizzes(db, max_age_minutes=max_age_minutes)
    finally:
        db.close()


async def run_stale_quiz_sweeper(
    interval_seconds: int = STALE_QUIZ_SWEEP_INTERVAL_SECONDS,
    max_age_minutes: int = QUIZ_GENERATION_TIMEOUT_MINUTES
):
    """Periodically fail stuck quizzes. Started from the app lifespan."""
    logger.info(
        f"Stale quiz sweeper started (every {interval_seconds}s, timeout {max_age_minutes} min)"
    )
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(sweep_stale_quizzes, max_age_minutes)
        except Exception as e:
            logger.error(f"Stale quiz sweep failed: {str(e)}")
