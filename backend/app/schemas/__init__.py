"""
StudyQuiz Schemas Package

Pydantic models for request/response validation and data structures.
"""

from app.schemas.quiz import (
    # Enums
    QuizType,
    Difficulty,
    QuizStatus,

    # AI output validation
    GeneratedQuestion,

    # Files
    UploadedFileResponse,
    UploadResponse,
    FileListResponse,

    # Quizzes
    GenerateQuizRequest,
    GenerateQuizResponse,
    QuizStatusResponse,
    QuestionResponse,
    SourceFileSnapshot,
    QuizSummaryResponse,
    QuizDetailResponse,
    QuizListResponse,

    # Attempts
    AnswerSubmission,
    SubmitAttemptRequest,
    AttemptAnswerResponse,
    AttemptQuizInfo,
    AttemptResponse,
    SubmitAttemptResponse,
    AttemptListResponse,
    MessageResponse,
)

__all__ = [
    # Enums
    "QuizType",
    "Difficulty",
    "QuizStatus",

    # AI output validation
    "GeneratedQuestion",

    # Files
    "UploadedFileResponse",
    "UploadResponse",
    "FileListResponse",

    # Quizzes
    "GenerateQuizRequest",
    "GenerateQuizResponse",
    "QuizStatusResponse",
    "QuestionResponse",
    "SourceFileSnapshot",
    "QuizSummaryResponse",
    "QuizDetailResponse",
    "QuizListResponse",

    # Attempts
    "AnswerSubmission",
    "SubmitAttemptRequest",
    "AttemptAnswerResponse",
    "AttemptQuizInfo",
    "AttemptResponse",
    "SubmitAttemptResponse",
    "AttemptListResponse",
    "MessageResponse",
]
