"""
Quiz Schemas for StudyQuiz

Pydantic models for:
- Quiz settings enums (type, difficulty, lifecycle status)
- Validation of AI-generated question records
- Request/response bodies for files, quizzes and attempts
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# ENUMS
# =============================================================================

class QuizType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    FILL_BLANK = "fill-blank"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuizStatus(str, Enum):
    """Quiz lifecycle. GENERATING is the only non-terminal state."""
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# GENERATED QUESTION VALIDATION
# =============================================================================

def _number_to_text(value: Any) -> Any:
    """Models sometimes emit bare numbers for years and quantities."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class GeneratedQuestion(BaseModel):
    """
    One question record as returned by the AI provider.

    Anything that does not fit the stored Question shape is rejected here,
    so only well-formed records can reach the database.
    """
    question_text: str
    question_type: QuizType
    options: List[str] = Field(default_factory=list)
    correct_answer: str
    explanation: str = ""

    @field_validator("question_text", "correct_answer")
    @classmethod
    def must_not_be_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("correct_answer", mode="before")
    @classmethod
    def numeric_answer_as_text(cls, value: Any) -> Any:
        return _number_to_text(value)

    @field_validator("options", mode="before")
    @classmethod
    def normalize_options(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [_number_to_text(option) for option in value]
        return value

    @field_validator("explanation", mode="before")
    @classmethod
    def null_explanation_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def check_options(self) -> "GeneratedQuestion":
        if self.question_type == QuizType.MULTIPLE_CHOICE:
            if len(self.options) < 2:
                raise ValueError("multiple-choice questions need at least 2 options")
            if self.correct_answer not in self.options:
                raise ValueError("correct_answer must match one of the options exactly")
        else:
            self.options = []
        return self


# =============================================================================
# FILES
# =============================================================================

class UploadedFileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    original_name: str
    filename: str
    file_type: str
    file_size: int
    mime_type: str
    extracted_text: Optional[str] = None
    is_processed: bool
    processing_error: Optional[str] = None
    created_at: Optional[datetime] = None


class UploadResponse(BaseModel):
    message: str
    files: List[UploadedFileResponse]


class FileListResponse(BaseModel):
    files: List[UploadedFileResponse]


# =============================================================================
# QUIZZES
# =============================================================================

class GenerateQuizRequest(BaseModel):
    """Request to generate a quiz from previously uploaded files."""
    file_ids: List[str] = Field(default_factory=list, description="IDs of uploaded files to draw from")
    quiz_type: QuizType = QuizType.MULTIPLE_CHOICE
    num_questions: int = Field(10, ge=1, le=50, description="Number of questions to generate (1-50)")
    difficulty: Difficulty = Difficulty.MEDIUM
    time_limit: Optional[int] = Field(None, ge=1, le=600, description="Minutes, null for no limit")


class GenerateQuizResponse(BaseModel):
    message: str
    quiz_id: str
    status: QuizStatus


class QuizStatusResponse(BaseModel):
    quiz_id: str
    status: QuizStatus
    error: Optional[str] = None


class QuestionResponse(BaseModel):
    id: str
    question_text: str
    question_type: QuizType
    options: List[str]
    correct_answer: str
    explanation: str = ""


class SourceFileSnapshot(BaseModel):
    filename: str
    original_name: str
    file_path: str
    uploaded_at: Optional[str] = None


class QuizSummaryResponse(BaseModel):
    """Quiz without its questions, for list views."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    quiz_type: QuizType
    difficulty: Difficulty
    time_limit: Optional[int] = None
    status: QuizStatus
    source_files: List[SourceFileSnapshot] = []
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class QuizDetailResponse(QuizSummaryResponse):
    questions: List[QuestionResponse]


class QuizListResponse(BaseModel):
    quizzes: List[QuizSummaryResponse]
    total: int


# =============================================================================
# ATTEMPTS
# =============================================================================

class AnswerSubmission(BaseModel):
    question_id: str
    user_answer: str
    time_spent: int = Field(0, ge=0, description="Seconds spent on this question")

    @field_validator("time_spent", mode="before")
    @classmethod
    def whole_seconds(cls, value: Any) -> Any:
        if value is None:
            return 0
        if isinstance(value, float):
            return math.floor(value)
        return value


class SubmitAttemptRequest(BaseModel):
    answers: List[AnswerSubmission]
    started_at: datetime
    completed_at: datetime


class AttemptAnswerResponse(BaseModel):
    question_id: str
    user_answer: str
    is_correct: bool
    time_spent: int = 0


class AttemptQuizInfo(BaseModel):
    id: str
    title: str
    difficulty: Difficulty
    quiz_type: Optional[QuizType] = None
    questions: Optional[List[QuestionResponse]] = None


class AttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    quiz_id: str
    answers: List[AttemptAnswerResponse]
    score: int
    total_questions: int
    correct_answers: int
    time_taken: int
    started_at: datetime
    completed_at: datetime
    created_at: Optional[datetime] = None
    quiz: Optional[AttemptQuizInfo] = None


class SubmitAttemptResponse(BaseModel):
    message: str
    attempt: AttemptResponse


class AttemptListResponse(BaseModel):
    attempts: List[AttemptResponse]
    total: int


class MessageResponse(BaseModel):
    message: str
    details: Optional[Dict[str, Any]] = None
