from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, ForeignKey, Text, Index, and_
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from app.database import Base

def generate_uuid():
    return str(uuid.uuid4())


# Quiz lifecycle states
QUIZ_STATUS_GENERATING = "generating"
QUIZ_STATUS_COMPLETED = "completed"
QUIZ_STATUS_FAILED = "failed"
TERMINAL_QUIZ_STATUSES = (QUIZ_STATUS_COMPLETED, QUIZ_STATUS_FAILED)


class SoftDeleteMixin:
    """
    Soft-delete flag shared by every user-owned record.

    Read paths never check the flag by hand: they filter with owned_by(),
    which bakes the owner and non-deleted predicates into one expression.
    """
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    @classmethod
    def owned_by(cls, user_id: str):
        return and_(cls.user_id == user_id, cls.is_deleted.is_(False))

    def soft_delete(self):
        self.is_deleted = True
        self.deleted_at = datetime.utcnow()


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_uuid)
    email = Column(String, unique=True, nullable=False, index=True)
    full_name = Column(String, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    files = relationship("UploadedFile", back_populates="user")
    quizzes = relationship("Quiz", back_populates="user")
    attempts = relationship("QuizAttempt", back_populates="user")


class UploadedFile(SoftDeleteMixin, Base):
    """A study document uploaded by a user, with its text extracted once at upload time."""
    __tablename__ = "uploaded_files"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    original_name = Column(String, nullable=False)
    filename = Column(String, nullable=False, unique=True)  # Stored name on disk
    file_path = Column(String, nullable=False)
    file_type = Column(String, nullable=False)  # Extension, e.g. ".pdf"
    file_size = Column(Integer, nullable=False)  # Bytes
    mime_type = Column(String, nullable=False)

    # Extraction outcome
    extracted_text = Column(Text, nullable=True)
    is_processed = Column(Boolean, default=False, index=True)
    processing_error = Column(String, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="files")

    __table_args__ = (
        Index("ix_uploaded_files_user_created", "user_id", "created_at"),
    )


class Quiz(SoftDeleteMixin, Base):
    """
    A generated quiz.

    Created in "generating" state when the request is accepted; a single
    background write later moves it to "completed" (questions populated)
    or "failed" (generation_error populated). Both are terminal.
    """
    __tablename__ = "quizzes"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    quiz_type = Column(String, nullable=False)  # "multiple-choice", "fill-blank"
    difficulty = Column(String, nullable=False)  # "easy", "medium", "hard"
    time_limit = Column(Integer, nullable=True)  # Minutes, null = no limit

    # Embedded question records, each {"id", "question_text", "question_type",
    # "options", "correct_answer", "explanation"}
    questions = Column(JSON, nullable=False, default=list)

    # Snapshot of the source files at generation time (not a live reference)
    source_files = Column(JSON, nullable=False, default=list)

    # Lifecycle: generating -> completed | failed
    status = Column(String, nullable=False, default=QUIZ_STATUS_GENERATING, index=True)
    generation_error = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="quizzes")
    attempts = relationship("QuizAttempt", back_populates="quiz")

    __table_args__ = (
        Index("ix_quizzes_user_created", "user_id", "created_at"),
    )

    def find_question(self, question_id: str):
        """Return the embedded question with this id, or None."""
        for question in self.questions or []:
            if question.get("id") == question_id:
                return question
        return None


class QuizAttempt(SoftDeleteMixin, Base):
    """An immutable, scored submission of answers to a completed quiz."""
    __tablename__ = "quiz_attempts"

    id = Column(String, primary_key=True, default=generate_uuid)
    quiz_id = Column(String, ForeignKey("quizzes.id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)

    # Ordered embedded answers, each {"question_id", "user_answer", "is_correct", "time_spent"}
    answers = Column(JSON, nullable=False, default=list)

    score = Column(Integer, nullable=False)  # 0-100
    total_questions = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    time_taken = Column(Integer, nullable=False)  # Seconds, from client timestamps
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=False)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="attempts")
    quiz = relationship("Quiz", back_populates="attempts")

    __table_args__ = (
        Index("ix_quiz_attempts_user_quiz_created", "user_id", "quiz_id", "created_at"),
    )
