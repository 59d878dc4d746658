# Services module

# Upload handling and text extraction
from app.services.text_extraction import (
    ExtractionResult,
    extract_text,
)
from app.services.file_store import (
    store_upload,
    get_owned_files,
    get_recent_files,
    soft_delete_file,
)

# AI generation
from app.services.openai_service import (
    OpenAIService,
    OpenAIServiceError,
    openai_service,
)
from app.services.response_normalizer import (
    ResponseNormalizationError,
    normalize_questions,
)
from app.services.quiz_generator import (
    GenerationSettings,
    generate_quiz_questions,
)

# Quiz lifecycle
from app.services.quiz_store import (
    create_quiz,
    complete_quiz,
    fail_quiz,
    fail_stale_quizzes,
)
from app.services.background_tasks import (
    QuizRequestError,
    request_quiz_generation,
    run_stale_quiz_sweeper,
)

# Scoring
from app.services.attempt_scorer import (
    QuestionNotFoundError,
    DuplicateAnswerError,
    record_attempt,
    score_attempt,
)
