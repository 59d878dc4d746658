"""
Mock infrastructure for StudyQuiz testing.
Provides deterministic mocks for OpenAI.
"""

from .openai_mocks import (
    MOCK_MULTIPLE_CHOICE_QUESTION,
    MOCK_FILL_BLANK_QUESTION,
    INVALID_QUESTIONS,
    SAMPLE_STUDY_TEXT,
    MockChatCompletion,
    create_mock_questions,
    mock_openai_completion,
    wrap_in_markdown,
)

__all__ = [
    "MOCK_MULTIPLE_CHOICE_QUESTION",
    "MOCK_FILL_BLANK_QUESTION",
    "INVALID_QUESTIONS",
    "SAMPLE_STUDY_TEXT",
    "MockChatCompletion",
    "create_mock_questions",
    "mock_openai_completion",
    "wrap_in_markdown",
]
