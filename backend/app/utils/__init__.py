"""
StudyQuiz Utilities Package

Contains:
- openai_client: Lazy-initialized OpenAI client
"""

from app.utils.openai_client import MissingAPIKeyError, get_openai_client, reset_client

__all__ = [
    "MissingAPIKeyError",
    "get_openai_client",
    "reset_client"
]
