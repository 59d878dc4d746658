"""
FastAPI Dependencies for StudyQuiz
"""

from app.dependencies.auth import (
    get_current_user,
    verify_jwt,
)

__all__ = [
    "get_current_user",
    "verify_jwt",
]
