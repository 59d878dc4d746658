"""
Authentication Dependencies for StudyQuiz

Provides FastAPI dependencies for:
- JWT verification
- Resolving the current user (the owner of every file, quiz and attempt)

Tokens are issued by the identity provider in front of this service and
signed with a shared secret; the `sub` claim carries the user id.

Usage:
    @router.get("/protected")
    def protected_endpoint(current_user: User = Depends(get_current_user)):
        return {"user_id": current_user.id}
"""

import os
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import jwt, JWTError

from app.database import get_db
from app.models.models import User

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for extracting tokens
security = HTTPBearer(auto_error=False)

AUTH_JWT_ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


def verify_jwt(token: str) -> dict:
    """
    Verify a JWT and return its claims.

    Args:
        token: JWT token from Authorization header

    Returns:
        dict: Decoded JWT claims

    Raises:
        HTTPException: If the token is invalid or expired, or no secret is configured
    """
    secret = os.getenv("AUTH_JWT_SECRET")
    if not secret:
        logger.critical("AUTH_JWT_SECRET not configured - rejecting all authenticated requests")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication configuration error. Please contact support."
        )

    try:
        return jwt.decode(token, secret, algorithms=[AUTH_JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise _unauthorized("Invalid or expired token")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    FastAPI dependency to get the currently authenticated user.

    Args:
        credentials: Bearer token from HTTPBearer
        db: Database session

    Returns:
        User: The authenticated user object

    Raises:
        HTTPException: If not authenticated or user not found
    """
    if not credentials:
        raise _unauthorized("Not authenticated")

    claims = verify_jwt(credentials.credentials)

    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token claims")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return user
