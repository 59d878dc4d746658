"""
Shared OpenAI client for quiz generation.

Created on first use so the app can start (and serve uploads, quizzes and
attempts) without OPENAI_API_KEY; only generation needs it.
"""

import os
from typing import Optional

import httpx
from openai import OpenAI

_client: Optional[OpenAI] = None

# A full quiz is a long completion, so reads get a generous budget
OPENAI_TIMEOUT_SECONDS = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "120"))
OPENAI_CONNECT_TIMEOUT_SECONDS = 10.0


class MissingAPIKeyError(ValueError):
    pass


def build_timeout() -> httpx.Timeout:
    return httpx.Timeout(OPENAI_TIMEOUT_SECONDS, connect=OPENAI_CONNECT_TIMEOUT_SECONDS)


def get_openai_client() -> OpenAI:
    """
    Return the shared client, creating it on first call.

    SDK retries are off: each quiz generation makes exactly one request,
    and a failed request fails the quiz.

    Raises:
        MissingAPIKeyError: If OPENAI_API_KEY is not set
    """
    global _client

    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise MissingAPIKeyError("OPENAI_API_KEY is not set; quiz generation is unavailable")
        _client = OpenAI(api_key=api_key, timeout=build_timeout(), max_retries=0)

    return _client


def reset_client() -> None:
    """Drop the cached client so the next call picks up a new key."""
    global _client
    _client = None
