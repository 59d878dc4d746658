"""
Centralized OpenAI Service

Wraps every OpenAI API call with:
- Sentry error tracking
- Call history for the status endpoint

There is deliberately no retry layer here: quiz generation makes one
provider call and a failure is terminal for that quiz.

Usage:
    from app.services.openai_service import openai_service

    response = openai_service.chat_completion(
        messages=[{"role": "user", "content": "Hello"}],
        model="gpt-4o"
    )
    text = openai_service.completion_text(response)
"""

import logging
from typing import Optional, Dict, Any, List
from datetime import datetime

import sentry_sdk

from app.utils.openai_client import get_openai_client

logger = logging.getLogger(__name__)

MAX_CALL_HISTORY = 1000


class OpenAIServiceError(Exception):
    """Raised when the provider answers with something that carries no text."""
    pass


class OpenAIService:
    """
    Singleton wrapper for all OpenAI API calls.
    """

    _instance: Optional['OpenAIService'] = None

    def __new__(cls) -> 'OpenAIService':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._call_history: List[Dict[str, Any]] = []
        self._initialized = True

        logger.info("OpenAI Service initialized")

    def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str = "gpt-4o",
        **kwargs
    ) -> Any:
        """
        Make a single chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: OpenAI model to use (default: gpt-4o)
            **kwargs: Additional arguments passed to OpenAI API

        Returns:
            OpenAI ChatCompletion response

        Raises:
            Exception: Whatever the OpenAI client raised, after reporting it
        """
        start_time = datetime.utcnow()
        try:
            result = get_openai_client().chat.completions.create(
                model=model,
                messages=messages,
                **kwargs
            )
        except Exception as e:
            self._record_call(model, success=False, error=str(e))
            sentry_sdk.capture_exception(e)
            logger.error(f"OpenAI call failed: {str(e)}")
            raise

        latency_ms = (datetime.utcnow() - start_time).total_seconds() * 1000
        self._record_call(model, success=True, latency_ms=latency_ms)
        logger.debug(f"OpenAI call succeeded in {latency_ms:.0f}ms")
        return result

    @staticmethod
    def completion_text(response: Any) -> str:
        """
        Pull the generated text out of a chat completion.

        Raises:
            OpenAIServiceError: If the response has no message content
        """
        choices = getattr(response, "choices", None)
        if not choices:
            raise OpenAIServiceError("Invalid response structure from OpenAI API")

        content = choices[0].message.content
        if content is None:
            raise OpenAIServiceError(
                f"OpenAI returned no content (finish_reason={choices[0].finish_reason})"
            )
        return content

    def _record_call(
        self,
        model: str,
        success: bool,
        latency_ms: float = 0,
        error: str = None
    ):
        """Record call for metrics tracking."""
        record = {
            "timestamp": datetime.utcnow().isoformat(),
            "model": model,
            "success": success,
            "latency_ms": latency_ms,
            "error": error
        }
        self._call_history.append(record)

        if len(self._call_history) > MAX_CALL_HISTORY:
            self._call_history = self._call_history[-MAX_CALL_HISTORY:]

    def get_status(self) -> Dict[str, Any]:
        """
        Get service status for the monitoring endpoint.

        Returns:
            Dict with recent call statistics and the last error seen
        """
        recent_calls = self._call_history[-100:]
        successful_recent = sum(1 for c in recent_calls if c.get("success"))
        failed_recent = len(recent_calls) - successful_recent
        avg_latency = (
            sum(c.get("latency_ms", 0) for c in recent_calls if c.get("success"))
            / max(successful_recent, 1)
        )
        last_error = next(
            (c for c in reversed(recent_calls) if not c.get("success")), None
        )

        return {
            "recent_performance": {
                "total_calls": len(recent_calls),
                "successful_calls": successful_recent,
                "failed_calls": failed_recent,
                "success_rate": (
                    f"{(successful_recent / len(recent_calls) * 100):.1f}%"
                    if recent_calls else "N/A"
                ),
                "avg_latency_ms": round(avg_latency, 2)
            },
            "last_error": last_error
        }

    def reset_history(self):
        """Clear call history (useful for testing)."""
        self._call_history = []


# Global singleton instance
openai_service = OpenAIService()
