"""
Response Normalizer

Turns the raw text returned by the AI provider into validated question
records. The provider is untrusted: its output may be wrapped in markdown,
surrounded by prose, or contain records that do not fit the Question schema.

Parsing is two-stage:
1. Strict JSON parse of the raw text.
2. If that fails, an ordered list of cleanup steps followed by one more
   strict parse. The order matters: fences are removed before the array
   span is located, and quotes are straightened before trailing commas
   are dropped.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from app.models.models import generate_uuid
from app.schemas.quiz import GeneratedQuestion

logger = logging.getLogger(__name__)

# Surviving questions must reach this share of the requested count
MIN_VALID_RATIO = 0.5

_CODE_FENCE_OPEN = re.compile(r"```json\s*", re.IGNORECASE)
_CODE_FENCE = re.compile(r"```\s*")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_CURLY_DOUBLE_QUOTES = re.compile("[“”„‟]")
_CURLY_SINGLE_QUOTES = re.compile("[‘’‚‛]")


class ResponseNormalizationError(ValueError):
    """Raised when an AI response cannot be turned into a usable question set."""
    pass


# =============================================================================
# CLEANUP STEPS
# =============================================================================

def strip_code_fences(text: str) -> str:
    text = text.strip()
    text = _CODE_FENCE_OPEN.sub("", text)
    return _CODE_FENCE.sub("", text)


def isolate_json_array(text: str) -> str:
    """Keep only the span from the first '[' to the last ']'."""
    first = text.find("[")
    last = text.rfind("]")
    if first == -1 or last == -1 or last < first:
        raise ResponseNormalizationError("AI response does not contain a JSON array")
    return text[first:last + 1]


def straighten_quotes(text: str) -> str:
    text = _CURLY_DOUBLE_QUOTES.sub('"', text)
    return _CURLY_SINGLE_QUOTES.sub("'", text)


def drop_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


CLEANUP_STEPS: List[Callable[[str], str]] = [
    strip_code_fences,
    isolate_json_array,
    straighten_quotes,
    drop_trailing_commas,
]


# =============================================================================
# PARSING
# =============================================================================

def parse_response(raw_text: str) -> Any:
    """
    Parse the provider's text into a JSON value.

    Raises:
        ResponseNormalizationError: If neither the strict parse nor the
            parse after cleanup succeeds.
    """
    if raw_text is None:
        raise ResponseNormalizationError("AI response is empty")

    try:
        value = json.loads(raw_text)
        logger.info("Direct JSON parse successful")
        return value
    except json.JSONDecodeError:
        logger.info("Direct parse failed, attempting cleanup")

    cleaned = raw_text
    for step in CLEANUP_STEPS:
        cleaned = step(cleaned)

    try:
        value = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("JSON parse failed after cleanup: %s", e)
        logger.debug("Cleaned text: %s", cleaned[:500])
        raise ResponseNormalizationError(f"JSON parsing failed: {e}") from e

    logger.info("JSON parse successful after cleanup")
    return value


def validate_question(item: Any) -> Dict[str, Any]:
    """
    Validate one raw record and return it in stored form with a new id.

    Raises:
        ValidationError: If the record does not fit the Question schema.
    """
    question = GeneratedQuestion.model_validate(item)
    return {"id": generate_uuid(), **question.model_dump(mode="json")}


def normalize_questions(
    raw_text: str,
    requested_count: int,
    quiz_type: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Convert a raw AI response into at most `requested_count` valid questions.

    Args:
        raw_text: Text returned by the AI provider
        requested_count: Number of questions the user asked for
        quiz_type: If given, records of any other question type are dropped

    Returns:
        Valid question records in their original order, truncated to the
        requested count

    Raises:
        ResponseNormalizationError: If the response is unparseable, is not a
            non-empty array, or yields fewer than half the requested
            questions after validation
    """
    parsed = parse_response(raw_text)

    if not isinstance(parsed, list):
        raise ResponseNormalizationError(
            f"Generated response is not an array. Got: {type(parsed).__name__}"
        )
    if not parsed:
        raise ResponseNormalizationError("Generated questions array is empty")

    logger.info("Raw questions count: %d", len(parsed))

    valid_questions = []
    for index, item in enumerate(parsed):
        try:
            question = validate_question(item)
        except ValidationError as e:
            logger.warning(
                "Invalid question %d filtered out (%d errors): %s",
                index, e.error_count(), json.dumps(item, default=str)[:300]
            )
            continue

        if quiz_type and question["question_type"] != quiz_type:
            logger.warning(
                "Question %d filtered out: type %s does not match requested %s",
                index, question["question_type"], quiz_type
            )
            continue

        valid_questions.append(question)

    if not valid_questions:
        raise ResponseNormalizationError("No valid questions found in AI response")

    if len(valid_questions) < requested_count * MIN_VALID_RATIO:
        raise ResponseNormalizationError(
            f"Only generated {len(valid_questions)} valid questions "
            f"out of {requested_count} requested"
        )

    logger.info("Parsed %d valid questions", len(valid_questions))
    return valid_questions[:requested_count]
