"""
AI Quiz Generation Service for StudyQuiz
Generates quiz questions from extracted study material using OpenAI
"""

import os
import logging
from dataclasses import dataclass
from typing import Dict, List, Any

from app.schemas.quiz import QuizType
from app.services.openai_service import openai_service
from app.services.response_normalizer import normalize_questions

logger = logging.getLogger(__name__)

QUIZ_GENERATION_MODEL = os.getenv("QUIZ_GENERATION_MODEL", "gpt-4o")
QUIZ_MAX_OUTPUT_TOKENS = int(os.getenv("QUIZ_MAX_OUTPUT_TOKENS", "16000"))
QUIZ_TEMPERATURE = 0.3  # Low for consistent JSON

# Character budget for the study material embedded in the prompt
MAX_SOURCE_CHARS = 30000
TRUNCATION_MARKER = "\n\n[Text truncated due to length...]"
SOURCE_SEPARATOR = "\n\n---\n\n"

SYSTEM_PROMPT = (
    "You are an expert educational quiz generator. You write clear, accurate "
    "questions that test understanding of the provided study material. "
    "Respond with a JSON array only, without markdown or commentary."
)


@dataclass
class GenerationSettings:
    quiz_type: str
    num_questions: int
    difficulty: str


def build_source_text(extracted_texts: List[str]) -> str:
    """Join the extracted texts and cut them down to the prompt budget."""
    combined = SOURCE_SEPARATOR.join(extracted_texts)
    if len(combined) > MAX_SOURCE_CHARS:
        return combined[:MAX_SOURCE_CHARS] + TRUNCATION_MARKER
    return combined


def build_prompt(source_text: str, settings: GenerationSettings) -> str:
    is_multiple_choice = settings.quiz_type == QuizType.MULTIPLE_CHOICE.value
    options_spec = "array of 4 choices" if is_multiple_choice else "empty array []"
    answer_spec = " (must match one of the options exactly)" if is_multiple_choice else ""
    example_options = '["Paris", "London", "Berlin", "Madrid"]' if is_multiple_choice else "[]"

    return f"""Generate {settings.num_questions} {settings.difficulty} difficulty {settings.quiz_type} questions based on the following study materials.

STUDY MATERIALS:
{source_text}

Generate exactly {settings.num_questions} questions in JSON array format. Each question must have:
- question_text: the question
- question_type: "{settings.quiz_type}"
- options: {options_spec}
- correct_answer: the correct answer{answer_spec}
- explanation: brief explanation of the answer

Example:
[
  {{
    "question_text": "What is the capital of France?",
    "question_type": "{settings.quiz_type}",
    "options": {example_options},
    "correct_answer": "Paris",
    "explanation": "Paris is the capital and largest city of France."
  }}
]"""


def generate_quiz_questions(extracted_texts: List[str], settings: GenerationSettings) -> List[Dict[str, Any]]:
    """
    Generate validated quiz questions from study material.

    Makes exactly one provider call; the raw response goes through the
    response normalizer.

    Args:
        extracted_texts: Non-empty texts of the source files
        settings: Quiz type, number of questions and difficulty

    Returns:
        List of question records ready to store on the quiz

    Raises:
        ValueError: If the provider call or the response validation fails.
            The message is what the user sees as the generation error.
    """
    source_text = build_source_text(extracted_texts)
    prompt = build_prompt(source_text, settings)

    logger.info(
        "Generating %d %s %s questions from %d characters of source text",
        settings.num_questions, settings.difficulty, settings.quiz_type, len(source_text)
    )

    try:
        response = openai_service.chat_completion(
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt}
            ],
            model=QUIZ_GENERATION_MODEL,
            temperature=QUIZ_TEMPERATURE,
            max_tokens=QUIZ_MAX_OUTPUT_TOKENS
        )
        raw_text = openai_service.completion_text(response)
        logger.debug("Raw AI response length: %d", len(raw_text))

        return normalize_questions(raw_text, settings.num_questions, settings.quiz_type)

    except Exception as e:
        logger.error("Error generating quiz: %s", str(e), exc_info=True)
        raise ValueError(f"Failed to generate quiz with AI: {e}") from e
