"""
Tests for background quiz generation and the stale quiz sweep.
"""

import asyncio
from contextlib import suppress
from unittest.mock import patch

import pytest

from app.models.models import Quiz, QUIZ_STATUS_COMPLETED, QUIZ_STATUS_FAILED
from app.services import background_tasks
from app.services.background_tasks import (
    run_quiz_generation,
    run_stale_quiz_sweeper,
    sweep_stale_quizzes,
)
from app.services.quiz_generator import GenerationSettings
from app.services.quiz_store import STALE_QUIZ_ERROR, fail_quiz
from tests.mocks.openai_mocks import SAMPLE_STUDY_TEXT

SETTINGS = GenerationSettings(quiz_type="multiple-choice", num_questions=10, difficulty="easy")


def reload(db, quiz_id):
    db.expire_all()
    return db.query(Quiz).filter(Quiz.id == quiz_id).one()


class TestRunQuizGeneration:

    @pytest.mark.unit
    def test_success_completes_quiz(self, db, generating_quiz, mock_openai, inline_executor):
        run_quiz_generation(generating_quiz.id, [SAMPLE_STUDY_TEXT], SETTINGS)

        quiz = reload(db, generating_quiz.id)
        assert quiz.status == QUIZ_STATUS_COMPLETED
        assert len(quiz.questions) == 10
        assert len({q["id"] for q in quiz.questions}) == 10

    @pytest.mark.unit
    def test_error_fails_quiz(self, db, generating_quiz, mock_openai, inline_executor):
        mock_openai.chat.completions.create.side_effect = RuntimeError("network down")

        run_quiz_generation(generating_quiz.id, [SAMPLE_STUDY_TEXT], SETTINGS)

        quiz = reload(db, generating_quiz.id)
        assert quiz.status == QUIZ_STATUS_FAILED
        assert quiz.generation_error == "Failed to generate quiz with AI: network down"

    @pytest.mark.unit
    def test_result_discarded_if_already_terminal(self, db, generating_quiz, mock_openai, inline_executor):
        fail_quiz(db, generating_quiz.id, STALE_QUIZ_ERROR)

        run_quiz_generation(generating_quiz.id, [SAMPLE_STUDY_TEXT], SETTINGS)

        quiz = reload(db, generating_quiz.id)
        assert quiz.status == QUIZ_STATUS_FAILED
        assert quiz.generation_error == STALE_QUIZ_ERROR
        assert quiz.questions == []

    @pytest.mark.unit
    def test_store_failure_does_not_raise(self, generating_quiz, mock_openai, inline_executor):
        with patch.object(background_tasks, "complete_quiz", side_effect=RuntimeError("db gone")):
            with patch.object(background_tasks, "fail_quiz", side_effect=RuntimeError("db gone")):
                run_quiz_generation(generating_quiz.id, [SAMPLE_STUDY_TEXT], SETTINGS)


class TestStaleSweep:

    @pytest.mark.unit
    def test_sweep_fails_stale_quiz(self, db, stale_quiz, inline_executor):
        assert sweep_stale_quizzes(max_age_minutes=10) == 1

        quiz = reload(db, stale_quiz.id)
        assert quiz.status == QUIZ_STATUS_FAILED
        assert quiz.generation_error == STALE_QUIZ_ERROR

    @pytest.mark.unit
    def test_sweeper_survives_failed_sweep(self, inline_executor):
        calls = []

        def flaky_sweep(max_age_minutes):
            calls.append(max_age_minutes)
            if len(calls) == 1:
                raise RuntimeError("database locked")
            return 0

        async def run():
            task = asyncio.create_task(run_stale_quiz_sweeper(interval_seconds=0, max_age_minutes=7))
            while len(calls) < 2:
                await asyncio.sleep(0.01)
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        with patch.object(background_tasks, "sweep_stale_quizzes", side_effect=flaky_sweep):
            asyncio.run(asyncio.wait_for(run(), timeout=5))

        assert calls[:2] == [7, 7]
