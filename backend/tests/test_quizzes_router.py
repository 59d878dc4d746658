"""
Tests for the quizzes router.

Generation runs through an inline executor, so by the time
POST /api/quizzes/generate returns the quiz is already terminal.
"""

import pytest
from fastapi.testclient import TestClient

from app.services.openai_service import openai_service
from tests.factories import create_quiz_record, create_uploaded_file
from tests.mocks.openai_mocks import (
    INVALID_QUESTIONS,
    create_mock_questions,
    mock_openai_completion,
    wrap_in_markdown,
)


def generate(client: TestClient, file_ids, **settings):
    return client.post("/api/quizzes/generate", json={"file_ids": file_ids, **settings})


class TestGenerateQuiz:

    @pytest.mark.api
    def test_accepted_then_completed(self, client: TestClient, test_file, mock_openai, inline_executor):
        response = generate(client, [test_file.id], num_questions=10)

        assert response.status_code == 202
        data = response.json()
        assert data["message"] == "Quiz generation started"
        assert data["status"] == "generating"
        assert len(inline_executor.submitted) == 1

        status = client.get(f"/api/quizzes/{data['quiz_id']}/status").json()
        assert status == {"quiz_id": data["quiz_id"], "status": "completed", "error": None}

        quiz = client.get(f"/api/quizzes/{data['quiz_id']}").json()
        assert len(quiz["questions"]) == 10
        assert quiz["source_files"][0]["original_name"] == test_file.original_name
        assert all(q["correct_answer"] in q["options"] for q in quiz["questions"])

    @pytest.mark.api
    def test_fenced_response_with_trailing_comma_completes(self, client: TestClient, test_file, mock_openai):
        mock_openai.chat.completions.create.return_value = mock_openai_completion(
            wrap_in_markdown(create_mock_questions(10), trailing_comma=True)
        )

        quiz_id = generate(client, [test_file.id], num_questions=10).json()["quiz_id"]

        quiz = client.get(f"/api/quizzes/{quiz_id}").json()
        assert quiz["status"] == "completed"
        assert len(quiz["questions"]) == 10

    @pytest.mark.api
    def test_low_yield_fails_quiz(self, client: TestClient, test_file, mock_openai):
        mock_openai.chat.completions.create.return_value = mock_openai_completion(
            create_mock_questions(4) + INVALID_QUESTIONS
        )

        quiz_id = generate(client, [test_file.id], num_questions=10).json()["quiz_id"]

        status = client.get(f"/api/quizzes/{quiz_id}/status").json()
        assert status["status"] == "failed"
        assert status["error"] == (
            "Failed to generate quiz with AI: Only generated 4 valid questions out of 10 requested"
        )
        assert client.get(f"/api/quizzes/{quiz_id}").status_code == 404

    @pytest.mark.api
    def test_provider_failure_fails_quiz(self, client: TestClient, test_file, mock_openai):
        mock_openai.chat.completions.create.side_effect = RuntimeError("upstream timeout")

        quiz_id = generate(client, [test_file.id]).json()["quiz_id"]

        status = client.get(f"/api/quizzes/{quiz_id}/status").json()
        assert status["status"] == "failed"
        assert "upstream timeout" in status["error"]
        assert openai_service.get_status()["recent_performance"]["total_calls"] == 1

    @pytest.mark.api
    def test_only_files_with_text_reach_the_prompt(self, client: TestClient, db, test_user, mock_openai):
        with_text = create_uploaded_file(db, test_user, extracted_text="Krebs cycle notes")
        without_text = create_uploaded_file(db, test_user, extracted_text=None)

        generate(client, [without_text.id, with_text.id])

        prompt = mock_openai.chat.completions.create.call_args.kwargs["messages"][-1]["content"]
        assert "Krebs cycle notes" in prompt

    @pytest.mark.api
    def test_no_files_selected(self, client: TestClient, mock_openai):
        response = generate(client, [])

        assert response.status_code == 400
        assert response.json()["detail"] == "No files selected"
        assert mock_openai.chat.completions.create.call_count == 0

    @pytest.mark.api
    def test_unknown_files(self, client: TestClient, mock_openai):
        response = generate(client, ["does-not-exist"])

        assert response.status_code == 404
        assert response.json()["detail"] == "No valid files found"

    @pytest.mark.api
    def test_other_users_files_not_usable(self, client: TestClient, db, other_user, mock_openai):
        foreign = create_uploaded_file(db, other_user)

        response = generate(client, [foreign.id])

        assert response.status_code == 404

    @pytest.mark.api
    def test_files_without_text(self, client: TestClient, db, test_user, mock_openai):
        empty = create_uploaded_file(db, test_user, extracted_text=None)

        response = generate(client, [empty.id])

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "No text content found in uploaded files. Please upload files with text content."
        )

    @pytest.mark.api
    @pytest.mark.parametrize("settings", [
        {"num_questions": 0},
        {"num_questions": 51},
        {"quiz_type": "essay"},
        {"difficulty": "impossible"},
        {"time_limit": 0},
    ])
    def test_invalid_settings_rejected(self, client: TestClient, test_file, mock_openai, settings):
        response = generate(client, [test_file.id], **settings)

        assert response.status_code == 422
        assert mock_openai.chat.completions.create.call_count == 0


class TestReadQuizzes:

    @pytest.mark.api
    def test_list_excludes_questions_and_unfinished(self, client: TestClient, completed_quiz, generating_quiz):
        response = client.get("/api/quizzes")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["quizzes"][0]["id"] == completed_quiz.id
        assert "questions" not in data["quizzes"][0]

    @pytest.mark.api
    def test_generating_quiz_status_only(self, client: TestClient, generating_quiz):
        assert client.get(f"/api/quizzes/{generating_quiz.id}/status").json()["status"] == "generating"
        assert client.get(f"/api/quizzes/{generating_quiz.id}").status_code == 404

    @pytest.mark.api
    def test_other_users_quiz_is_not_found(self, client: TestClient, db, other_user):
        foreign = create_quiz_record(db, other_user)

        assert client.get(f"/api/quizzes/{foreign.id}").status_code == 404
        assert client.get(f"/api/quizzes/{foreign.id}/status").status_code == 404
        assert client.delete(f"/api/quizzes/{foreign.id}").status_code == 404

    @pytest.mark.api
    def test_owner_sees_quiz_other_user_does_not(self, client: TestClient, test_file, other_user, mock_openai, login_as):
        quiz_id = generate(client, [test_file.id]).json()["quiz_id"]

        login_as(other_user)

        assert client.get(f"/api/quizzes/{quiz_id}/status").status_code == 404
        assert client.get("/api/quizzes").json()["total"] == 0


class TestDeleteQuiz:

    @pytest.mark.api
    def test_deleted_quiz_disappears(self, client: TestClient, completed_quiz):
        assert client.delete(f"/api/quizzes/{completed_quiz.id}").status_code == 200

        assert client.get(f"/api/quizzes/{completed_quiz.id}").status_code == 404
        assert client.get("/api/quizzes").json()["total"] == 0

    @pytest.mark.api
    def test_attempts_survive_quiz_deletion(self, client: TestClient, completed_quiz, test_attempt):
        client.delete(f"/api/quizzes/{completed_quiz.id}")

        attempts = client.get("/api/attempts").json()["attempts"]
        assert [a["id"] for a in attempts] == [test_attempt.id]
