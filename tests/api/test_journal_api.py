import pytest

from pattern_mirror.core.models import AnalyticsEventType
from pattern_mirror.errors import GenerationFailure
from pattern_mirror.generation.llm_client import JOURNAL_PARAMS

VALID_INPUT = {"name": "Ada", "birthDate": "1990-01-01", "birthCity": "London, UK"}
PROMPT = "Where do you feel most like yourself lately?"


@pytest.fixture
def reading_id(client, fake_client, reading_text):
    fake_client.queue(reading_text)
    return client.post("/api/generate-reading", json=VALID_INPUT).json()["readingId"]


def test_accept_returns_answer_and_records_once(client, fake_client, analytics):
    fake_client.queue("Some people find that quiet mornings...")

    response = client.post("/api/answer-prompt", json={"journalPrompt": PROMPT, "userInputs": VALID_INPUT})

    assert response.status_code == 200
    assert response.json() == {"answer": "Some people find that quiet mornings..."}
    call = fake_client.calls[-1]
    assert call["params"] == JOURNAL_PARAMS
    assert PROMPT in call["user"]
    assert "Birth City: London, UK" in call["user"]
    assert len(analytics.of_type(AnalyticsEventType.PROMPT_ACCEPTED)) == 1


def test_missing_prompt_is_invalid_input(client, fake_client):
    response = client.post("/api/answer-prompt", json={"userInputs": VALID_INPUT})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid input", "details": "journalPrompt: Journal prompt is required"}
    assert fake_client.calls == []


def test_invalid_user_inputs_are_reported_with_prefix(client):
    response = client.post(
        "/api/answer-prompt",
        json={"journalPrompt": PROMPT, "userInputs": {**VALID_INPUT, "birthDate": "yesterday"}},
    )
    assert response.status_code == 400
    assert "userInputs.birthDate" in response.json()["details"]


def test_upstream_failure_is_500_and_not_recorded(client, fake_client, analytics):
    fake_client.queue(GenerationFailure("timed out"))
    response = client.post("/api/answer-prompt", json={"journalPrompt": PROMPT, "userInputs": VALID_INPUT})
    assert response.status_code == 500
    assert response.json()["details"] == "timed out"
    assert analytics.of_type(AnalyticsEventType.PROMPT_ACCEPTED) == []


def test_answer_for_reading_is_stored_and_final(client, fake_client, memory_store, reading_id):
    fake_client.queue("First reflection")
    body = {"journalPrompt": PROMPT, "readingId": reading_id}

    assert client.post("/api/answer-prompt", json=body).status_code == 200
    assert [r.answer for r in memory_store.journal_responses] == ["First reflection"]

    again = client.post("/api/answer-prompt", json=body)
    assert again.status_code == 409
    assert client.post("/api/reject-prompt", json=body).status_code == 409


def test_failed_answer_can_be_retried(client, fake_client, reading_id):
    fake_client.queue(GenerationFailure("timed out"), "Second try")
    body = {"journalPrompt": PROMPT, "readingId": reading_id}

    assert client.post("/api/answer-prompt", json=body).status_code == 500
    response = client.post("/api/answer-prompt", json=body)
    assert response.status_code == 200
    assert response.json()["answer"] == "Second try"


def test_answer_for_unknown_reading_is_404(client):
    response = client.post("/api/answer-prompt", json={"journalPrompt": PROMPT, "readingId": "missing"})
    assert response.status_code == 404


def test_reject_declines_and_records(client, fake_client, analytics, reading_id):
    calls_before = len(fake_client.calls)

    response = client.post("/api/reject-prompt", json={"journalPrompt": PROMPT, "readingId": reading_id})

    assert response.status_code == 200
    assert response.json() == {"state": "declined"}
    assert len(fake_client.calls) == calls_before
    [event] = analytics.of_type(AnalyticsEventType.PROMPT_REJECTED)
    assert event["reading_id"] == reading_id
