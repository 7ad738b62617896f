# tests/test_email_queue.py
import fakeredis
import pytest

from consultify.services.email_queue import (
    PROCESSING_KEY,
    QUEUE_KEY,
    dead_letters,
    enqueue_prescription_email,
    process_next_job,
    render_prescription_text,
    requeue_stalled,
)

PAYLOAD = {
    "email": "jane@example.com",
    "medications": [{"drug_name": "Amoxicillin", "amount": "500mg", "frequency": "3x daily"}],
    "doctorName": "Sarah Smith",
    "patientName": "Jane Wilson",
    "timestamp": "2026-01-01T12:00:00",
}


class RecordingSender:
    def __init__(self, failures=0):
        self.failures = failures
        self.sent = []

    def send(self, payload):
        if self.failures:
            self.failures -= 1
            raise RuntimeError("smtp down")
        self.sent.append(payload)


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


def test_empty_queue(redis_client):
    assert process_next_job(redis_client, RecordingSender()) is None


def test_job_is_sent(redis_client):
    enqueue_prescription_email(PAYLOAD, client=redis_client)
    sender = RecordingSender()

    assert process_next_job(redis_client, sender) == "sent"
    assert sender.sent == [PAYLOAD]
    assert redis_client.llen(QUEUE_KEY) == 0


def test_failed_job_is_retried(redis_client):
    enqueue_prescription_email(PAYLOAD, client=redis_client)
    sender = RecordingSender(failures=1)

    assert process_next_job(redis_client, sender) == "retry"
    assert process_next_job(redis_client, sender) == "sent"
    assert sender.sent == [PAYLOAD]


def test_job_dead_lettered_after_max_attempts(redis_client):
    enqueue_prescription_email(PAYLOAD, client=redis_client)
    sender = RecordingSender(failures=10)

    statuses = [process_next_job(redis_client, sender, max_attempts=3) for _ in range(3)]

    assert statuses == ["retry", "retry", "dead"]
    assert redis_client.llen(QUEUE_KEY) == 0
    [dead] = dead_letters(redis_client)
    assert dead["attempts"] == 3
    assert dead["payload"] == PAYLOAD
    assert "smtp down" in dead["last_error"]


def test_jobs_are_processed_in_arrival_order(redis_client):
    first = dict(PAYLOAD, email="a@example.com")
    second = dict(PAYLOAD, email="b@example.com")
    enqueue_prescription_email(first, client=redis_client)
    enqueue_prescription_email(second, client=redis_client)
    sender = RecordingSender()

    process_next_job(redis_client, sender)
    process_next_job(redis_client, sender)

    assert [p["email"] for p in sender.sent] == ["a@example.com", "b@example.com"]


def test_render_lists_medications():
    text = render_prescription_text(PAYLOAD)
    assert "Dear Jane Wilson," in text
    assert "- Amoxicillin: 500mg, 3x daily" in text


class WorkerKilled(BaseException):
    pass


class CrashingSender:
    """Simulates the worker dying mid-send."""

    def send(self, payload):
        raise WorkerKilled()


def test_job_in_flight_is_kept_on_processing_list(redis_client):
    enqueue_prescription_email(PAYLOAD, client=redis_client)

    with pytest.raises(WorkerKilled):
        process_next_job(redis_client, CrashingSender())

    assert redis_client.llen(QUEUE_KEY) == 0
    assert redis_client.llen(PROCESSING_KEY) == 1

    assert requeue_stalled(redis_client) == 1
    sender = RecordingSender()
    assert process_next_job(redis_client, sender) == "sent"
    assert sender.sent == [PAYLOAD]


def test_processing_list_is_empty_after_each_outcome(redis_client):
    enqueue_prescription_email(PAYLOAD, client=redis_client)

    assert process_next_job(redis_client, RecordingSender(failures=1)) == "retry"
    assert redis_client.llen(PROCESSING_KEY) == 0
    assert process_next_job(redis_client, RecordingSender(failures=1), max_attempts=2) == "dead"
    assert redis_client.llen(PROCESSING_KEY) == 0
    assert requeue_stalled(redis_client) == 0


def test_requeue_keeps_arrival_order(redis_client):
    for email in ("a@example.com", "b@example.com"):
        enqueue_prescription_email(dict(PAYLOAD, email=email), client=redis_client)
    redis_client.lmove(QUEUE_KEY, PROCESSING_KEY, "RIGHT", "LEFT")
    redis_client.lmove(QUEUE_KEY, PROCESSING_KEY, "RIGHT", "LEFT")

    requeue_stalled(redis_client)
    sender = RecordingSender()
    process_next_job(redis_client, sender)
    process_next_job(redis_client, sender)

    assert [p["email"] for p in sender.sent] == ["a@example.com", "b@example.com"]
