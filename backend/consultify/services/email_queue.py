"""
Prescription email queue
========================
Prescription emails are handed to a Redis list and sent by a background
worker, outside the request that created the prescription. A job that fails
is re-queued until EMAIL_MAX_ATTEMPTS, then parked on the dead-letter list.
A job being sent sits on the processing list; the worker re-queues whatever
is left there when it starts.
"""
import asyncio
import json
import logging
import uuid
from typing import Dict, List, Optional

import requests

from consultify.config import (
    EMAIL_FROM,
    EMAIL_MAX_ATTEMPTS,
    EMAIL_WORKER_POLL_SECONDS,
    HTTP_TIMEOUT_SECONDS,
    RESEND_API_KEY,
)
from consultify.services.redis_client import get_redis

logger = logging.getLogger(__name__)

QUEUE_KEY = "consultify:queue:prescription_emails"
PROCESSING_KEY = f"{QUEUE_KEY}:processing"
DEAD_LETTER_KEY = f"{QUEUE_KEY}:dead"


class EmailDeliveryError(Exception):
    pass


class ResendEmailSender:
    API_URL = "https://api.resend.com/emails"

    def __init__(self, api_key: str = RESEND_API_KEY, sender: str = EMAIL_FROM):
        self.api_key = api_key
        self.sender = sender

    def send(self, payload: Dict) -> None:
        if not self.api_key:
            raise EmailDeliveryError("RESEND_API_KEY not configured")
        try:
            response = requests.post(
                self.API_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.sender,
                    "to": payload["email"],
                    "subject": "Your Prescription",
                    "text": render_prescription_text(payload),
                },
                timeout=HTTP_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise EmailDeliveryError(str(exc)) from exc


def render_prescription_text(payload: Dict) -> str:
    lines = [
        f"Dear {payload.get('patientName', 'Patient')},",
        "",
        f"Dr. {payload.get('doctorName', 'Doctor')} has sent you a prescription ({payload.get('timestamp', '')}):",
        "",
    ]
    for med in payload.get("medications", []):
        lines.append(f"- {med['drug_name']}: {med['amount']}, {med['frequency']}")
    return "\n".join(lines)


# ------------------------------- Queue operations -------------------------------
def enqueue_prescription_email(payload: Dict, client=None) -> str:
    if client is None:
        client = get_redis()
    job_id = uuid.uuid4().hex
    client.lpush(QUEUE_KEY, json.dumps({"id": job_id, "payload": payload, "attempts": 0}))
    logger.info(f"Queued prescription email job {job_id} for {payload.get('email')}")
    return job_id


def process_next_job(client=None, sender=None, max_attempts: int = EMAIL_MAX_ATTEMPTS) -> Optional[str]:
    """Send one queued email. Returns the job status, or None if the queue was empty.

    The job is moved onto the processing list while it is being sent and only
    removed once it has been sent, re-queued or dead-lettered, so a worker
    that dies mid-send leaves it recoverable by requeue_stalled().
    """
    if client is None:
        client = get_redis()
    if sender is None:
        sender = ResendEmailSender()

    raw = client.lmove(QUEUE_KEY, PROCESSING_KEY, "RIGHT", "LEFT")
    if raw is None:
        return None
    job = json.loads(raw)

    try:
        sender.send(job["payload"])
    except Exception as e:
        job["attempts"] += 1
        job["last_error"] = str(e)
        dead = job["attempts"] >= max_attempts
        pipe = client.pipeline()
        pipe.lrem(PROCESSING_KEY, 1, raw)
        pipe.lpush(DEAD_LETTER_KEY if dead else QUEUE_KEY, json.dumps(job))
        pipe.execute()
        if dead:
            logger.error(f"Prescription email job {job['id']} failed {job['attempts']} times, moved to dead letter: {e}")
            return "dead"
        logger.warning(f"Prescription email job {job['id']} failed (attempt {job['attempts']}), retrying: {e}")
        return "retry"

    client.lrem(PROCESSING_KEY, 1, raw)
    logger.info(f"Prescription email sent successfully to: {job['payload'].get('email')}")
    return "sent"


def requeue_stalled(client=None) -> int:
    """Return jobs left on the processing list by a dead worker to the queue."""
    if client is None:
        client = get_redis()
    moved = 0
    while client.lmove(PROCESSING_KEY, QUEUE_KEY, "LEFT", "RIGHT") is not None:
        moved += 1
    if moved:
        logger.warning(f"Re-queued {moved} stalled prescription email job(s)")
    return moved


def dead_letters(client=None) -> List[Dict]:
    if client is None:
        client = get_redis()
    return [json.loads(raw) for raw in client.lrange(DEAD_LETTER_KEY, 0, -1)]


async def run_email_worker(poll_seconds: float = EMAIL_WORKER_POLL_SECONDS):
    """Background loop draining the email queue."""
    sender = ResendEmailSender()
    try:
        await asyncio.to_thread(requeue_stalled)
    except Exception as e:
        logger.error(f"Email worker could not recover stalled jobs: {e}")
    while True:
        try:
            status = await asyncio.to_thread(process_next_job, None, sender)
        except Exception as e:
            logger.error(f"Email worker error: {e}")
            status = None
        if status in (None, "retry"):
            await asyncio.sleep(poll_seconds)
