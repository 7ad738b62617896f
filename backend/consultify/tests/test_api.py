# tests/test_api.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from consultify.database import get_db
from consultify.dependencies import get_email_enqueuer, get_identity, get_llm
from consultify.main import app
from consultify.models.translation import MessageTranslation, TranslationCacheEntry
from consultify.services.translation_provider import get_translation_provider


class ScriptedLLM:
    def __init__(self, *replies):
        self.replies = list(replies)

    def chat(self, turns):
        return self.replies.pop(0)


@pytest.fixture
def llm():
    return ScriptedLLM("What brings you here today?")


@pytest.fixture
def queued():
    return []


@pytest.fixture
def client(engine, identity, provider, llm, queued):
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity] = lambda: identity
    app.dependency_overrides[get_translation_provider] = lambda: provider
    app.dependency_overrides[get_llm] = lambda: llm
    app.dependency_overrides[get_email_enqueuer] = lambda: queued.append
    yield TestClient(app)
    app.dependency_overrides.clear()


def _start(client):
    resp = client.post("/consultations/start-ai-triage", json={"patientId": "patient-1"})
    assert resp.status_code == 200
    return resp.json()["consultation"]["id"]


def test_root(client):
    assert client.get("/").json() == {"message": "API is running"}


def test_triage_to_chat_flow(client, provider):
    consultation_id = _start(client)

    resp = client.post(
        "/consultations/complete-triage",
        json={"consultationId": consultation_id, "aiSummary": "TRIAGE_COMPLETE: shortness of breath"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["consultation"]["consultationType"] == "HUMAN"
    assert body["consultation"]["aiTriageStatus"] == "COMPLETED"
    assert body["doctor"]["id"] == "doctor-1"
    assert body["introMessage"]["content"].startswith("[fr] ")
    calls = len(provider.calls)

    resp = client.get(f"/consultations/{consultation_id}/messages", params={"userId": "patient-1"})
    assert resp.status_code == 200
    intro = resp.json()["messages"][-1]
    assert intro["messageType"] == "DOCTOR_INTRO"
    assert intro["content"] == body["introMessage"]["content"]
    assert len(provider.calls) == calls


def test_ai_triage_turn_without_marker(client):
    resp = client.post("/consultations/ai-triage", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.json() == {"response": "What brings you here today?", "isComplete": False}


def test_ai_triage_marker_hands_off(client, llm):
    consultation_id = _start(client)
    llm.replies = ["Thanks. URGENT_TRIAGE_COMPLETE: crushing chest pain"]

    resp = client.post(
        "/consultations/ai-triage",
        json={"messages": [{"role": "user", "content": "my chest hurts"}], "consultationId": consultation_id},
    )

    body = resp.json()
    assert body["isComplete"] is True
    assert body["handoff"]["consultation"]["urgency"] == "HIGH"
    assert body["handoff"]["consultation"]["triageSummary"] == "URGENT_TRIAGE_COMPLETE: crushing chest pain"


def test_complete_triage_errors(client, identity):
    resp = client.post("/consultations/complete-triage", json={"consultationId": "missing", "aiSummary": "x"})
    assert resp.status_code == 404

    consultation_id = _start(client)
    identity.users = {k: v for k, v in identity.users.items() if v.role != "doctor"}
    resp = client.post(
        "/consultations/complete-triage",
        json={"consultationId": consultation_id, "aiSummary": "TRIAGE_COMPLETE: cough"},
    )
    assert resp.status_code == 409

    resp = client.get(f"/consultations/{consultation_id}")
    assert resp.json()["consultation"]["doctorId"] is None


def test_post_message_typing_and_read(client):
    consultation_id = _start(client)

    resp = client.post(
        f"/consultations/{consultation_id}/messages",
        json={"senderId": "doctor-1", "type": "message", "content": "How are you?"},
    )
    message = resp.json()["message"]
    assert message["senderName"] == "Sarah Smith"

    client.post(f"/consultations/{consultation_id}/messages", json={"senderId": "doctor-1", "type": "typing", "content": "x"})
    view = client.get(f"/consultations/{consultation_id}/messages", params={"userId": "patient-1"}).json()
    assert view["typingUsers"] == ["Sarah Smith"]
    assert view["messages"][-1]["content"] == "[fr] How are you?"

    assert client.post("/messages/read", json={"messageId": message["id"], "userId": "patient-1"}).json() == {"success": True}

    bad = client.post(f"/consultations/{consultation_id}/messages", json={"senderId": "doctor-1", "type": "poke"})
    assert bad.status_code == 400


def test_prescription_endpoint(client, queued):
    consultation_id = _start(client)
    client.post(
        "/consultations/complete-triage",
        json={"consultationId": consultation_id, "aiSummary": "TRIAGE_COMPLETE: ear ache"},
    )

    resp = client.post(
        f"/consultations/{consultation_id}/prescription",
        json={"medications": [{"drug_name": "Amoxicillin", "amount": "500mg", "frequency": "3x daily"}]},
    )
    assert resp.status_code == 200
    assert resp.json()["message"]["messageType"] == "PRESCRIPTION"
    assert len(queued) == 1

    resp = client.post(f"/consultations/{consultation_id}/prescription", json={"medications": [{"drug_name": ""}]})
    assert resp.status_code == 400


def test_translate_endpoints(client, provider):
    resp = client.post("/translate-text", json={"text": "hello", "sourceLanguage": "en", "targetLanguage": "de"})
    assert resp.json() == {"translatedText": "[de] hello"}
    client.post("/translate-text", json={"text": "hello", "sourceLanguage": "en", "targetLanguage": "de"})
    assert len(provider.calls) == 1

    resp = client.post("/translate", json={"text": "hello", "messageId": "m1", "userId": "patient-1"})
    assert resp.json() == {"translatedText": "[fr] hello", "sourceLanguage": "en", "targetLanguage": "fr"}

    resp = client.post("/translate", json={"text": "hello"})
    assert resp.status_code == 400


def test_batch_translate(client):
    consultation_id = _start(client)
    message = client.post(
        f"/consultations/{consultation_id}/messages",
        json={"senderId": "doctor-1", "type": "message", "content": "Rest well"},
    ).json()["message"]

    resp = client.get("/translate", params={"messageIds": message["id"], "userId": "patient-1"})

    [translation] = resp.json()["translations"]
    assert translation["translatedText"] == "[fr] Rest well"
    assert translation["sourceLanguage"] == "en"


def test_consultation_listing_status_and_stats(client):
    consultation_id = _start(client)

    listing = client.get("/consultations", params={"userId": "patient-1", "userRole": "patient"}).json()
    assert [c["id"] for c in listing["consultations"]] == [consultation_id]

    resp = client.patch(f"/consultations/{consultation_id}/status", json={"status": "CANCELLED"})
    assert resp.json()["consultation"]["status"] == "CANCELLED"
    assert client.patch(f"/consultations/{consultation_id}/status", json={"status": "COMPLETED"}).status_code == 409

    stats = client.get("/user/stats", params={"userId": "patient-1", "userRole": "patient"}).json()
    assert stats["consultations"] == 1


def test_direct_booking(client, identity):
    resp = client.post("/consultations", json={"patientId": "patient-1", "title": "Follow-up"})
    assert resp.json()["consultation"]["doctorId"] == "doctor-1"

    identity.users = {}
    assert client.post("/consultations", json={"patientId": "patient-1", "title": "Again"}).status_code == 400


def test_translate_without_message_id_uses_text_cache(client, provider, db_session):
    first = client.post("/translate", json={"text": "hello", "targetLanguage": "fr"}).json()
    second = client.post("/translate", json={"text": "goodbye", "targetLanguage": "fr"}).json()
    client.post("/translate", json={"text": "hello", "targetLanguage": "fr"})

    assert first["translatedText"] == "[fr] hello"
    assert second["translatedText"] == "[fr] goodbye"
    assert len(provider.calls) == 2
    assert db_session.query(MessageTranslation).count() == 0
    assert db_session.query(TranslationCacheEntry).count() == 2


def test_typing_and_read_receipts_require_existing_rows(client):
    resp = client.post("/consultations/missing/messages", json={"senderId": "doctor-1", "type": "typing", "content": "x"})
    assert resp.status_code == 404

    resp = client.post("/messages/read", json={"messageId": "missing", "userId": "patient-1"})
    assert resp.status_code == 404
