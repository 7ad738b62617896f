# consultify/dependencies.py
from fastapi import Depends
from sqlalchemy.orm import Session

from consultify.database import get_db
from consultify.services.ai_triage import get_llm_client
from consultify.services.email_queue import enqueue_prescription_email
from consultify.services.identity import get_identity_provider
from consultify.services.translation_provider import get_translation_provider
from consultify.services.translation_service import Translator


def get_identity():
    return get_identity_provider()


def get_translator(db: Session = Depends(get_db), provider=Depends(get_translation_provider)) -> Translator:
    return Translator(db, provider)


def get_llm():
    return get_llm_client()


def get_email_enqueuer():
    return enqueue_prescription_email
