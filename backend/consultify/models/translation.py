# consultify/models/translation.py
import hashlib
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint

from consultify.database import Base


def text_digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class TranslationCacheEntry(Base):
    """Raw-text translation cache, written once per (text, source, target).

    The unique key is on ``text_hash`` so arbitrarily long messages never
    land in a btree index.
    """

    __tablename__ = "translation_cache"
    __table_args__ = (
        UniqueConstraint("text_hash", "source_language", "target_language", name="uq_translation_cache_key"),
    )

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    text_hash = Column(String(64), nullable=False)
    text = Column(Text, nullable=False)
    source_language = Column(String(16), nullable=False)
    target_language = Column(String(16), nullable=False)
    translated_text = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class MessageTranslation(Base):
    """Per-message translation cache keyed by (message_id, target_language).

    message_id is not a foreign key: prescription line items are
    cached under synthetic ids such as ``med-<prescription>-<drug>``.
    """

    __tablename__ = "message_translations"
    __table_args__ = (
        UniqueConstraint("message_id", "target_language", name="uq_message_translations_key"),
    )

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    message_id = Column(String, nullable=False, index=True)
    target_language = Column(String(16), nullable=False)
    original_text = Column(Text, nullable=False)
    translated_text = Column(Text, nullable=False)
    source_language = Column(String(16), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
