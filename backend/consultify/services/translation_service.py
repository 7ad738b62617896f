# consultify/services/translation_service.py
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from consultify.models.translation import MessageTranslation, TranslationCacheEntry, text_digest
from consultify.services.identity import DEFAULT_LANGUAGE
from consultify.services.translation_provider import TranslationProviderError

logger = logging.getLogger(__name__)


class Translator:
    """Cache-aside translation in front of an external provider.

    Two caches are consulted: the raw-text cache keyed by
    (text, source, target) and the per-message cache keyed by
    (message_id, target). Provider failures never reach the caller; the
    original text is returned and nothing is cached, so a later call retries.
    """

    def __init__(self, db: Session, provider) -> None:
        self.db = db
        self.provider = provider

    # ------------------------------- Raw-text cache -------------------------------
    def _cached_text(self, text: str, source: str, target: str) -> Optional[str]:
        entry = (
            self.db.query(TranslationCacheEntry)
            .filter_by(text_hash=text_digest(text), source_language=source, target_language=target)
            .first()
        )
        return entry.translated_text if entry else None

    def _store(self, row) -> None:
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            # another request cached the same key first; its value is equivalent
            self.db.rollback()
            logger.info(f"Translation cache row already written by a concurrent request: {type(row).__name__}")

    def _lookup_or_fetch(self, text: str, source: str, target: str) -> str:
        cached = self._cached_text(text, source, target)
        if cached is not None:
            logger.debug("Translation served from text cache")
            return cached

        translated = self.provider.translate(text, source, target)
        self._store(
            TranslationCacheEntry(
                text_hash=text_digest(text),
                text=text,
                source_language=source,
                target_language=target,
                translated_text=translated,
            )
        )
        return translated

    def translate(self, text: str, source_language: str, target_language: str) -> str:
        if source_language == target_language:
            return text
        try:
            return self._lookup_or_fetch(text, source_language, target_language)
        except TranslationProviderError as e:
            logger.error(f"Translation failed ({source_language}->{target_language}): {e}")
            return text

    # ------------------------------- Message-scoped cache -------------------------------
    def translate_message(self, message_id: str, text: str, source_language: str, target_language: str) -> str:
        if source_language == target_language:
            return text

        existing = (
            self.db.query(MessageTranslation)
            .filter_by(message_id=message_id, target_language=target_language)
            .first()
        )
        if existing:
            return existing.translated_text

        try:
            translated = self._lookup_or_fetch(text, source_language, target_language)
        except TranslationProviderError as e:
            logger.error(f"Translation failed for message {message_id}: {e}")
            return text

        self._store(
            MessageTranslation(
                message_id=message_id,
                target_language=target_language,
                original_text=text,
                translated_text=translated,
                source_language=source_language,
            )
        )
        return translated

    def translate_messages(
        self,
        messages: Iterable,
        target_language: str,
        sender_languages: Dict[str, str],
    ) -> List[Dict[str, str]]:
        """Translate message rows, taking each source locale from its sender."""
        results = []
        for message in messages:
            source = sender_languages.get(message.sender_id, DEFAULT_LANGUAGE)
            results.append({
                "messageId": message.id,
                "originalText": message.content,
                "translatedText": self.translate_message(message.id, message.content, source, target_language),
                "sourceLanguage": source,
                "targetLanguage": target_language,
            })
        return results
