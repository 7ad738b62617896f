# consultify/models/__init__.py
from .consultation import Consultation, Message, MessageRead, Prescription, TypingIndicator
from .translation import MessageTranslation, TranslationCacheEntry

__all__ = [
    "Consultation",
    "Message",
    "MessageRead",
    "Prescription",
    "TypingIndicator",
    "MessageTranslation",
    "TranslationCacheEntry",
]
