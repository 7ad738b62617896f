# consultify/services/message_service.py
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from consultify.config import TYPING_TTL_SECONDS
from consultify.exceptions import MessageNotFound
from consultify.models.consultation import Message, MessageRead, MessageType, TypingIndicator
from consultify.services.consultation_service import get_consultation_or_raise
from consultify.services.identity import profile_or_placeholder
from consultify.services.translation_service import Translator

logger = logging.getLogger(__name__)

# system messages are shown as written, everything else in the reader's language
_UNTRANSLATED_TYPES = {MessageType.SYSTEM}


def list_messages(
    db: Session,
    consultation_id: str,
    viewer_id: str,
    identity,
    translator: Translator,
    now: Optional[datetime] = None,
) -> Dict:
    viewer = profile_or_placeholder(identity, viewer_id)
    viewer_language = viewer.language

    messages = (
        db.query(Message)
        .filter(Message.consultation_id == consultation_id)
        .order_by(Message.created_at.asc())
        .all()
    )

    senders = {sid: profile_or_placeholder(identity, sid) for sid in {m.sender_id for m in messages}}

    enriched = []
    for message in messages:
        sender = senders[message.sender_id]
        content = message.content
        if message.message_type not in _UNTRANSLATED_TYPES:
            content = translator.translate_message(message.id, message.content, sender.language, viewer_language)

        data = message.to_dict()
        data.update(
            content=content,
            originalContent=message.content,
            senderName=sender.name,
            senderLanguage=sender.language,
            read_by=[r.user_id for r in message.reads],
            prescription_data={"medications": message.prescription.medications} if message.prescription else None,
        )
        enriched.append(data)

    typing_users = [
        profile_or_placeholder(identity, indicator.user_id).name
        for indicator in active_typing(db, consultation_id, exclude_user_id=viewer_id, now=now)
    ]

    return {
        "messages": enriched,
        "typingUsers": typing_users,
        "userLanguage": viewer_language,
    }


def post_message(db: Session, consultation_id: str, sender_id: str, content: str, identity) -> Dict:
    get_consultation_or_raise(db, consultation_id)
    message = Message(
        consultation_id=consultation_id,
        sender_id=sender_id,
        content=content,
        message_type=MessageType.NORMAL,
    )
    db.add(message)
    db.flush()
    db.add(MessageRead(message_id=message.id, user_id=sender_id))
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(message)

    sender = profile_or_placeholder(identity, sender_id)
    data = message.to_dict()
    data.update(senderName=sender.name, senderLanguage=sender.language, originalContent=content)
    return data


def mark_read(db: Session, message_id: str, user_id: str) -> None:
    """Record a read receipt; repeating it for the same reader is a no-op."""
    if db.get(Message, message_id) is None:
        raise MessageNotFound(f"Message {message_id} not found")
    db.add(MessageRead(message_id=message_id, user_id=user_id))
    try:
        db.commit()
    except IntegrityError:
        # (message_id, user_id) is unique; the receipt already exists
        db.rollback()
        logger.debug(f"Message {message_id} already read by {user_id}")


# ------------------------------- Typing indicators -------------------------------
def set_typing(db: Session, consultation_id: str, user_id: str, typing: bool, now: Optional[datetime] = None) -> None:
    get_consultation_or_raise(db, consultation_id)
    now = now or datetime.utcnow()
    indicator = db.query(TypingIndicator).filter_by(consultation_id=consultation_id, user_id=user_id).first()
    if typing:
        if indicator:
            indicator.updated_at = now
        else:
            db.add(TypingIndicator(consultation_id=consultation_id, user_id=user_id, updated_at=now))
    elif indicator:
        db.delete(indicator)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


def active_typing(
    db: Session,
    consultation_id: str,
    exclude_user_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[TypingIndicator]:
    """Indicators refreshed within the TTL window; stale rows are deleted on read."""
    now = now or datetime.utcnow()
    cutoff = now - timedelta(seconds=TYPING_TTL_SECONDS)

    stale = (
        db.query(TypingIndicator)
        .filter(TypingIndicator.consultation_id == consultation_id, TypingIndicator.updated_at < cutoff)
        .delete(synchronize_session=False)
    )
    if stale:
        db.commit()
        logger.debug(f"Expired {stale} typing indicator(s) in consultation {consultation_id}")

    query = db.query(TypingIndicator).filter(TypingIndicator.consultation_id == consultation_id)
    if exclude_user_id:
        query = query.filter(TypingIndicator.user_id != exclude_user_id)
    return query.all()
