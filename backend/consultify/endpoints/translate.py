# consultify/endpoints/translate.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from consultify.database import get_db
from consultify.dependencies import get_identity, get_translator
from consultify.models.consultation import Message
from consultify.models.consultation_models import TranslateReq, TranslateTextReq
from consultify.services.identity import DEFAULT_LANGUAGE, language_for

router = APIRouter(tags=["Translation"])


@router.post("/translate")
def translate_message(req: TranslateReq, identity=Depends(get_identity), translator=Depends(get_translator)):
    if not req.text:
        raise HTTPException(status_code=400, detail="Text is required")

    target = req.targetLanguage
    if req.userId and not target:
        target = language_for(identity, req.userId)
    if not target:
        raise HTTPException(status_code=400, detail="Target language is required")

    source = req.sourceLanguage or DEFAULT_LANGUAGE
    if req.messageId:
        translated = translator.translate_message(req.messageId, req.text, source, target)
    else:
        # ad-hoc text has no message row; use the text-keyed cache only
        translated = translator.translate(req.text, source, target)
    return {
        "translatedText": translated,
        "sourceLanguage": source,
        "targetLanguage": target,
    }


@router.get("/translate")
def translate_batch(
    messageIds: str = Query(""),
    targetLanguage: str = Query(None),
    userId: str = Query(None),
    db: Session = Depends(get_db),
    identity=Depends(get_identity),
    translator=Depends(get_translator),
):
    ids = [i for i in messageIds.split(",") if i]
    if not ids:
        raise HTTPException(status_code=400, detail="Message IDs are required")

    target = targetLanguage
    if userId and not target:
        target = language_for(identity, userId)
    if not target:
        raise HTTPException(status_code=400, detail="Target language is required")

    messages = db.query(Message).filter(Message.id.in_(ids)).all()
    sender_languages = {sid: language_for(identity, sid) for sid in {m.sender_id for m in messages}}
    return {
        "translations": translator.translate_messages(messages, target, sender_languages),
        "targetLanguage": target,
    }


@router.post("/translate-text")
def translate_text(req: TranslateTextReq, translator=Depends(get_translator)):
    if not req.text or not req.sourceLanguage or not req.targetLanguage:
        raise HTTPException(status_code=400, detail="Missing required fields: text, sourceLanguage, targetLanguage")
    return {"translatedText": translator.translate(req.text, req.sourceLanguage, req.targetLanguage)}
