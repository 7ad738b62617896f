# consultify/endpoints/messages.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from consultify.database import get_db
from consultify.dependencies import get_identity, get_translator
from consultify.exceptions import ConsultationNotFound, MessageNotFound
from consultify.models.consultation_models import MarkReadReq, PostMessageReq
from consultify.services import message_service

router = APIRouter(tags=["Messages"])


@router.get("/consultations/{consultation_id}/messages")
def list_messages(
    consultation_id: str,
    userId: str = Query(...),
    db: Session = Depends(get_db),
    identity=Depends(get_identity),
    translator=Depends(get_translator),
):
    return message_service.list_messages(db, consultation_id, userId, identity, translator)


@router.post("/consultations/{consultation_id}/messages")
def post_message(
    consultation_id: str,
    req: PostMessageReq,
    db: Session = Depends(get_db),
    identity=Depends(get_identity),
):
    if req.type not in ("typing", "message"):
        raise HTTPException(status_code=400, detail="Invalid request type")
    if req.type == "message" and not req.content:
        raise HTTPException(status_code=400, detail="Message content is required")

    try:
        if req.type == "typing":
            message_service.set_typing(db, consultation_id, req.senderId, typing=bool(req.content))
            return {"success": True}
        message = message_service.post_message(db, consultation_id, req.senderId, req.content, identity)
    except ConsultationNotFound:
        raise HTTPException(status_code=404, detail="Consultation not found")
    return {"message": message}


@router.post("/messages/read")
def mark_read(req: MarkReadReq, db: Session = Depends(get_db)):
    try:
        message_service.mark_read(db, req.messageId, req.userId)
    except MessageNotFound:
        raise HTTPException(status_code=404, detail="Message not found")
    return {"success": True}
