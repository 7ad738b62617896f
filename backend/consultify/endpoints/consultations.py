# consultify/endpoints/consultations.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from consultify.database import get_db
from consultify.dependencies import get_identity, get_llm, get_translator
from consultify.exceptions import ConsultationNotFound, InvalidTransition
from consultify.models.consultation_models import (
    AITriageReq,
    CompleteTriageReq,
    CreateConsultationReq,
    StartTriageReq,
    UpdateStatusReq,
)
from consultify.services import consultation_service
from consultify.services.ai_triage import run_triage_turn
from consultify.services.doctor_selection import NoDoctorsAvailable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/consultations", tags=["Consultations"])


def _complete(db, consultation_id, summary, identity, translator):
    try:
        return consultation_service.complete_triage(db, consultation_id, summary, identity, translator)
    except ConsultationNotFound:
        raise HTTPException(status_code=404, detail="Consultation not found")
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except NoDoctorsAvailable:
        raise HTTPException(status_code=409, detail="No doctors available")


@router.post("/start-ai-triage")
def start_ai_triage(req: StartTriageReq, db: Session = Depends(get_db)):
    consultation = consultation_service.start_ai_triage(db, req.patientId, voice=req.voice)
    return {"consultation": consultation.to_dict()}


@router.post("/ai-triage")
def ai_triage(
    req: AITriageReq,
    db: Session = Depends(get_db),
    llm=Depends(get_llm),
    identity=Depends(get_identity),
    translator=Depends(get_translator),
):
    """Run one assistant turn; hand off to a doctor once a completion marker appears."""
    reply, summary = run_triage_turn([t.model_dump() for t in req.messages], llm)
    result = {"response": reply, "isComplete": summary is not None}
    if summary and req.consultationId:
        result["handoff"] = _complete(db, req.consultationId, summary, identity, translator)
    return result


@router.post("/complete-triage")
def complete_triage(
    req: CompleteTriageReq,
    db: Session = Depends(get_db),
    identity=Depends(get_identity),
    translator=Depends(get_translator),
):
    if not req.consultationId or not req.aiSummary:
        raise HTTPException(status_code=400, detail="Missing required fields")
    return _complete(db, req.consultationId, req.aiSummary, identity, translator)


@router.get("")
def list_consultations(
    userId: str = Query(...),
    userRole: str = Query(...),
    db: Session = Depends(get_db),
    identity=Depends(get_identity),
):
    return {"consultations": consultation_service.list_consultations(db, userId, userRole, identity)}


@router.post("")
def create_consultation(req: CreateConsultationReq, db: Session = Depends(get_db), identity=Depends(get_identity)):
    try:
        return {"consultation": consultation_service.create_consultation(db, req.patientId, req.title, identity)}
    except NoDoctorsAvailable:
        raise HTTPException(status_code=400, detail="No doctors available")


@router.get("/{consultation_id}")
def get_consultation(consultation_id: str, db: Session = Depends(get_db), identity=Depends(get_identity)):
    try:
        return {"consultation": consultation_service.get_consultation(db, consultation_id, identity)}
    except ConsultationNotFound:
        raise HTTPException(status_code=404, detail="Consultation not found")


@router.patch("/{consultation_id}/status")
def update_status(consultation_id: str, req: UpdateStatusReq, db: Session = Depends(get_db)):
    try:
        consultation = consultation_service.update_status(db, consultation_id, req.status)
    except ConsultationNotFound:
        raise HTTPException(status_code=404, detail="Consultation not found")
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"consultation": consultation.to_dict()}
