# consultify/endpoints/prescriptions.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from consultify.database import get_db
from consultify.dependencies import get_email_enqueuer, get_identity, get_translator
from consultify.exceptions import ConsultationNotFound, InvalidPrescription
from consultify.models.consultation_models import PrescriptionReq
from consultify.services.prescription_service import create_prescription

router = APIRouter(tags=["Prescriptions"])


@router.post("/consultations/{consultation_id}/prescription")
def prescribe(
    consultation_id: str,
    req: PrescriptionReq,
    db: Session = Depends(get_db),
    identity=Depends(get_identity),
    translator=Depends(get_translator),
    enqueue_email=Depends(get_email_enqueuer),
):
    if not req.medications:
        raise HTTPException(status_code=400, detail="Missing required medications field")
    try:
        return create_prescription(
            db,
            consultation_id,
            [m.model_dump() for m in req.medications],
            identity,
            translator,
            enqueue_email=enqueue_email,
        )
    except ConsultationNotFound:
        raise HTTPException(status_code=404, detail="Consultation not found")
    except InvalidPrescription as e:
        raise HTTPException(status_code=400, detail=str(e))
