# consultify/services/prescription_service.py
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from consultify.exceptions import InvalidPrescription
from consultify.models.consultation import Message, MessageType, Prescription
from consultify.services.consultation_service import get_consultation_or_raise
from consultify.services.identity import profile_or_placeholder
from consultify.services.translation_service import Translator

logger = logging.getLogger(__name__)

MEDICATION_FIELDS = ("drug_name", "amount", "frequency")


def valid_medications(medications: List[Dict]) -> List[Dict]:
    """Keep medications with a non-blank drug name, amount and frequency."""
    return [
        {field: med[field] for field in MEDICATION_FIELDS}
        for med in medications
        if all(isinstance(med.get(field), str) and med[field].strip() for field in MEDICATION_FIELDS)
    ]


def _translate_medications(
    translator: Translator, prescription_id: str, medications: List[Dict], source: str, target: str
) -> List[Dict]:
    if source == target:
        return medications
    translated = []
    for med in medications:
        translated.append({
            "drug_name": translator.translate_message(
                f"med-{prescription_id}-{med['drug_name']}", med["drug_name"], source, target
            ),
            "amount": translator.translate_message(
                f"amount-{prescription_id}-{med['amount']}", med["amount"], source, target
            ),
            "frequency": translator.translate_message(
                f"freq-{prescription_id}-{med['frequency']}", med["frequency"], source, target
            ),
        })
    return translated


def create_prescription(
    db: Session,
    consultation_id: str,
    medications: List[Dict],
    identity,
    translator: Translator,
    enqueue_email: Optional[Callable[[Dict], str]] = None,
) -> Dict:
    consultation = get_consultation_or_raise(db, consultation_id)
    if not consultation.doctor_id:
        raise InvalidPrescription("No doctor assigned to this consultation")

    meds = valid_medications(medications)
    if not meds:
        raise InvalidPrescription("No valid medications provided")

    doctor_id, patient_id = consultation.doctor_id, consultation.patient_id
    doctor = profile_or_placeholder(identity, doctor_id, "Doctor")
    patient = profile_or_placeholder(identity, patient_id, "Patient")

    prescription = Prescription(
        consultation_id=consultation_id,
        doctor_id=doctor_id,
        patient_id=patient_id,
        medications=meds,
    )
    db.add(prescription)
    db.flush()

    content = f"Prescription sent with {len(meds)} medication{'s' if len(meds) > 1 else ''}"
    message = Message(
        consultation_id=consultation_id,
        sender_id=doctor_id,
        content=content,
        message_type=MessageType.PRESCRIPTION,
        prescription_id=prescription.id,
    )
    db.add(message)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(prescription)
    db.refresh(message)

    translated_meds = _translate_medications(translator, prescription.id, meds, doctor.language, patient.language)

    if patient.email and enqueue_email is not None:
        enqueue_email({
            "email": patient.email,
            "medications": translated_meds,
            "doctorName": doctor.name,
            "patientName": patient.name,
            "timestamp": datetime.utcnow().isoformat(),
        })
    elif not patient.email:
        logger.warning("No patient email found - prescription email not sent")

    message_data = message.to_dict()
    message_data.update(
        senderName=doctor.name,
        senderLanguage=doctor.language,
        originalContent=content,
        prescription_data={"medications": meds},
    )
    return {"prescription": prescription.to_dict(), "message": message_data}
