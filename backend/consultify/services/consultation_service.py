# consultify/services/consultation_service.py
import logging
from datetime import datetime, timedelta
from typing import Dict, List

from sqlalchemy.orm import Session

from consultify.exceptions import ConsultationNotFound, InvalidTransition
from consultify.models.consultation import (
    AITriageStatus,
    Consultation,
    ConsultationStatus,
    ConsultationType,
    Message,
    MessageType,
)
from consultify.services.doctor_selection import DoctorSelectionCriteria, extract_symptoms, select_doctor
from consultify.services.identity import UserProfile, profile_or_placeholder
from consultify.services.translation_service import Translator

logger = logging.getLogger(__name__)

AI_GREETING = (
    "Hello! I'm your AI health assistant. I'm here to understand your symptoms "
    "and connect you with the right doctor. What brings you here today?"
)
DOCTOR_INTRO_TEMPLATE = (
    "Hello! I'm Dr. {name}. I've reviewed your symptoms and I'm here to help. "
    "How are you feeling right now?"
)


def get_consultation_or_raise(db: Session, consultation_id: str) -> Consultation:
    consultation = db.get(Consultation, consultation_id)
    if consultation is None:
        raise ConsultationNotFound(f"Consultation {consultation_id} not found")
    return consultation


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


def _enrich(consultation: Consultation, identity) -> Dict:
    patient = profile_or_placeholder(identity, consultation.patient_id, "Unknown Patient")
    data = consultation.to_dict()
    data["patientName"] = patient.name
    data["doctorName"] = "Unknown Doctor"
    data["doctorSpecialization"] = ""
    if consultation.doctor_id:
        doctor = profile_or_placeholder(identity, consultation.doctor_id, "Unknown Doctor")
        data["doctorName"] = doctor.name
        data["doctorSpecialization"] = doctor.specialization or ""
    return data


# ------------------------------- AI triage phase -------------------------------
def start_ai_triage(db: Session, patient_id: str, voice: bool = False) -> Consultation:
    """Open an AI_TRIAGE consultation with no doctor and post the assistant greeting."""
    consultation = Consultation(
        patient_id=patient_id,
        doctor_id=None,
        title="AI Voice Health Assessment" if voice else "AI Health Assessment",
        status=ConsultationStatus.ACTIVE,
        consultation_type=ConsultationType.AI_TRIAGE,
        ai_triage_status=AITriageStatus.IN_PROGRESS,
    )
    db.add(consultation)
    db.flush()
    db.add(Message(
        consultation_id=consultation.id,
        sender_id=patient_id,
        content=AI_GREETING,
        message_type=MessageType.AI_TRIAGE,
    ))
    _commit(db)
    db.refresh(consultation)
    logger.info(f"Started AI triage consultation {consultation.id} for patient {patient_id}")
    return consultation


def complete_triage(db: Session, consultation_id: str, ai_summary: str, identity, translator: Translator) -> Dict:
    """Hand a consultation over from the AI assistant to a human doctor.

    The doctor assignment, the triage summary message and the doctor
    introduction are committed together; if doctor selection fails nothing is
    written. The state flip is a conditional UPDATE, so of two concurrent
    hand-offs only one assigns a doctor; the other gets InvalidTransition.
    The introduction is stored in the doctor's language and translated for
    the patient through the message cache.
    """
    consultation = get_consultation_or_raise(db, consultation_id)
    if (
        consultation.consultation_type != ConsultationType.AI_TRIAGE
        or consultation.ai_triage_status != AITriageStatus.IN_PROGRESS
    ):
        raise InvalidTransition(f"Consultation {consultation_id} is not in AI triage")

    criteria = extract_symptoms(ai_summary)
    doctor = select_doctor(criteria, identity)

    patient = profile_or_placeholder(identity, consultation.patient_id, "Patient")
    doctor_name = doctor.name or "Doctor"
    intro_content = DOCTOR_INTRO_TEMPLATE.format(name=doctor_name)

    now = datetime.utcnow()
    # conditional flip: a concurrent hand-off that committed first leaves no matching row
    flipped = (
        db.query(Consultation)
        .filter(
            Consultation.id == consultation_id,
            Consultation.consultation_type == ConsultationType.AI_TRIAGE,
            Consultation.ai_triage_status == AITriageStatus.IN_PROGRESS,
        )
        .update(
            {
                Consultation.doctor_id: doctor.id,
                Consultation.consultation_type: ConsultationType.HUMAN,
                Consultation.ai_triage_status: AITriageStatus.COMPLETED,
                Consultation.triage_summary: ai_summary,
                Consultation.urgency: criteria.urgency.upper(),
                Consultation.title: f"Consultation - {criteria.symptoms[:50]}...",
                Consultation.updated_at: now,
            },
            synchronize_session=False,
        )
    )
    if flipped != 1:
        db.rollback()
        logger.warning(f"Consultation {consultation_id} was handed off by another request")
        raise InvalidTransition(f"Consultation {consultation_id} is not in AI triage")

    summary_message = Message(
        consultation_id=consultation.id,
        sender_id=consultation.patient_id,
        content=f"AI Triage Summary: {ai_summary}",
        message_type=MessageType.SYSTEM,
        created_at=now,
    )
    intro_message = Message(
        consultation_id=consultation.id,
        sender_id=doctor.id,
        content=intro_content,
        message_type=MessageType.DOCTOR_INTRO,
        created_at=now + timedelta(microseconds=1),
    )
    db.add_all([summary_message, intro_message])
    _commit(db)
    db.refresh(consultation)
    db.refresh(intro_message)

    logger.info(
        f"Triage complete for consultation {consultation.id}: doctor={doctor.id} urgency={consultation.urgency}"
    )

    translated_intro = translator.translate_message(
        intro_message.id, intro_content, doctor.language, patient.language
    )

    consultation_data = consultation.to_dict()
    consultation_data.update(
        patientName=patient.name,
        doctorName=doctor_name,
        doctorSpecialization=doctor.specialization or "",
    )
    intro_data = intro_message.to_dict()
    intro_data.update(
        content=translated_intro,
        originalContent=intro_content,
        senderName=doctor_name,
        senderLanguage=doctor.language,
    )
    return {
        "consultation": consultation_data,
        "doctor": {
            "id": doctor.id,
            "name": doctor_name,
            "specialization": doctor.specialization or "",
            "language": doctor.language,
        },
        "introMessage": intro_data,
    }


# ------------------------------- Human consultations -------------------------------
def create_consultation(db: Session, patient_id: str, title: str, identity) -> Dict:
    doctor: UserProfile = select_doctor(DoctorSelectionCriteria(symptoms=title, urgency="medium"), identity)
    consultation = Consultation(
        patient_id=patient_id,
        doctor_id=doctor.id,
        title=title,
        status=ConsultationStatus.ACTIVE,
        consultation_type=ConsultationType.HUMAN,
    )
    db.add(consultation)
    _commit(db)
    db.refresh(consultation)

    data = consultation.to_dict()
    data.update(
        patientName="Patient",
        doctorName=doctor.name or "Doctor",
        doctorSpecialization=doctor.specialization or "",
    )
    return data


def get_consultation(db: Session, consultation_id: str, identity) -> Dict:
    return _enrich(get_consultation_or_raise(db, consultation_id), identity)


def _owned_by(db: Session, user_id: str, role: str):
    column = Consultation.patient_id if role == "patient" else Consultation.doctor_id
    return db.query(Consultation).filter(column == user_id)


def list_consultations(db: Session, user_id: str, role: str, identity) -> List[Dict]:
    results = []
    for consultation in _owned_by(db, user_id, role).order_by(Consultation.updated_at.desc()).all():
        data = _enrich(consultation, identity)
        data["messages"] = [m.to_dict() for m in consultation.messages[-1:]]
        data["prescriptions"] = [p.to_dict() for p in consultation.prescriptions]
        results.append(data)
    return results


def update_status(db: Session, consultation_id: str, status: str) -> Consultation:
    """Close an active consultation as COMPLETED or CANCELLED."""
    consultation = get_consultation_or_raise(db, consultation_id)
    if status not in (ConsultationStatus.COMPLETED, ConsultationStatus.CANCELLED):
        raise InvalidTransition(f"Unsupported status {status!r}")
    if consultation.status != ConsultationStatus.ACTIVE:
        raise InvalidTransition(f"Consultation {consultation_id} is already {consultation.status}")
    consultation.status = status
    _commit(db)
    db.refresh(consultation)
    return consultation


def user_stats(db: Session, user_id: str, role: str) -> Dict:
    query = _owned_by(db, user_id, role)
    recent = query.order_by(Consultation.updated_at.desc()).limit(3).all()
    return {
        "consultations": query.count(),
        "messages": db.query(Message).filter(Message.sender_id == user_id).count(),
        "recentConsultations": [
            {
                "id": c.id,
                "title": c.title,
                "status": c.status,
                "createdAt": c.created_at.isoformat(),
                "consultationType": c.consultation_type,
            }
            for c in recent
        ],
    }
