# consultify/models/consultation.py
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from consultify.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class ConsultationStatus:
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ConsultationType:
    AI_TRIAGE = "AI_TRIAGE"
    HUMAN = "HUMAN"


class AITriageStatus:
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class MessageType:
    NORMAL = "NORMAL"
    SYSTEM = "SYSTEM"
    AI_TRIAGE = "AI_TRIAGE"
    DOCTOR_INTRO = "DOCTOR_INTRO"
    PRESCRIPTION = "PRESCRIPTION"


class Consultation(Base):
    __tablename__ = "consultations"

    id = Column(String(32), primary_key=True, default=_new_id)
    patient_id = Column(String, nullable=False, index=True)
    doctor_id = Column(String, nullable=True, index=True)  # null until hand-off
    title = Column(String, nullable=False)
    status = Column(String(20), nullable=False, default=ConsultationStatus.ACTIVE)
    consultation_type = Column(String(20), nullable=False, default=ConsultationType.HUMAN)
    ai_triage_status = Column(String(20), nullable=True)
    triage_summary = Column(Text, nullable=True)
    urgency = Column(String(10), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    messages = relationship(
        "Message", back_populates="consultation", cascade="all, delete-orphan", order_by="Message.created_at"
    )
    prescriptions = relationship("Prescription", back_populates="consultation", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "patientId": self.patient_id,
            "doctorId": self.doctor_id,
            "title": self.title,
            "status": self.status,
            "consultationType": self.consultation_type,
            "aiTriageStatus": self.ai_triage_status,
            "triageSummary": self.triage_summary,
            "urgency": self.urgency,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(32), primary_key=True, default=_new_id)
    consultation_id = Column(String(32), ForeignKey("consultations.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String, nullable=False)
    content = Column(Text, nullable=False)  # original-locale text, never rewritten
    message_type = Column(String(20), nullable=False, default=MessageType.NORMAL)
    prescription_id = Column(String(32), ForeignKey("prescriptions.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    consultation = relationship("Consultation", back_populates="messages")
    prescription = relationship("Prescription")
    reads = relationship("MessageRead", back_populates="message", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "consultationId": self.consultation_id,
            "senderId": self.sender_id,
            "content": self.content,
            "messageType": self.message_type,
            "prescriptionId": self.prescription_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class MessageRead(Base):
    __tablename__ = "message_reads"
    __table_args__ = (UniqueConstraint("message_id", "user_id", name="uq_message_reads_message_user"),)

    id = Column(String(32), primary_key=True, default=_new_id)
    message_id = Column(String(32), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, nullable=False)
    read_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    message = relationship("Message", back_populates="reads")


class TypingIndicator(Base):
    __tablename__ = "typing_indicators"
    __table_args__ = (UniqueConstraint("consultation_id", "user_id", name="uq_typing_consultation_user"),)

    id = Column(String(32), primary_key=True, default=_new_id)
    consultation_id = Column(String(32), ForeignKey("consultations.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(String(32), primary_key=True, default=_new_id)
    consultation_id = Column(String(32), ForeignKey("consultations.id", ondelete="CASCADE"), nullable=False)
    doctor_id = Column(String, nullable=False)
    patient_id = Column(String, nullable=False)
    medications = Column(JSON, nullable=False)  # [{"drug_name", "amount", "frequency"}]
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    consultation = relationship("Consultation", back_populates="prescriptions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "consultationId": self.consultation_id,
            "doctorId": self.doctor_id,
            "patientId": self.patient_id,
            "medications": self.medications,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
