# consultify/models/consultation_models.py
from typing import List, Optional

from pydantic import BaseModel, Field


class StartTriageReq(BaseModel):
    patientId: str
    voice: bool = False


class ChatTurn(BaseModel):
    role: str  # "user" | "assistant"
    content: str


class AITriageReq(BaseModel):
    messages: List[ChatTurn]
    consultationId: Optional[str] = None


class CompleteTriageReq(BaseModel):
    consultationId: str
    aiSummary: str


class CreateConsultationReq(BaseModel):
    patientId: str
    title: str


class UpdateStatusReq(BaseModel):
    status: str


class PostMessageReq(BaseModel):
    senderId: str
    type: str  # "message" | "typing"
    content: Optional[str] = None


class MarkReadReq(BaseModel):
    messageId: str
    userId: str


class Medication(BaseModel):
    drug_name: Optional[str] = None
    amount: Optional[str] = None
    frequency: Optional[str] = None


class PrescriptionReq(BaseModel):
    medications: List[Medication] = Field(default_factory=list)


class TranslateReq(BaseModel):
    text: str
    messageId: Optional[str] = None
    sourceLanguage: Optional[str] = None
    targetLanguage: Optional[str] = None
    userId: Optional[str] = None


class TranslateTextReq(BaseModel):
    text: str
    sourceLanguage: str
    targetLanguage: str
