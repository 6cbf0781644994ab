"""Schemas for the doctor roster, the agenda and patient feedbacks."""
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


AppointmentStatus = Literal["confirmado", "realizado", "cancelado", "falta"]

STATUS_LABELS = {
    "confirmado": "Confirmado",
    "realizado": "Realizado",
    "cancelado": "Cancelado",
    "falta": "Falta",
}


class DoctorCreate(BaseModel):
    nome: str = Field(..., min_length=1)
    especialidade: str = Field(..., min_length=1)
    crm: str = Field(..., min_length=1)
    telefone: Optional[str] = None
    email: Optional[str] = None
    ativo: bool = True

    @field_validator("nome", "especialidade", "crm")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class DoctorUpdate(BaseModel):
    """Partial update; toggling ``ativo`` alone is the common case."""

    nome: Optional[str] = Field(default=None, min_length=1)
    especialidade: Optional[str] = Field(default=None, min_length=1)
    crm: Optional[str] = Field(default=None, min_length=1)
    telefone: Optional[str] = None
    email: Optional[str] = None
    ativo: Optional[bool] = None


class Doctor(BaseModel):
    id: str
    clinica_id: str
    nome: str
    especialidade: str
    crm: str
    telefone: Optional[str] = None
    email: Optional[str] = None
    ativo: bool
    created_at: Optional[str] = None


class AppointmentCreate(BaseModel):
    paciente: str = Field(..., min_length=1)
    profissional: str = Field(..., min_length=1)
    data: date
    horario: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    status: AppointmentStatus = "confirmado"


class Appointment(BaseModel):
    id: str
    clinica_id: str
    paciente: str
    profissional: str
    data: date
    horario: str
    status: str
    status_label: str


class FeedbackCreate(BaseModel):
    paciente: str = Field(..., min_length=1)
    profissional: str = Field(..., min_length=1)
    nota: int = Field(..., ge=1, le=5)
    comentario: Optional[str] = None
    como_conheceu: Optional[str] = None


class Feedback(BaseModel):
    id: str
    clinica_id: str
    paciente: str
    profissional: str
    nota: int
    comentario: Optional[str] = None
    como_conheceu: Optional[str] = None
    sentimento: Optional[float] = None
    criado_em: datetime


class ProfessionalRating(BaseModel):
    profissional: str
    media: float
    total: int


class FeedbackSummary(BaseModel):
    total: int
    media_geral: Optional[float]
    negativos: List[Feedback]  # nota <= 2
    por_profissional: List[ProfessionalRating]
