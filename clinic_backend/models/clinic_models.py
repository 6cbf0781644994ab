"""Clinic (tenant) schemas: login, feature flags and admin payloads."""
from typing import List, Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    access_key: str = Field(..., min_length=1, description="Clinic access key (chave_acesso)")


class ClinicFeatures(BaseModel):
    dashboard_ativo: bool = True
    feedbacks_ativos: bool = True
    agenda_ativa: bool = True


class ClinicSession(BaseModel):
    """What the dashboard needs after login to decide which sections to show."""

    id: str
    nome: str
    features: ClinicFeatures
    sections: List[str]
    landing_page: str


class AdminAuthRequest(BaseModel):
    password: str


class AdminAuthResponse(BaseModel):
    success: bool
    message: str


class ClinicCreate(ClinicFeatures):
    nome: str = Field(..., min_length=1)
    chave_acesso: str = Field(..., min_length=4)


class Clinic(ClinicFeatures):
    id: str
    nome: str
    chave_acesso: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class WhatsAppNumberCreate(BaseModel):
    clinica_id: str
    numero_whatsapp: str = Field(..., min_length=8)
    ativo: bool = True


class WhatsAppNumber(BaseModel):
    id: str
    clinica_id: str
    numero_whatsapp: str
    ativo: bool
    created_at: Optional[str] = None
