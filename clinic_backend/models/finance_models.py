from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


LedgerType = Literal["entrada", "saida"]


class WhatsAppMessage(BaseModel):
    """Payload posted by the WhatsApp gateway for each inbound message."""

    sender: str = Field(..., alias="from", description="WhatsApp number of the sender")
    body: str = Field(..., description="Message text")
    timestamp: Optional[str] = Field(default=None, description="Gateway timestamp (optional)")

    model_config = {"populate_by_name": True}


class FinanceRecordCreate(BaseModel):
    descricao: str = Field(..., min_length=1, max_length=255)
    valor: float = Field(..., gt=0)
    tipo: LedgerType = "entrada"
    data: Optional[datetime] = None

    @field_validator("descricao")
    @classmethod
    def strip_descricao(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("descricao must not be blank")
        return v


class FinanceRecord(BaseModel):
    id: str
    clinica_id: str
    tipo: LedgerType
    valor: float
    descricao: str
    data: datetime
    created_at: Optional[datetime] = None


class DailyTotals(BaseModel):
    date: str  # dd/MM
    entradas: float = 0.0
    saidas: float = 0.0


class FinanceSummary(BaseModel):
    total_entradas: float
    total_saidas: float
    saldo: float
    records_count: int
    total_entradas_formatado: str
    total_saidas_formatado: str
    saldo_formatado: str
    daily: List[DailyTotals]
