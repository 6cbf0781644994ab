from datetime import timezone, tzinfo
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth import get_current_clinic
from ..db import StorageError, insert_finance_record, list_finance_records
from ..models import DailyTotals, FinanceRecord, FinanceRecordCreate, FinanceSummary


router = APIRouter()

DEFAULT_TIMEZONE = "America/Sao_Paulo"


def format_brl(value: float) -> str:
    """Format a value as Brazilian reais, e.g. ``R$ 1.234,56``."""
    sign = "-" if value < 0 else ""
    digits = f"{abs(value):,.2f}"
    # 1,234.56 -> 1.234,56
    digits = digits.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {digits}"


def summarize_records(records: List[FinanceRecord], tz: tzinfo = timezone.utc) -> FinanceSummary:
    """Totals and a per-day series for the ledger dashboard.

    Records are bucketed by their calendar day in ``tz``; naive timestamps are
    taken as UTC. Days are ordered chronologically regardless of the order of
    ``records``.
    """
    total_entradas = sum(r.valor for r in records if r.tipo == "entrada")
    total_saidas = sum(r.valor for r in records if r.tipo == "saida")
    saldo = total_entradas - total_saidas

    by_day: Dict[Any, DailyTotals] = {}
    for record in records:
        when = record.data
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        day = when.astimezone(tz).date()
        totals = by_day.setdefault(day, DailyTotals(date=day.strftime("%d/%m")))
        if record.tipo == "entrada":
            totals.entradas += record.valor
        else:
            totals.saidas += record.valor

    return FinanceSummary(
        total_entradas=total_entradas,
        total_saidas=total_saidas,
        saldo=saldo,
        records_count=len(records),
        total_entradas_formatado=format_brl(total_entradas),
        total_saidas_formatado=format_brl(total_saidas),
        saldo_formatado=format_brl(saldo),
        daily=[by_day[day] for day in sorted(by_day)],
    )


def _load_records(clinic_id: str, limit: Optional[int] = None) -> List[FinanceRecord]:
    try:
        rows = list_finance_records(clinic_id, limit=limit)
    except StorageError as e:
        print(f"[Finance] Failed to load ledger for clinic={clinic_id}: {e}")
        raise HTTPException(status_code=500, detail="Erro ao carregar dados financeiros")
    return [FinanceRecord(**row) for row in rows]


@router.get("/financeiro", response_model=list[FinanceRecord])
async def list_records(
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    clinic: dict = Depends(get_current_clinic),
) -> list[FinanceRecord]:
    """Ledger rows for the logged-in clinic, newest first."""
    return _load_records(clinic["id"], limit=limit)


@router.post("/financeiro", response_model=FinanceRecord, status_code=201)
async def create_record(
    payload: FinanceRecordCreate,
    clinic: dict = Depends(get_current_clinic),
) -> FinanceRecord:
    data = {
        "clinica_id": clinic["id"],
        "tipo": payload.tipo,
        "valor": payload.valor,
        "descricao": payload.descricao,
    }
    if payload.data is not None:
        data["data"] = payload.data.isoformat()

    try:
        row = insert_finance_record(data)
    except StorageError as e:
        print(f"[Finance] Failed to save record for clinic={clinic['id']}: {e}")
        raise HTTPException(status_code=500, detail="Erro ao salvar registro financeiro")

    return FinanceRecord(**row)


@router.get("/financeiro/summary", response_model=FinanceSummary)
async def finance_summary(
    tz: str = Query(default=DEFAULT_TIMEZONE, description="IANA timezone used to group days"),
    clinic: dict = Depends(get_current_clinic),
) -> FinanceSummary:
    try:
        zone = ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(status_code=422, detail=f"Fuso horário inválido: {tz}")
    return summarize_records(_load_records(clinic["id"]), zone)
