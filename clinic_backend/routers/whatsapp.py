"""WhatsApp finance bot webhook.

The gateway posts every inbound message here and forwards the ``reply``
field of the response back to the sender, for errors as well as successes.
"""
import re
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..db import StorageError, find_clinic_by_whatsapp, insert_finance_record
from ..finance_parser import FinanceParseError, parse_finance_message
from ..models import WhatsAppMessage
from .finance import format_brl


router = APIRouter()

NOT_REGISTERED_REPLY = "Desculpe, seu número não está registrado em nosso sistema."
INVALID_FORMAT_REPLY = (
    "Formato incorreto. Use:\n\n"
    "*ENTRADA* R$ 100,00 Consulta Dr. João\n"
    "*SAÍDA* R$ 50,00 Material de limpeza\n\n"
    "Palavras-chave: ENTRADA, SAÍDA, RECEITA, DESPESA"
)
STORAGE_ERROR_REPLY = "Erro ao registrar movimentação. Tente novamente."
UNEXPECTED_ERROR_REPLY = "Ocorreu um erro inesperado. Tente novamente mais tarde."

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(number: str) -> str:
    return _NON_DIGITS.sub("", number)


def build_success_reply(tipo_label: str, valor: float, descricao: str, clinic_name: str, when: datetime) -> str:
    return (
        "✅ *Registrado com sucesso!*\n\n"
        f"📊 *Tipo:* {tipo_label}\n"
        f"💰 *Valor:* {format_brl(valor)}\n"
        f"📝 *Descrição:* {descricao}\n"
        f"🏥 *Clínica:* {clinic_name}\n"
        f"📅 *Data:* {when.strftime('%d/%m/%Y')}"
    )


@router.post("/whatsapp/finance")
async def whatsapp_finance(payload: WhatsAppMessage):
    try:
        return _handle_message(payload)
    except Exception as e:
        print(f"[WhatsApp] Unexpected error: {e!r}")
        return JSONResponse(
            status_code=500,
            content={"error": "Erro inesperado", "reply": UNEXPECTED_ERROR_REPLY},
        )


def _handle_message(payload: WhatsAppMessage):
    print(f"[WhatsApp] Received message from={payload.sender} timestamp={payload.timestamp}")

    phone = normalize_phone(payload.sender)
    try:
        clinic = find_clinic_by_whatsapp(phone) if phone else None
    except StorageError as e:
        print(f"[WhatsApp] Clinic lookup failed for {phone}: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Erro interno", "reply": UNEXPECTED_ERROR_REPLY},
        )
    if clinic is None:
        print(f"[WhatsApp] No clinic registered for number {phone}")
        return JSONResponse(
            status_code=404,
            content={"error": "Clínica não encontrada", "reply": NOT_REGISTERED_REPLY},
        )

    try:
        parsed = parse_finance_message(payload.body)
    except FinanceParseError as e:
        print(f"[WhatsApp] Could not parse message from {phone}: {e}")
        return JSONResponse(
            status_code=400,
            content={"error": "Formato inválido", "reason": e.reason, "reply": INVALID_FORMAT_REPLY},
        )

    now = datetime.now(timezone.utc)
    try:
        record = insert_finance_record(
            {
                "clinica_id": clinic["clinica_id"],
                "tipo": parsed.kind.value,
                "valor": parsed.amount,
                "descricao": parsed.description,
                "data": now.isoformat(),
            }
        )
    except StorageError as e:
        print(f"[WhatsApp] Failed to insert finance record: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Erro interno", "reply": STORAGE_ERROR_REPLY},
        )

    print(f"[WhatsApp] Recorded {parsed.kind.value} of {parsed.amount} for clinic={clinic['clinica_id']}")
    return {
        "success": True,
        "reply": build_success_reply(
            parsed.kind.label, parsed.amount, parsed.description, clinic.get("nome") or "", now
        ),
        "data": record,
    }
