from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from ..auth import check_admin_password, get_current_clinic, require_admin
from ..db import (
    StorageError,
    find_clinic_by_access_key,
    get_clinic,
    insert_clinic,
    insert_whatsapp_number,
    list_clinics,
    list_whatsapp_numbers,
)
from ..models import (
    AdminAuthRequest,
    AdminAuthResponse,
    Clinic,
    ClinicCreate,
    ClinicFeatures,
    ClinicSession,
    LoginRequest,
    WhatsAppNumber,
    WhatsAppNumberCreate,
)
from .whatsapp import normalize_phone


router = APIRouter()

# Section name -> feature flag, in sidebar order.
SECTION_FLAGS = {
    "dashboard": "dashboard_ativo",
    "feedbacks": "feedbacks_ativos",
    "agenda": "agenda_ativa",
}
FALLBACK_PAGE = "/medicos"


@router.get("/health")
async def health_check():
    return {"status": "ok"}


def build_session(clinic: Dict[str, Any]) -> ClinicSession:
    """Map a ``clinicas`` row to the flags the dashboard uses to pick sections.

    The landing page is the first enabled of dashboard and feedbacks,
    otherwise the doctor roster, which is always available.
    """
    features = ClinicFeatures(
        dashboard_ativo=bool(clinic.get("dashboard_ativo")),
        feedbacks_ativos=bool(clinic.get("feedbacks_ativos")),
        agenda_ativa=bool(clinic.get("agenda_ativa")),
    )
    sections = [name for name, flag in SECTION_FLAGS.items() if getattr(features, flag)]

    if features.dashboard_ativo:
        landing_page = "/dashboard"
    elif features.feedbacks_ativos:
        landing_page = "/feedbacks"
    else:
        landing_page = FALLBACK_PAGE

    return ClinicSession(
        id=clinic["id"],
        nome=clinic["nome"],
        features=features,
        sections=sections,
        landing_page=landing_page,
    )


@router.post("/login", response_model=ClinicSession)
async def login(payload: LoginRequest) -> ClinicSession:
    clinic = find_clinic_by_access_key(payload.access_key.strip())
    if clinic is None:
        raise HTTPException(status_code=401, detail="Chave de acesso inválida")
    print(f"[Auth] Clinic logged in: {clinic['nome']}")
    return build_session(clinic)


@router.get("/clinic/me", response_model=ClinicSession)
async def current_clinic(clinic: dict = Depends(get_current_clinic)) -> ClinicSession:
    return build_session(clinic)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@router.post("/admin/auth", response_model=AdminAuthResponse)
async def admin_auth(payload: AdminAuthRequest) -> AdminAuthResponse:
    is_valid = check_admin_password(payload.password)
    return AdminAuthResponse(
        success=is_valid,
        message="Authentication successful" if is_valid else "Invalid password",
    )


@router.get("/admin/clinicas", response_model=List[Clinic], dependencies=[Depends(require_admin)])
async def admin_list_clinics() -> List[Clinic]:
    return [Clinic(**row) for row in list_clinics()]


@router.post(
    "/admin/clinicas",
    response_model=Clinic,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def admin_create_clinic(payload: ClinicCreate) -> Clinic:
    if find_clinic_by_access_key(payload.chave_acesso) is not None:
        raise HTTPException(status_code=409, detail="Chave de acesso já utilizada")
    try:
        row = insert_clinic(payload.model_dump())
    except StorageError as e:
        print(f"[Admin] Failed to create clinic: {e}")
        raise HTTPException(status_code=500, detail="Erro ao criar clínica")
    print(f"[Admin] Created clinic {row['nome']}")
    return Clinic(**row)


@router.get("/admin/whatsapp", response_model=List[WhatsAppNumber], dependencies=[Depends(require_admin)])
async def admin_list_whatsapp() -> List[WhatsAppNumber]:
    return [WhatsAppNumber(**row) for row in list_whatsapp_numbers()]


@router.post(
    "/admin/whatsapp",
    response_model=WhatsAppNumber,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def admin_register_whatsapp(payload: WhatsAppNumberCreate) -> WhatsAppNumber:
    if get_clinic(payload.clinica_id) is None:
        raise HTTPException(status_code=404, detail="Clínica não encontrada")

    number = normalize_phone(payload.numero_whatsapp)
    if not number:
        raise HTTPException(status_code=422, detail="Número de WhatsApp inválido")
    if any(row["numero_whatsapp"] == number for row in list_whatsapp_numbers()):
        raise HTTPException(status_code=409, detail="Número já registrado")

    try:
        row = insert_whatsapp_number(
            {"clinica_id": payload.clinica_id, "numero_whatsapp": number, "ativo": payload.ativo}
        )
    except StorageError as e:
        print(f"[Admin] Failed to register WhatsApp number: {e}")
        raise HTTPException(status_code=500, detail="Erro ao registrar número")
    print(f"[Admin] Registered WhatsApp {number} for clinic={payload.clinica_id}")
    return WhatsAppNumber(**row)
