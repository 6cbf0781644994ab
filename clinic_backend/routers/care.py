"""Doctor roster, agenda and patient feedback endpoints.

The roster is always available to a logged-in clinic; the agenda and the
feedbacks sit behind the clinic's ``agenda_ativa`` / ``feedbacks_ativos`` flags.
"""
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..auth import get_current_clinic, require_feature
from ..db import (
    StorageError,
    delete_doctor,
    insert_appointment,
    insert_doctor,
    insert_feedback,
    list_appointments,
    list_doctors,
    list_feedbacks,
    update_doctor,
)
from ..models import (
    Appointment,
    AppointmentCreate,
    Doctor,
    DoctorCreate,
    DoctorUpdate,
    Feedback,
    FeedbackCreate,
    FeedbackSummary,
    ProfessionalRating,
)
from ..models.care_models import STATUS_LABELS


router = APIRouter()

NEGATIVE_RATING = 2


def _storage_failure(action: str, e: StorageError) -> HTTPException:
    print(f"[Care] {action} failed: {e}")
    return HTTPException(status_code=500, detail=f"Erro ao {action}")


# ---------------------------------------------------------------------------
# Doctors (Médicos)
# ---------------------------------------------------------------------------

@router.get("/medicos", response_model=List[Doctor])
async def get_doctors(clinic: dict = Depends(get_current_clinic)) -> List[Doctor]:
    try:
        return [Doctor(**row) for row in list_doctors(clinic["id"])]
    except StorageError as e:
        raise _storage_failure("carregar médicos", e)


@router.post("/medicos", response_model=Doctor, status_code=201)
async def create_doctor(payload: DoctorCreate, clinic: dict = Depends(get_current_clinic)) -> Doctor:
    try:
        row = insert_doctor({"clinica_id": clinic["id"], **payload.model_dump()})
    except StorageError as e:
        raise _storage_failure("cadastrar médico", e)
    return Doctor(**row)


@router.patch("/medicos/{doctor_id}", response_model=Doctor)
async def edit_doctor(
    doctor_id: str,
    payload: DoctorUpdate,
    clinic: dict = Depends(get_current_clinic),
) -> Doctor:
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=422, detail="Nada para atualizar")
    try:
        row = update_doctor(clinic["id"], doctor_id, changes)
    except StorageError as e:
        raise _storage_failure("atualizar médico", e)
    if row is None:
        raise HTTPException(status_code=404, detail="Médico não encontrado")
    return Doctor(**row)


@router.delete("/medicos/{doctor_id}", status_code=204)
async def remove_doctor(doctor_id: str, clinic: dict = Depends(get_current_clinic)) -> None:
    try:
        deleted = delete_doctor(clinic["id"], doctor_id)
    except StorageError as e:
        raise _storage_failure("excluir médico", e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Médico não encontrado")


# ---------------------------------------------------------------------------
# Agenda
# ---------------------------------------------------------------------------

def _appointment(row: dict) -> Appointment:
    return Appointment(**row, status_label=STATUS_LABELS.get(row["status"], row["status"]))


@router.get("/agenda", response_model=List[Appointment])
async def get_agenda(
    data: Optional[date] = None,
    clinic: dict = Depends(require_feature("agenda_ativa")),
) -> List[Appointment]:
    """Appointments by date and time; ``data`` restricts to a single day."""
    day = data.isoformat() if data is not None else None
    try:
        return [_appointment(row) for row in list_appointments(clinic["id"], day)]
    except StorageError as e:
        raise _storage_failure("carregar agenda", e)


@router.post("/agenda", response_model=Appointment, status_code=201)
async def create_appointment(
    payload: AppointmentCreate,
    clinic: dict = Depends(require_feature("agenda_ativa")),
) -> Appointment:
    data = payload.model_dump()
    data["data"] = payload.data.isoformat()
    try:
        row = insert_appointment({"clinica_id": clinic["id"], **data})
    except StorageError as e:
        raise _storage_failure("agendar consulta", e)
    return _appointment(row)


# ---------------------------------------------------------------------------
# Feedbacks
# ---------------------------------------------------------------------------

def summarize_feedbacks(feedbacks: List[Feedback]) -> FeedbackSummary:
    """Overall average, negative alerts and the per-professional ranking."""
    totals: Dict[str, List[int]] = {}
    for feedback in feedbacks:
        totals.setdefault(feedback.profissional, []).append(feedback.nota)

    ratings = [
        ProfessionalRating(profissional=name, media=round(sum(notas) / len(notas), 2), total=len(notas))
        for name, notas in totals.items()
    ]
    ratings.sort(key=lambda r: (-r.media, r.profissional))

    media_geral = None
    if feedbacks:
        media_geral = round(sum(f.nota for f in feedbacks) / len(feedbacks), 2)

    return FeedbackSummary(
        total=len(feedbacks),
        media_geral=media_geral,
        negativos=[f for f in feedbacks if f.nota <= NEGATIVE_RATING],
        por_profissional=ratings,
    )


def _load_feedbacks(clinic_id: str) -> List[Feedback]:
    try:
        return [Feedback(**row) for row in list_feedbacks(clinic_id)]
    except StorageError as e:
        raise _storage_failure("carregar feedbacks", e)


@router.get("/feedbacks", response_model=List[Feedback])
async def get_feedbacks(clinic: dict = Depends(require_feature("feedbacks_ativos"))) -> List[Feedback]:
    return _load_feedbacks(clinic["id"])


@router.post("/feedbacks", response_model=Feedback, status_code=201)
async def create_feedback(
    payload: FeedbackCreate,
    clinic: dict = Depends(require_feature("feedbacks_ativos")),
) -> Feedback:
    try:
        row = insert_feedback({"clinica_id": clinic["id"], **payload.model_dump()})
    except StorageError as e:
        raise _storage_failure("registrar feedback", e)
    return Feedback(**row)


@router.get("/feedbacks/summary", response_model=FeedbackSummary)
async def feedback_summary(
    clinic: dict = Depends(require_feature("feedbacks_ativos")),
) -> FeedbackSummary:
    return summarize_feedbacks(_load_feedbacks(clinic["id"]))
