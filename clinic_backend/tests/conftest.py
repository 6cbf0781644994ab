import pytest

from .. import db


ACCESS_KEY = "clinica-teste-123"
WHATSAPP_NUMBER = "5511999990000"
ADMIN_PASSWORD = "admin-secret"


@pytest.fixture(autouse=True)
def sqlite_db(tmp_path, monkeypatch):
    """Point the storage layer at a fresh SQLite file with one seeded clinic."""
    monkeypatch.setenv("CLINIC_DB_PATH", str(tmp_path / "clinic.db"))
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.setattr(db, "USE_SUPABASE", False)
    db.init_db()

    clinic = db.insert_clinic(
        {
            "nome": "Clínica Teste",
            "chave_acesso": ACCESS_KEY,
            "dashboard_ativo": True,
            "feedbacks_ativos": True,
            "agenda_ativa": False,
        }
    )
    db.insert_whatsapp_number(
        {"clinica_id": clinic["id"], "numero_whatsapp": WHATSAPP_NUMBER, "ativo": True}
    )
    return clinic


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {ACCESS_KEY}"}


@pytest.fixture
def admin_headers():
    return {"X-Admin-Password": ADMIN_PASSWORD}
