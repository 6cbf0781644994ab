from fastapi.testclient import TestClient

from .. import db
from ..main import app
from ..routers import whatsapp
from .conftest import ACCESS_KEY, WHATSAPP_NUMBER


client = TestClient(app)


def test_health_check():
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_login_returns_feature_flags():
    response = client.post("/api/login", json={"access_key": ACCESS_KEY})
    assert response.status_code == 200

    data = response.json()
    assert data["nome"] == "Clínica Teste"
    assert data["features"] == {
        "dashboard_ativo": True,
        "feedbacks_ativos": True,
        "agenda_ativa": False,
    }
    assert data["sections"] == ["dashboard", "feedbacks"]
    assert data["landing_page"] == "/dashboard"


def test_login_rejects_unknown_key():
    response = client.post("/api/login", json={"access_key": "nope"})
    assert response.status_code == 401


def test_clinic_me_requires_bearer_key(auth_headers):
    assert client.get("/api/clinic/me").status_code == 401
    assert client.get("/api/clinic/me", headers={"Authorization": "Bearer wrong"}).status_code == 401

    response = client.get("/api/clinic/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["nome"] == "Clínica Teste"


def test_whatsapp_message_is_recorded(auth_headers):
    payload = {"from": "+55 (11) 99999-0000", "body": "SAÍDA R$ 50,00 Material de limpeza"}

    response = client.post("/api/whatsapp/finance", json=payload)
    assert response.status_code == 200

    data = response.json()
    assert data["success"] is True
    assert data["data"]["tipo"] == "saida"
    assert data["data"]["valor"] == 50.0
    assert data["data"]["descricao"] == "Material de limpeza"
    assert "SAÍDA" in data["reply"]
    assert "R$ 50,00" in data["reply"]
    assert "Clínica Teste" in data["reply"]

    records = client.get("/api/financeiro", headers=auth_headers).json()
    assert len(records) == 1
    assert records[0]["descricao"] == "Material de limpeza"


def test_whatsapp_unknown_number():
    payload = {"from": "5500000000000", "body": "ENTRADA R$ 100,00 Consulta"}

    response = client.post("/api/whatsapp/finance", json=payload)
    assert response.status_code == 404
    assert response.json()["reply"] == "Desculpe, seu número não está registrado em nosso sistema."


def test_whatsapp_inactive_number_is_not_registered(sqlite_db):
    db.insert_whatsapp_number(
        {"clinica_id": sqlite_db["id"], "numero_whatsapp": "5511988880000", "ativo": False}
    )

    response = client.post(
        "/api/whatsapp/finance", json={"from": "5511988880000", "body": "ENTRADA R$ 100,00 Consulta"}
    )
    assert response.status_code == 404
    assert response.json()["reply"] == whatsapp.NOT_REGISTERED_REPLY


def test_whatsapp_lookup_failure_replies_with_error(monkeypatch):
    def broken_lookup(numero):
        raise db.StorageError("database is locked")

    monkeypatch.setattr(whatsapp, "find_clinic_by_whatsapp", broken_lookup)

    response = client.post(
        "/api/whatsapp/finance", json={"from": WHATSAPP_NUMBER, "body": "ENTRADA R$ 100,00 Consulta"}
    )
    assert response.status_code == 500
    assert response.json()["reply"] == "Ocorreu um erro inesperado. Tente novamente mais tarde."


def test_whatsapp_unexpected_error_still_replies(monkeypatch):
    def broken_lookup(numero):
        raise KeyError("clinica_id")

    monkeypatch.setattr(whatsapp, "find_clinic_by_whatsapp", broken_lookup)

    response = client.post(
        "/api/whatsapp/finance", json={"from": WHATSAPP_NUMBER, "body": "ENTRADA R$ 100,00 Consulta"}
    )
    assert response.status_code == 500
    assert response.json() == {"error": "Erro inesperado", "reply": whatsapp.UNEXPECTED_ERROR_REPLY}


def test_whatsapp_insert_failure_replies_with_error(monkeypatch, auth_headers):
    def broken_insert(data):
        raise db.StorageError("disk full")

    monkeypatch.setattr(whatsapp, "insert_finance_record", broken_insert)

    response = client.post(
        "/api/whatsapp/finance", json={"from": WHATSAPP_NUMBER, "body": "SAÍDA R$ 50,00 Material"}
    )
    assert response.status_code == 500
    assert response.json()["reply"] == whatsapp.STORAGE_ERROR_REPLY
    assert client.get("/api/financeiro", headers=auth_headers).json() == []


def test_whatsapp_invalid_format_replies_with_instructions(auth_headers):
    response = client.post(
        "/api/whatsapp/finance", json={"from": WHATSAPP_NUMBER, "body": "R$ 100,00 Consulta"}
    )
    assert response.status_code == 400
    data = response.json()
    assert data["reason"] == "ambiguous_kind"
    assert "*ENTRADA* R$ 100,00 Consulta Dr. João" in data["reply"]

    response = client.post(
        "/api/whatsapp/finance", json={"from": WHATSAPP_NUMBER, "body": "ENTRADA consulta"}
    )
    assert response.status_code == 400
    assert response.json()["reason"] == "no_amount"

    assert client.get("/api/financeiro", headers=auth_headers).json() == []


def test_manual_record_and_summary(auth_headers):
    entries = [
        {"descricao": "Consulta", "valor": 1200.5, "tipo": "entrada", "data": "2024-03-01T10:00:00+00:00"},
        {"descricao": "Aluguel", "valor": 200.0, "tipo": "saida", "data": "2024-03-01T12:00:00+00:00"},
        {"descricao": "Exame", "valor": 300.0, "tipo": "entrada", "data": "2024-03-02T09:00:00+00:00"},
    ]
    for entry in entries:
        response = client.post("/api/financeiro", json=entry, headers=auth_headers)
        assert response.status_code == 201

    records = client.get("/api/financeiro", headers=auth_headers).json()
    assert [r["descricao"] for r in records] == ["Exame", "Aluguel", "Consulta"]

    limited = client.get("/api/financeiro?limit=1", headers=auth_headers).json()
    assert [r["descricao"] for r in limited] == ["Exame"]

    summary = client.get("/api/financeiro/summary", headers=auth_headers).json()
    assert summary["total_entradas"] == 1500.5
    assert summary["total_saidas"] == 200.0
    assert summary["saldo"] == 1300.5
    assert summary["saldo_formatado"] == "R$ 1.300,50"
    assert summary["records_count"] == 3
    assert summary["daily"] == [
        {"date": "01/03", "entradas": 1200.5, "saidas": 200.0},
        {"date": "02/03", "entradas": 300.0, "saidas": 0.0},
    ]


def test_summary_groups_days_in_clinic_timezone(auth_headers):
    # 22:30 on 01/03 in São Paulo, already 02/03 in UTC
    entry = {"descricao": "Plantão", "valor": 80.0, "tipo": "entrada", "data": "2024-03-02T01:30:00+00:00"}
    assert client.post("/api/financeiro", json=entry, headers=auth_headers).status_code == 201

    local = client.get("/api/financeiro/summary", headers=auth_headers).json()
    assert local["daily"] == [{"date": "01/03", "entradas": 80.0, "saidas": 0.0}]

    utc = client.get("/api/financeiro/summary?tz=UTC", headers=auth_headers).json()
    assert utc["daily"] == [{"date": "02/03", "entradas": 80.0, "saidas": 0.0}]

    response = client.get("/api/financeiro/summary?tz=Mars/Olympus", headers=auth_headers)
    assert response.status_code == 422


def test_manual_record_validation(auth_headers):
    response = client.post(
        "/api/financeiro", json={"descricao": "Consulta", "valor": 0, "tipo": "entrada"}, headers=auth_headers
    )
    assert response.status_code == 422

    response = client.post(
        "/api/financeiro", json={"descricao": "   ", "valor": 10, "tipo": "entrada"}, headers=auth_headers
    )
    assert response.status_code == 422

    response = client.post("/api/financeiro", json={"descricao": "x", "valor": 10, "tipo": "entrada"})
    assert response.status_code == 401


def test_admin_auth():
    assert client.post("/api/admin/auth", json={"password": "admin-secret"}).json()["success"] is True
    assert client.post("/api/admin/auth", json={"password": "wrong"}).json() == {
        "success": False,
        "message": "Invalid password",
    }


def test_admin_auth_without_configured_password(monkeypatch):
    monkeypatch.delenv("ADMIN_PASSWORD")
    response = client.post("/api/admin/auth", json={"password": "anything"})
    assert response.status_code == 500


def test_admin_manages_clinics_and_numbers(admin_headers):
    assert client.get("/api/admin/clinicas").status_code == 401

    response = client.post(
        "/api/admin/clinicas",
        json={"nome": "Odonto Sul", "chave_acesso": "odonto-sul", "dashboard_ativo": False, "feedbacks_ativos": False},
        headers=admin_headers,
    )
    assert response.status_code == 201
    clinic = response.json()

    names = [c["nome"] for c in client.get("/api/admin/clinicas", headers=admin_headers).json()]
    assert names == ["Clínica Teste", "Odonto Sul"]

    login = client.post("/api/login", json={"access_key": "odonto-sul"}).json()
    assert login["sections"] == ["agenda"]
    assert login["landing_page"] == "/medicos"

    response = client.post(
        "/api/admin/whatsapp",
        json={"clinica_id": clinic["id"], "numero_whatsapp": "+55 21 98888-7777"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["numero_whatsapp"] == "5521988887777"

    duplicate = client.post(
        "/api/admin/whatsapp",
        json={"clinica_id": clinic["id"], "numero_whatsapp": "5521988887777"},
        headers=admin_headers,
    )
    assert duplicate.status_code == 409

    response = client.post(
        "/api/whatsapp/finance", json={"from": "5521988887777", "body": "Receita R$ 90 limpeza dental"}
    )
    assert response.status_code == 200
    assert "Odonto Sul" in response.json()["reply"]


def test_admin_rejects_duplicate_access_key(admin_headers):
    response = client.post(
        "/api/admin/clinicas",
        json={"nome": "Outra", "chave_acesso": ACCESS_KEY},
        headers=admin_headers,
    )
    assert response.status_code == 409
