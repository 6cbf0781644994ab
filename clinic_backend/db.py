import sqlite3
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

# Load environment variables from .env file in the package directory
from dotenv import load_dotenv
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)

# Check if Supabase is configured
USE_SUPABASE = bool(os.getenv("SUPABASE_URL"))

if USE_SUPABASE:
    try:
        from .supabase_client import get_supabase
        print("[DB] Using Supabase database")
    except Exception as e:
        print(f"[DB] Supabase import failed: {e}. Falling back to SQLite")
        USE_SUPABASE = False
else:
    print("[DB] Using SQLite database (local file)")

DEFAULT_DB_PATH = Path(__file__).parent / "clinic.db"

_BOOL_COLUMNS = ("dashboard_ativo", "feedbacks_ativos", "agenda_ativa", "ativo")


class StorageError(RuntimeError):
    """Raised when neither Supabase nor SQLite could serve a request."""


def get_db_path() -> Path:
    return Path(os.getenv("CLINIC_DB_PATH") or DEFAULT_DB_PATH)


def get_connection() -> sqlite3.Connection:
    """Get SQLite connection (used when Supabase is not configured)."""
    conn = sqlite3.connect(get_db_path())
    conn.row_factory = sqlite3.Row
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
    data = dict(row)
    for column in _BOOL_COLUMNS:
        if column in data:
            data[column] = bool(data[column])
    return data


def init_db() -> None:
    conn = get_connection()
    try:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS clinicas (
                id TEXT PRIMARY KEY,
                nome TEXT NOT NULL,
                chave_acesso TEXT NOT NULL UNIQUE,
                dashboard_ativo INTEGER NOT NULL DEFAULT 1,
                feedbacks_ativos INTEGER NOT NULL DEFAULT 1,
                agenda_ativa INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS whatsapp_clinicas (
                id TEXT PRIMARY KEY,
                clinica_id TEXT NOT NULL REFERENCES clinicas(id),
                numero_whatsapp TEXT NOT NULL UNIQUE,
                ativo INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS financeiro (
                id TEXT PRIMARY KEY,
                clinica_id TEXT NOT NULL REFERENCES clinicas(id),
                tipo TEXT NOT NULL CHECK (tipo IN ('entrada', 'saida')),
                valor REAL NOT NULL,
                descricao TEXT NOT NULL,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS medicos (
                id TEXT PRIMARY KEY,
                clinica_id TEXT NOT NULL REFERENCES clinicas(id),
                nome TEXT NOT NULL,
                especialidade TEXT NOT NULL,
                crm TEXT NOT NULL,
                telefone TEXT,
                email TEXT,
                ativo INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS agendamentos (
                id TEXT PRIMARY KEY,
                clinica_id TEXT NOT NULL REFERENCES clinicas(id),
                paciente TEXT NOT NULL,
                profissional TEXT NOT NULL,
                data TEXT NOT NULL,
                horario TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'confirmado',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS feedbacks (
                id TEXT PRIMARY KEY,
                clinica_id TEXT NOT NULL REFERENCES clinicas(id),
                paciente TEXT NOT NULL,
                profissional TEXT NOT NULL,
                nota INTEGER NOT NULL CHECK (nota BETWEEN 1 AND 5),
                comentario TEXT,
                como_conheceu TEXT,
                sentimento REAL,
                criado_em TEXT NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_financeiro_clinica ON financeiro(clinica_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_medicos_clinica ON medicos(clinica_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_agendamentos_clinica ON agendamentos(clinica_id, data)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_feedbacks_clinica ON feedbacks(clinica_id)")
        conn.commit()
    finally:
        conn.close()


def _sqlite_insert(table: str, data: Dict[str, Any]) -> Dict[str, Any]:
    row = {"id": str(uuid.uuid4()), **data}
    columns = ", ".join(row)
    placeholders = ", ".join(f":{column}" for column in row)
    conn = get_connection()
    try:
        conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", row)
        conn.commit()
        stored = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (row["id"],)).fetchone()
        return _row_to_dict(stored)
    except sqlite3.Error as e:
        raise StorageError(f"Could not insert into {table}: {e}") from e
    finally:
        conn.close()


def _sqlite_select(query: str, params: tuple = ()) -> List[Dict[str, Any]]:
    conn = get_connection()
    try:
        return [_row_to_dict(row) for row in conn.execute(query, params).fetchall()]
    except sqlite3.Error as e:
        raise StorageError(f"Query failed: {e}") from e
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Clinics
# ---------------------------------------------------------------------------

def insert_clinic(data: Dict[str, Any]) -> Dict[str, Any]:
    """Create a clinic row and return it as stored."""
    now = _now()
    data = {**data, "created_at": now, "updated_at": now}

    if USE_SUPABASE:
        try:
            result = get_supabase().table("clinicas").insert(data).execute()
            return result.data[0]
        except Exception as e:
            print(f"[DB] Supabase clinic insert failed: {e}. Falling back to SQLite")

    return _sqlite_insert("clinicas", data)


def list_clinics() -> List[Dict[str, Any]]:
    if USE_SUPABASE:
        try:
            result = get_supabase().table("clinicas").select("*").order("nome").execute()
            return result.data
        except Exception as e:
            print(f"[DB] Supabase clinic listing failed: {e}. Falling back to SQLite")

    return _sqlite_select("SELECT * FROM clinicas ORDER BY nome")


def get_clinic(clinic_id: str) -> Optional[Dict[str, Any]]:
    if USE_SUPABASE:
        try:
            result = (
                get_supabase().table("clinicas").select("*").eq("id", clinic_id).limit(1).execute()
            )
            return result.data[0] if result.data else None
        except Exception as e:
            print(f"[DB] Supabase clinic lookup failed: {e}. Falling back to SQLite")

    rows = _sqlite_select("SELECT * FROM clinicas WHERE id = ?", (clinic_id,))
    return rows[0] if rows else None


def find_clinic_by_access_key(access_key: str) -> Optional[Dict[str, Any]]:
    """Resolve the tenant for a login access key (``chave_acesso``)."""
    if USE_SUPABASE:
        try:
            result = (
                get_supabase()
                .table("clinicas")
                .select("*")
                .eq("chave_acesso", access_key)
                .limit(1)
                .execute()
            )
            return result.data[0] if result.data else None
        except Exception as e:
            print(f"[DB] Supabase access key lookup failed: {e}. Falling back to SQLite")

    rows = _sqlite_select("SELECT * FROM clinicas WHERE chave_acesso = ?", (access_key,))
    return rows[0] if rows else None


# ---------------------------------------------------------------------------
# WhatsApp numbers
# ---------------------------------------------------------------------------

def insert_whatsapp_number(data: Dict[str, Any]) -> Dict[str, Any]:
    now = _now()
    data = {**data, "created_at": now, "updated_at": now}

    if USE_SUPABASE:
        try:
            result = get_supabase().table("whatsapp_clinicas").insert(data).execute()
            return result.data[0]
        except Exception as e:
            print(f"[DB] Supabase whatsapp insert failed: {e}. Falling back to SQLite")

    return _sqlite_insert("whatsapp_clinicas", data)


def list_whatsapp_numbers() -> List[Dict[str, Any]]:
    if USE_SUPABASE:
        try:
            result = (
                get_supabase().table("whatsapp_clinicas").select("*").order("numero_whatsapp").execute()
            )
            return result.data
        except Exception as e:
            print(f"[DB] Supabase whatsapp listing failed: {e}. Falling back to SQLite")

    return _sqlite_select("SELECT * FROM whatsapp_clinicas ORDER BY numero_whatsapp")


def find_clinic_by_whatsapp(numero_whatsapp: str) -> Optional[Dict[str, Any]]:
    """Return ``{"clinica_id", "nome"}`` for an active WhatsApp number, or None."""
    if USE_SUPABASE:
        try:
            result = (
                get_supabase()
                .table("whatsapp_clinicas")
                .select("clinica_id, clinicas(nome)")
                .eq("numero_whatsapp", numero_whatsapp)
                .eq("ativo", True)
                .limit(1)
                .execute()
            )
            if not result.data:
                return None
            row = result.data[0]
            return {
                "clinica_id": row["clinica_id"],
                "nome": (row.get("clinicas") or {}).get("nome"),
            }
        except Exception as e:
            print(f"[DB] Supabase whatsapp lookup failed: {e}. Falling back to SQLite")

    rows = _sqlite_select(
        """
        SELECT w.clinica_id AS clinica_id, c.nome AS nome
        FROM whatsapp_clinicas w
        JOIN clinicas c ON c.id = w.clinica_id
        WHERE w.numero_whatsapp = ? AND w.ativo = 1
        LIMIT 1
        """,
        (numero_whatsapp,),
    )
    return rows[0] if rows else None


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

def insert_finance_record(data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a ledger row into ``financeiro`` (Supabase or SQLite).

    ``data`` carries ``clinica_id``, ``tipo``, ``valor``, ``descricao`` and
    optionally ``data`` (defaults to now).
    """
    now = _now()
    data = {"data": now, **data, "created_at": now}

    if USE_SUPABASE:
        try:
            result = get_supabase().table("financeiro").insert(data).execute()
            return result.data[0]
        except Exception as e:
            print(f"[DB] Supabase financeiro insert failed: {e}. Falling back to SQLite")
            # Fall through to SQLite

    return _sqlite_insert("financeiro", data)


def list_finance_records(clinic_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Ledger rows for one clinic, newest ``data`` first."""
    if USE_SUPABASE:
        try:
            query = (
                get_supabase()
                .table("financeiro")
                .select("*")
                .eq("clinica_id", clinic_id)
                .order("data", desc=True)
            )
            if limit is not None:
                query = query.limit(limit)
            return query.execute().data
        except Exception as e:
            print(f"[DB] Supabase financeiro listing failed: {e}. Falling back to SQLite")

    query = "SELECT * FROM financeiro WHERE clinica_id = ? ORDER BY data DESC, created_at DESC"
    params: tuple = (clinic_id,)
    if limit is not None:
        query += " LIMIT ?"
        params = (clinic_id, limit)
    return _sqlite_select(query, params)


# ---------------------------------------------------------------------------
# Doctors
# ---------------------------------------------------------------------------

def list_doctors(clinic_id: str) -> List[Dict[str, Any]]:
    """Doctor roster for one clinic, ordered by name."""
    if USE_SUPABASE:
        try:
            result = (
                get_supabase().table("medicos").select("*").eq("clinica_id", clinic_id).order("nome").execute()
            )
            return result.data
        except Exception as e:
            print(f"[DB] Supabase medicos listing failed: {e}. Falling back to SQLite")

    return _sqlite_select("SELECT * FROM medicos WHERE clinica_id = ? ORDER BY nome", (clinic_id,))


def insert_doctor(data: Dict[str, Any]) -> Dict[str, Any]:
    now = _now()
    data = {**data, "created_at": now, "updated_at": now}

    if USE_SUPABASE:
        try:
            result = get_supabase().table("medicos").insert(data).execute()
            return result.data[0]
        except Exception as e:
            print(f"[DB] Supabase medicos insert failed: {e}. Falling back to SQLite")

    return _sqlite_insert("medicos", data)


def update_doctor(clinic_id: str, doctor_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Apply ``changes`` to a doctor of ``clinic_id``; None when no such doctor."""
    changes = {**changes, "updated_at": _now()}

    if USE_SUPABASE:
        try:
            result = (
                get_supabase()
                .table("medicos")
                .update(changes)
                .eq("id", doctor_id)
                .eq("clinica_id", clinic_id)
                .execute()
            )
            return result.data[0] if result.data else None
        except Exception as e:
            print(f"[DB] Supabase medicos update failed: {e}. Falling back to SQLite")

    assignments = ", ".join(f"{column} = :{column}" for column in changes)
    params = {**changes, "id": doctor_id, "clinica_id": clinic_id}
    conn = get_connection()
    try:
        cursor = conn.execute(
            f"UPDATE medicos SET {assignments} WHERE id = :id AND clinica_id = :clinica_id", params
        )
        conn.commit()
        if cursor.rowcount == 0:
            return None
        stored = conn.execute("SELECT * FROM medicos WHERE id = ?", (doctor_id,)).fetchone()
        return _row_to_dict(stored)
    except sqlite3.Error as e:
        raise StorageError(f"Could not update medicos: {e}") from e
    finally:
        conn.close()


def delete_doctor(clinic_id: str, doctor_id: str) -> bool:
    if USE_SUPABASE:
        try:
            result = (
                get_supabase()
                .table("medicos")
                .delete()
                .eq("id", doctor_id)
                .eq("clinica_id", clinic_id)
                .execute()
            )
            return bool(result.data)
        except Exception as e:
            print(f"[DB] Supabase medicos delete failed: {e}. Falling back to SQLite")

    conn = get_connection()
    try:
        cursor = conn.execute(
            "DELETE FROM medicos WHERE id = ? AND clinica_id = ?", (doctor_id, clinic_id)
        )
        conn.commit()
        return cursor.rowcount > 0
    except sqlite3.Error as e:
        raise StorageError(f"Could not delete from medicos: {e}") from e
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Appointments and feedbacks
# ---------------------------------------------------------------------------

def insert_appointment(data: Dict[str, Any]) -> Dict[str, Any]:
    """Store an appointment (rows normally arrive from the calendar sync)."""
    now = _now()
    data = {"status": "confirmado", **data, "created_at": now, "updated_at": now}

    if USE_SUPABASE:
        try:
            result = get_supabase().table("agendamentos").insert(data).execute()
            return result.data[0]
        except Exception as e:
            print(f"[DB] Supabase agendamentos insert failed: {e}. Falling back to SQLite")

    return _sqlite_insert("agendamentos", data)


def list_appointments(clinic_id: str, day: Optional[str] = None) -> List[Dict[str, Any]]:
    """Appointments ordered by date then time, optionally for one ISO day."""
    if USE_SUPABASE:
        try:
            query = get_supabase().table("agendamentos").select("*").eq("clinica_id", clinic_id)
            if day is not None:
                query = query.eq("data", day)
            return query.order("data").order("horario").execute().data
        except Exception as e:
            print(f"[DB] Supabase agendamentos listing failed: {e}. Falling back to SQLite")

    query = "SELECT * FROM agendamentos WHERE clinica_id = ?"
    params: tuple = (clinic_id,)
    if day is not None:
        query += " AND data = ?"
        params = (clinic_id, day)
    return _sqlite_select(query + " ORDER BY data, horario", params)


def insert_feedback(data: Dict[str, Any]) -> Dict[str, Any]:
    """Store a patient feedback; ``criado_em`` defaults to now."""
    data = {"criado_em": _now(), **data}

    if USE_SUPABASE:
        try:
            result = get_supabase().table("feedbacks").insert(data).execute()
            return result.data[0]
        except Exception as e:
            print(f"[DB] Supabase feedbacks insert failed: {e}. Falling back to SQLite")

    return _sqlite_insert("feedbacks", data)


def list_feedbacks(clinic_id: str) -> List[Dict[str, Any]]:
    """Feedbacks for one clinic, newest first."""
    if USE_SUPABASE:
        try:
            result = (
                get_supabase()
                .table("feedbacks")
                .select("*")
                .eq("clinica_id", clinic_id)
                .order("criado_em", desc=True)
                .execute()
            )
            return result.data
        except Exception as e:
            print(f"[DB] Supabase feedbacks listing failed: {e}. Falling back to SQLite")

    return _sqlite_select(
        "SELECT * FROM feedbacks WHERE clinica_id = ? ORDER BY criado_em DESC", (clinic_id,)
    )
