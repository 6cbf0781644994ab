"""Supabase client singleton shared by the storage layer."""

from typing import Optional
import os
from supabase import create_client, Client

_supabase: Optional[Client] = None


def get_supabase() -> Client:
    """Return the process-wide Supabase client, creating it on first use.

    Reads ``SUPABASE_URL`` and ``SUPABASE_SERVICE_KEY``. The hosted database
    holds every clinic, and access is scoped per clinic by the API rather than
    by row-level security. So the backend uses the service role key: the
    WhatsApp webhook resolves a tenant from an arbitrary sender number, and
    admin endpoints list all clinics.

    Raises:
        ValueError: If either variable is missing.
    """
    global _supabase

    if _supabase is None:
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_SERVICE_KEY")

        if not url or not key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY must be set to use the hosted database."
            )

        _supabase = create_client(url, key)
        print(f"[Supabase] Connected to {url}")

    return _supabase
