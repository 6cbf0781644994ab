"""Clinic access-key and admin password authentication for FastAPI."""
import os
import secrets
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .db import find_clinic_by_access_key

security = HTTPBearer(auto_error=False)


async def get_current_clinic(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Dict[str, Any]:
    """
    Resolve the clinic whose access key is sent as the bearer token.

    Every clinic-scoped endpoint depends on this, so each query is filtered
    by the returned clinic's ``id``.
    """
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing clinic access key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    clinic = find_clinic_by_access_key(credentials.credentials)
    if clinic is None:
        print("[Auth] Rejected unknown access key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return clinic


def require_feature(flag: str):
    """Dependency factory: the current clinic, or 403 when ``flag`` is off."""

    async def _check(clinic: Dict[str, Any] = Depends(get_current_clinic)) -> Dict[str, Any]:
        if not clinic.get(flag):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Recurso não habilitado para esta clínica",
            )
        return clinic

    return _check


def get_admin_password() -> str:
    """Configured admin password, or a 500 when the deployment lacks one."""
    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin password not configured",
        )
    return admin_password


def check_admin_password(password: Optional[str]) -> bool:
    admin_password = get_admin_password()
    if not password:
        return False
    return secrets.compare_digest(password.encode(), admin_password.encode())


async def require_admin(x_admin_password: Optional[str] = Header(default=None)) -> None:
    if not check_admin_password(x_admin_password):
        print("[Auth] Admin request with wrong password")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
