import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db import init_db
from .routers import (
    care,  # doctors, agenda, feedbacks
    clinics,
    finance,
    whatsapp,  # WhatsApp finance bot webhook
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Supabase tables are managed by migrations; only the SQLite fallback needs creating
    init_db()
    print("[startup] SQLite fallback schema ready")
    yield


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


app = FastAPI(title="Clinic Management Backend", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(clinics.router, prefix="/api", tags=["clinics"])
app.include_router(finance.router, prefix="/api", tags=["finance"])
app.include_router(care.router, prefix="/api", tags=["care"])
app.include_router(whatsapp.router, prefix="/api", tags=["whatsapp"])


@app.get("/")
async def root():
    return {"message": "Clinic Management Backend is running"}
