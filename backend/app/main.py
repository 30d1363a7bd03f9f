"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api import kyc
from app.config import API_HOST, API_PORT, CORS_ORIGINS, PDF_TEXT_ENGINE, TEMP_FILE_TTL_SECONDS
from app.pipeline.ingestion import resolve_pdftotext

logger = logging.getLogger(__name__)


def _cleanup_stale_temp_files():
    """Delete atomic-write leftovers in the profile store older than the TTL."""
    removed = kyc.get_store().cleanup_stale_temp_files(TEMP_FILE_TTL_SECONDS)
    if removed:
        logger.info(f"Startup cleanup: removed {removed} stale temp file(s) older than 24h")
    if PDF_TEXT_ENGINE != "pdfplumber" and not resolve_pdftotext():
        logger.warning("pdftotext not found: text extraction will use pdfplumber")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: cleanup stale temp files on startup."""
    _cleanup_stale_temp_files()
    yield


app = FastAPI(
    title="Farmer KYC Extraction Service",
    description="RTC and Aadhaar field extraction with owner-name verification",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(kyc.router, prefix="/api/farmers", tags=["KYC"])


@app.get("/api/health")
async def health():
    return {
        "status": "operational",
        "pdf_engine": PDF_TEXT_ENGINE,
        "pdftotext": resolve_pdftotext() is not None,
    }


def run():
    """Serve the app with uvicorn on API_HOST:API_PORT."""
    uvicorn.run(app, host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    run()
