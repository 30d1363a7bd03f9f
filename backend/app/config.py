"""Application configuration."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Base paths
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from backend root (before any os.getenv calls)
load_dotenv(BASE_DIR / ".env")
TEMP_DIR = BASE_DIR / "temp"
PROFILES_DIR = Path(os.getenv("KYC_PROFILES_DIR", str(TEMP_DIR / "profiles")))

# Create directories
for d in [TEMP_DIR, PROFILES_DIR]:
    d.mkdir(parents=True, exist_ok=True)

# Text extraction
# "auto" uses pdftotext when the binary is found and falls back to pdfplumber.
PDF_TEXT_ENGINE = os.getenv("PDF_TEXT_ENGINE", "auto").strip().lower()
PDFTOTEXT_CMD = os.getenv("PDFTOTEXT_CMD", "pdftotext")
PDF_TEXT_TIMEOUT = int(os.getenv("PDF_TEXT_TIMEOUT", "30"))   # seconds per pdftotext run

# Uploads
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "20"))
MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024

# Stale atomic-write leftovers in PROFILES_DIR are removed at startup
TEMP_FILE_TTL_SECONDS = 24 * 60 * 60

# Debug trace mode: set KYC_TRACE=1 to log every parser rule hit/miss
TRACE_ENABLED = os.getenv("KYC_TRACE", "").strip().lower() in ("1", "true", "yes")

# Document kinds accepted by the upload endpoint
DOCUMENT_KINDS = [
    "rtc",        # Record of Rights, Tenancy and Crops (Bhoomi)
    "aadhaar",    # Aadhaar e-letter / card
]

# CORS origins for local front-ends
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if o.strip()
]

# Bind address for the standalone uvicorn runner (app.main.run)
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))
