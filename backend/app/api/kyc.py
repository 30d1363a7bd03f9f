"""Farmer KYC document upload and profile endpoints."""

import logging
from pathlib import Path, PurePosixPath
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from app.config import MAX_UPLOAD_BYTES, MAX_UPLOAD_MB
from app.pipeline.orchestrator import (
    UploadedDocument,
    get_profile,
    process_documents_async,
)
from app.pipeline.profile_store import ProfileStore, validate_farmer_id
from app.pipeline.schemas import DocumentKind, NameVerificationStatus

router = APIRouter()
logger = logging.getLogger(__name__)

_READ_CHUNK = 1024 * 1024  # 1 MB
_store: ProfileStore | None = None


class KycResponse(BaseModel):
    profile: dict
    message: str
    nameVerificationStatus: NameVerificationStatus


def get_store() -> ProfileStore:
    """Process-wide profile store (overridable in tests)."""
    global _store
    if _store is None:
        _store = ProfileStore()
    return _store


def _sanitize_filename(raw: str) -> str:
    """Strip path components and keep only the basename."""
    name = PurePosixPath(raw).name
    name = Path(name).name  # also handles backslashes
    return name or "document.pdf"


def _checked_farmer_id(farmer_id: str) -> str:
    try:
        return validate_farmer_id(farmer_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


async def _read_upload(file: UploadFile) -> bytes:
    """Read an upload with a size cap (streaming, 1 MB at a time)."""
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(_READ_CHUNK)
        if not chunk:
            break
        total += len(chunk)
        if total > MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"File too large: {_sanitize_filename(file.filename or '')} exceeds {MAX_UPLOAD_MB} MB limit",
            )
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/{farmer_id}/kyc", response_model=KycResponse)
async def upload_kyc_documents(
    farmer_id: str,
    rtc: UploadFile | None = File(None),
    aadhaar: UploadFile | None = File(None),
    aadhar: UploadFile | None = File(None),
    store: ProfileStore = Depends(get_store),
):
    """Upload an RTC and/or Aadhaar PDF, extract fields, and rebuild the profile.

    Land details are stored only when the RTC owner name matches the Aadhaar
    name; see ``nameVerificationStatus`` in the response.
    """
    farmer_id = _checked_farmer_id(farmer_id)
    files = {
        DocumentKind.RTC: rtc,
        DocumentKind.AADHAAR: aadhaar or aadhar,
    }

    uploads: dict[str, UploadedDocument] = {}
    for kind, file in files.items():
        if file is None or not file.filename:
            continue
        safe_name = _sanitize_filename(file.filename)
        data = await _read_upload(file)
        uploads[kind] = UploadedDocument(kind=kind, filename=safe_name, data=data)
        logger.info(f"KYC {farmer_id}: received {kind} '{safe_name}' ({len(data):,} bytes)")

    if not uploads:
        raise HTTPException(status_code=400, detail="Please choose at least one document (rtc or aadhaar)")

    return await process_documents_async(farmer_id, uploads, store)


@router.get("/{farmer_id}/kyc", response_model=KycResponse)
async def get_kyc_profile(farmer_id: str, store: ProfileStore = Depends(get_store)):
    """Return the stored profile with its verification status."""
    farmer_id = _checked_farmer_id(farmer_id)
    payload = get_profile(farmer_id, store)
    if payload is None:
        raise HTTPException(status_code=404, detail="No KYC documents uploaded yet")
    return payload


@router.delete("/{farmer_id}/kyc")
async def delete_kyc_profile(farmer_id: str, store: ProfileStore = Depends(get_store)):
    """Delete the stored KYC record."""
    farmer_id = _checked_farmer_id(farmer_id)
    return {"deleted": store.delete(farmer_id)}
