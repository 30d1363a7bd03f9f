"""KYC document pipeline: extract → parse → reconcile → persist.

One call handles one upload request carrying an RTC and/or an Aadhaar
PDF.  Each supplied document replaces its previous entry in the farmer's
record wholesale; the profile is then rebuilt from the latest entry of each
kind so that a farmer may upload the two documents in separate requests.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from app.config import DOCUMENT_KINDS
from app.pipeline.extractors import get_extractor
from app.pipeline.identity import build_message, build_profile
from app.pipeline.ingestion import extract_pdf_text
from app.pipeline.profile_store import ProfileStore
from app.pipeline.schemas import (
    DocumentKind,
    IdentityFields,
    LandRecordFields,
    NameVerificationStatus,
)

logger = logging.getLogger(__name__)

SUPPORTED_KINDS = tuple(DOCUMENT_KINDS)


@dataclass
class UploadedDocument:
    kind: str
    filename: str
    data: bytes


@dataclass
class ExtractedDocument:
    kind: str
    filename: str
    size: int
    raw_text: str
    fields: dict

    @property
    def text_extracted(self) -> bool:
        return bool(self.raw_text)

    def to_record(self, uploaded_at: str) -> dict:
        return {
            "uploaded": True,
            "uploaded_at": uploaded_at,
            "original_name": self.filename,
            "size": self.size,
            "text_extracted": self.text_extracted,
            "raw_text": self.raw_text,
            "fields": self.fields,
        }


def _validate_uploads(uploads: dict[str, UploadedDocument]):
    if not uploads:
        raise ValueError("At least one document (rtc or aadhaar) is required")
    unknown = set(uploads) - set(SUPPORTED_KINDS)
    if unknown:
        raise ValueError(f"Unsupported document kind(s): {', '.join(sorted(unknown))}")


def extract_document(doc: UploadedDocument) -> ExtractedDocument:
    """Extract text from one uploaded PDF and parse it."""
    raw_text = extract_pdf_text(doc.data)
    parsed = get_extractor(doc.kind).extract(raw_text)
    return ExtractedDocument(
        kind=doc.kind,
        filename=doc.filename,
        size=len(doc.data),
        raw_text=raw_text,
        fields=parsed.to_dict(),
    )


def _documents_status(documents: dict) -> dict:
    status = {}
    for kind in SUPPORTED_KINDS:
        entry = documents.get(kind) or {}
        status[kind] = {
            "uploaded": bool(entry.get("uploaded")),
            "uploadedAt": entry.get("uploaded_at"),
        }
    return status


def _reconcile_record(record: dict):
    """Rebuild ``profile`` and status from the latest parsed documents."""
    documents = record.get("documents") or {}
    rtc_entry = documents.get(DocumentKind.RTC)
    aadhaar_entry = documents.get(DocumentKind.AADHAAR)
    land = LandRecordFields.from_dict(rtc_entry.get("fields")) if rtc_entry else None
    identity = IdentityFields.from_dict(aadhaar_entry.get("fields")) if aadhaar_entry else None

    result = build_profile(land, identity)
    record["profile"] = result.profile
    record["name_verification_status"] = result.status.value


def _payload(record: dict, message: str) -> dict:
    profile = dict(record.get("profile") or {})
    profile["documents"] = _documents_status(record.get("documents") or {})
    status = record.get("name_verification_status") or NameVerificationStatus.PENDING.value
    return {
        "profile": profile,
        "message": message,
        "nameVerificationStatus": status,
    }


def store_extracted(
    farmer_id: str, extracted: list[ExtractedDocument], store: ProfileStore
) -> dict:
    """Persist freshly extracted documents and return the response payload."""
    uploaded_at = datetime.now().isoformat()

    def _apply(record: dict):
        for doc in extracted:
            record["documents"][doc.kind] = doc.to_record(uploaded_at)
        _reconcile_record(record)

    record = store.update(farmer_id, _apply)
    status = NameVerificationStatus(record["name_verification_status"])
    unreadable = [d.kind for d in extracted if not d.text_extracted]
    logger.info(
        f"KYC {farmer_id}: processed {', '.join(d.kind for d in extracted)} → {status.value}"
        + (f" (unreadable: {', '.join(unreadable)})" if unreadable else "")
    )
    return _payload(record, build_message(status, unreadable))


def process_documents(
    farmer_id: str, uploads: dict[str, UploadedDocument], store: ProfileStore
) -> dict:
    """Synchronous pipeline for one upload request.

    Returns:
        ``{"profile": {...}, "message": str, "nameVerificationStatus": str}``
    """
    _validate_uploads(uploads)
    extracted = [extract_document(uploads[k]) for k in SUPPORTED_KINDS if k in uploads]
    return store_extracted(farmer_id, extracted, store)


async def process_documents_async(
    farmer_id: str, uploads: dict[str, UploadedDocument], store: ProfileStore
) -> dict:
    """Async variant: blocking extraction and file I/O run in worker threads."""
    _validate_uploads(uploads)
    extracted = await asyncio.gather(*[
        asyncio.to_thread(extract_document, uploads[k])
        for k in SUPPORTED_KINDS if k in uploads
    ])
    return await asyncio.to_thread(store_extracted, farmer_id, list(extracted), store)


def get_profile(farmer_id: str, store: ProfileStore) -> dict | None:
    """Payload for a stored record, or ``None`` if the farmer has none."""
    record = store.load(farmer_id)
    if record is None:
        return None
    status = NameVerificationStatus(
        record.get("name_verification_status") or NameVerificationStatus.PENDING.value
    )
    return _payload(record, build_message(status))
