"""End-to-end tests for the farmer KYC endpoints.

PDF text extraction is patched so each uploaded byte string maps to a
known document text; everything downstream (parsing, reconciliation,
storage, HTTP layer) runs for real against a temp-dir profile store.

Covers:
  - Matching RTC + Aadhaar → verified profile with land details
  - Name mismatch → not_verified, Aadhaar-only profile
  - Gender label row on the Aadhaar
  - Documents uploaded in separate requests
  - Unreadable PDF, missing files, invalid farmer id, oversize upload
  - GET / DELETE
  - Sync and async pipeline entry points
  - Unreadable stored record, uvicorn runner
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.api.kyc import get_store
from app.main import app, run
from app.pipeline.identity import LAND_PROFILE_KEYS
from app.pipeline.orchestrator import (
    UploadedDocument,
    get_profile,
    process_documents,
    process_documents_async,
)

RTC_PDF = b"%PDF-1.4 rtc"
AADHAAR_PDF = b"%PDF-1.4 aadhaar"
MISMATCH_PDF = b"%PDF-1.4 aadhaar-suresh"
FEMALE_PDF = b"%PDF-1.4 aadhaar-female"
BLANK_PDF = b"%PDF-1.4 scanned"


# ═══════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════

@pytest.fixture
def texts(rtc_text, aadhaar_text, make_aadhaar_text):
    female = make_aadhaar_text("SUNITHA DEVI").replace(
        "ಪುರುಷ / MALE", "Gender: MALE / FEMALE\nಮಹಿಳೆ / FEMALE"
    )
    return {
        RTC_PDF: rtc_text,
        AADHAAR_PDF: aadhaar_text,
        MISMATCH_PDF: make_aadhaar_text("SURESH KUMAR"),
        FEMALE_PDF: female,
        BLANK_PDF: "",
    }


@pytest.fixture
def fake_extract(texts):
    with patch("app.pipeline.orchestrator.extract_pdf_text", side_effect=lambda data: texts[data]) as m:
        yield m


@pytest.fixture
def client(store, fake_extract):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _post(client, farmer_id="F1", **files):
    payload = {
        field: (f"{field}.pdf", data, "application/pdf")
        for field, data in files.items()
    }
    return client.post(f"/api/farmers/{farmer_id}/kyc", files=payload)


# ═══════════════════════════════════════════════════
# Upload scenarios
# ═══════════════════════════════════════════════════

class TestUpload:
    def test_matching_documents_verified(self, client, store):
        resp = _post(client, rtc=RTC_PDF, aadhaar=AADHAAR_PDF)
        assert resp.status_code == 200
        body = resp.json()
        profile = body["profile"]
        assert body["nameVerificationStatus"] == "verified"
        assert profile["nameVerificationStatus"] == "verified"
        assert profile["landParcelIdentity"] == "123/45*"
        assert profile["hissaNumber"] == "45"
        assert profile["totalCultivableArea"] == "2.10.5.0"
        assert profile["landOwners"] == ["Ramesh Kumar"]
        assert profile["verifiedName"] == "RAMESH KUMAR"
        assert profile["idProof"] == "Aadhaar: ****9012"
        assert profile["gender"] == "MALE"
        assert profile["documents"]["rtc"]["uploaded"] is True
        assert profile["documents"]["aadhaar"]["uploaded"] is True

        record = store.load("F1")
        assert record["documents"]["rtc"]["raw_text"]
        assert record["documents"]["rtc"]["original_name"] == "rtc.pdf"
        assert record["documents"]["aadhaar"]["fields"]["aadhaar_number"] == "1234 5678 9012"

    def test_name_mismatch_not_verified(self, client):
        body = _post(client, rtc=RTC_PDF, aadhaar=MISMATCH_PDF).json()
        profile = body["profile"]
        assert body["nameVerificationStatus"] == "not_verified"
        assert LAND_PROFILE_KEYS.isdisjoint(profile)
        assert profile["verifiedName"] == "SURESH KUMAR"
        assert profile["homeAddress"].startswith("S/O Krishnappa")
        assert profile["idProof"] == "Aadhaar: ****9012"
        assert "does not match" in body["message"]

    def test_gender_label_row(self, client):
        body = _post(client, aadhaar=FEMALE_PDF).json()
        assert body["profile"]["gender"] == "FEMALE"
        assert body["nameVerificationStatus"] == "pending"

    def test_documents_in_separate_requests(self, client):
        first = _post(client, rtc=RTC_PDF).json()
        assert first["nameVerificationStatus"] == "pending"
        assert "landParcelIdentity" not in first["profile"]
        assert first["profile"]["documents"]["aadhaar"]["uploaded"] is False

        second = _post(client, aadhaar=AADHAAR_PDF).json()
        assert second["nameVerificationStatus"] == "verified"
        assert second["profile"]["landParcelIdentity"] == "123/45*"

    def test_reupload_replaces_previous_document(self, client):
        _post(client, rtc=RTC_PDF, aadhaar=AADHAAR_PDF)
        body = _post(client, aadhaar=MISMATCH_PDF).json()
        assert body["nameVerificationStatus"] == "not_verified"
        assert "landParcelIdentity" not in body["profile"]

    def test_aadhar_alias_field(self, client):
        body = _post(client, rtc=RTC_PDF, aadhar=AADHAAR_PDF).json()
        assert body["nameVerificationStatus"] == "verified"

    def test_unreadable_pdf(self, client, store):
        body = _post(client, rtc=BLANK_PDF).json()
        assert body["nameVerificationStatus"] == "pending"
        assert "No text could be read from the RTC document" in body["message"]
        entry = store.load("F1")["documents"]["rtc"]
        assert entry["text_extracted"] is False
        assert entry["fields"]["land_identification"]["survey_number"] is None

    def test_raw_text_not_in_response(self, client):
        body = _post(client, rtc=RTC_PDF, aadhaar=AADHAAR_PDF).json()
        assert "raw_text" not in str(body)


class TestUploadErrors:
    def test_no_files(self, client):
        resp = client.post("/api/farmers/F1/kyc")
        assert resp.status_code == 400

    def test_invalid_farmer_id(self, client):
        resp = _post(client, farmer_id="bad.id", rtc=RTC_PDF)
        assert resp.status_code == 400

    def test_oversize_upload(self, client):
        with patch("app.api.kyc.MAX_UPLOAD_BYTES", 8):
            resp = _post(client, rtc=RTC_PDF)
        assert resp.status_code == 413


# ═══════════════════════════════════════════════════
# GET / DELETE
# ═══════════════════════════════════════════════════

class TestReadAndDelete:
    def test_get_missing_profile(self, client):
        assert client.get("/api/farmers/F404/kyc").status_code == 404

    def test_get_after_upload(self, client):
        _post(client, rtc=RTC_PDF, aadhaar=AADHAAR_PDF)
        body = client.get("/api/farmers/F1/kyc").json()
        assert body["nameVerificationStatus"] == "verified"
        assert body["profile"]["landParcelIdentity"] == "123/45*"
        assert body["profile"]["documents"]["rtc"]["uploadedAt"]

    def test_delete(self, client):
        _post(client, rtc=RTC_PDF)
        assert client.delete("/api/farmers/F1/kyc").json() == {"deleted": True}
        assert client.get("/api/farmers/F1/kyc").status_code == 404
        assert client.delete("/api/farmers/F1/kyc").json() == {"deleted": False}

    def test_get_corrupt_record_is_404(self, client, store):
        (store.root / "F1.json").write_text("{\"farmer_id\": ", encoding="utf-8")
        assert client.get("/api/farmers/F1/kyc").status_code == 404
        assert _post(client, rtc=RTC_PDF).status_code == 200
        assert client.get("/api/farmers/F1/kyc").status_code == 200

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "operational"
        assert isinstance(body["pdftotext"], bool)


# ═══════════════════════════════════════════════════
# Pipeline entry points
# ═══════════════════════════════════════════════════

class TestPipeline:
    def test_process_documents_sync(self, store, fake_extract):
        uploads = {"rtc": UploadedDocument(kind="rtc", filename="rtc.pdf", data=RTC_PDF)}
        result = process_documents("F8", uploads, store)
        assert result["nameVerificationStatus"] == "pending"
        assert get_profile("F8", store)["profile"]["documents"]["rtc"]["uploaded"] is True

    def test_empty_uploads_rejected(self, store):
        with pytest.raises(ValueError):
            process_documents("F8", {}, store)

    def test_get_profile_missing(self, store):
        assert get_profile("F8", store) is None

    @pytest.mark.asyncio
    async def test_process_documents_async(self, store, fake_extract):
        uploads = {
            "rtc": UploadedDocument(kind="rtc", filename="rtc.pdf", data=RTC_PDF),
            "aadhaar": UploadedDocument(kind="aadhaar", filename="a.pdf", data=AADHAAR_PDF),
        }
        result = await process_documents_async("F9", uploads, store)
        assert result["nameVerificationStatus"] == "verified"
        assert fake_extract.call_count == 2
        assert store.load("F9")["name_verification_status"] == "verified"

    @pytest.mark.asyncio
    async def test_unknown_kind_rejected(self, store):
        with pytest.raises(ValueError):
            await process_documents_async(
                "F9", {"pan": UploadedDocument(kind="pan", filename="p.pdf", data=b"%PDF")}, store
            )


# ═══════════════════════════════════════════════════
# Server runner
# ═══════════════════════════════════════════════════

class TestRun:
    def test_run_starts_uvicorn_with_configured_bind(self):
        with patch("app.main.uvicorn.run") as mock_run, \
             patch("app.main.API_HOST", "0.0.0.0"), \
             patch("app.main.API_PORT", 9001):
            run()
        mock_run.assert_called_once_with(app, host="0.0.0.0", port=9001)
