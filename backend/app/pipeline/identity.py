"""Name reconciliation and farmer profile builder.

The RTC names the land owner; the Aadhaar names the person who uploaded
it.  Land data is only trusted when the two agree:

    RTC owners[0] ──┐
                    ├─ normalize ─ compare ─► verified | not_verified
    Aadhaar name ───┘                          (pending if either is missing)

Identity fields from the Aadhaar are always exposed because they describe
the uploader themselves.  Land fields are *omitted* from the profile unless
the status is ``verified``; consumers branch on key presence as well as on
``nameVerificationStatus``, so the two must stay consistent.

Normalization policy: NFKC, case-fold, strip a leading honorific, turn
punctuation and digits into spaces, collapse whitespace.  There is no
transliteration, so a Kannada RTC name is compared against the Kannada
Aadhaar name and a Latin one against the English name.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Optional

from app.config import TRACE_ENABLED
from app.pipeline.schemas import (
    DocumentKind,
    IdentityFields,
    LandRecordFields,
    NameVerificationStatus,
)
from app.pipeline.utils import has_kannada

logger = logging.getLogger(__name__)

_HONORIFIC_RE = re.compile(
    r'^(?:mr|mrs|ms|sri|shri|smt|dr|kumari)(?:\.\s*|\s+)',
    re.IGNORECASE,
)

# Profile keys derived from the RTC: present only when verified
LAND_PROFILE_KEYS = frozenset({
    "landParcelIdentity", "hissaNumber", "totalCultivableArea",
    "remainingExtent", "phutKharab", "landTax", "soilProperties",
    "mutationTraceability", "accountNumber", "landOwners", "rtcAddress",
    "validFrom", "cultivationHistory", "ownershipVerified",
})

_DOCUMENT_LABELS = {
    DocumentKind.RTC: "RTC",
    DocumentKind.AADHAAR: "Aadhaar",
}


def _trace(msg: str):
    if TRACE_ENABLED:
        logger.debug(f"[TRACE] {msg}")


# ═══════════════════════════════════════════════════
# NAME HELPERS
# ═══════════════════════════════════════════════════

def normalize_person_name(name: Any) -> str:
    """Normalize a person name for exact comparison.

    "Sri. RAMESH  Kumar." → "ramesh kumar"
    """
    if not name:
        return ""
    s = unicodedata.normalize("NFKC", str(name)).strip()
    # ZWJ/ZWNJ (Cf) appear inconsistently inside Kannada words after extraction
    s = "".join(ch for ch in s if unicodedata.category(ch) != "Cf")
    s = _HONORIFIC_RE.sub("", s)
    s = "".join(
        ch if unicodedata.category(ch)[0] in ("L", "M") or ch.isspace() else " "
        for ch in s
    )
    return re.sub(r'\s+', ' ', s).strip().casefold()


def canonical_rtc_name(land: Optional[LandRecordFields]) -> Optional[str]:
    if land is None:
        return None
    return land.ownership.primary_owner


def canonical_identity_name(
    identity: Optional[IdentityFields], match_script_of: Optional[str] = None
) -> Optional[str]:
    """Pick the Aadhaar name to compare against.

    When the RTC name is in Kannada script and the Aadhaar carries a
    Kannada name, that one is used; otherwise the English name wins, with
    the Kannada name as the last resort.
    """
    if identity is None:
        return None
    if match_script_of and has_kannada(match_script_of) and identity.name_kannada:
        return identity.name_kannada
    return identity.name_english or identity.name_kannada


def verify_names(rtc_name: Optional[str], identity_name: Optional[str]) -> NameVerificationStatus:
    a = normalize_person_name(rtc_name)
    b = normalize_person_name(identity_name)
    if not a or not b:
        return NameVerificationStatus.PENDING
    if a == b:
        return NameVerificationStatus.VERIFIED
    return NameVerificationStatus.NOT_VERIFIED


def mask_aadhaar(number: Optional[str]) -> Optional[str]:
    """``"1234 5678 9012"`` → ``"Aadhaar: ****9012"``."""
    if not number:
        return None
    digits = re.sub(r'\D', '', number)
    if len(digits) < 4:
        return None
    return f"Aadhaar: ****{digits[-4:]}"


# ═══════════════════════════════════════════════════
# PROFILE BUILDER
# ═══════════════════════════════════════════════════

@dataclass
class ReconciliationResult:
    status: NameVerificationStatus
    rtc_name: Optional[str] = None
    identity_name: Optional[str] = None
    profile: dict = field(default_factory=dict)

    @property
    def land_exposed(self) -> bool:
        return self.status == NameVerificationStatus.VERIFIED


def _put(profile: dict, key: str, value: Any):
    """Set ``key`` only when there is a value to expose."""
    if value is None or value == "" or value == [] or value == {}:
        return
    profile[key] = value


def _identity_profile(identity: IdentityFields) -> dict:
    profile: dict = {}
    _put(profile, "verifiedName", identity.name_english or identity.name_kannada)
    _put(profile, "aadhaarKannadaName", identity.name_kannada)
    _put(profile, "homeAddress", identity.address or identity.address_kannada)
    _put(profile, "homeAddressKannada", identity.address_kannada)
    _put(profile, "idProof", mask_aadhaar(identity.aadhaar_number))
    _put(profile, "contactNumber", identity.mobile)
    _put(profile, "dob", identity.dob)
    _put(profile, "gender", identity.gender)
    return profile


def _mutation_trace(land: LandRecordFields) -> Optional[str]:
    no, date = land.ownership.mutation_no, land.ownership.mutation_date
    if no and date:
        return f"{no} dated {date}"
    return no or date


def _land_profile(land: LandRecordFields) -> dict:
    loc = land.location
    ident = land.land_identification
    details = land.land_details
    profile: dict = {}
    _put(profile, "landParcelIdentity", ident.survey_number)
    _put(profile, "hissaNumber", ident.hissa_number)
    _put(profile, "validFrom", ident.valid_from)
    _put(profile, "totalCultivableArea", details.total_extent)
    _put(profile, "remainingExtent", details.remaining_extent)
    if details.phut_kharab_a or details.phut_kharab_b:
        profile["phutKharab"] = {"a": details.phut_kharab_a, "b": details.phut_kharab_b}
    _put(profile, "landTax", details.land_tax)
    _put(profile, "soilProperties", details.soil_type)
    _put(profile, "mutationTraceability", _mutation_trace(land))
    _put(profile, "accountNumber", land.ownership.account_no)
    _put(profile, "landOwners", list(land.ownership.owners))
    _put(profile, "rtcAddress", ", ".join(p for p in (loc.village, loc.hobli, loc.taluk) if p) or None)
    _put(profile, "cultivationHistory", [
        {"year": c.year, "season": c.season, "crop": c.crop, "extent": c.extent}
        for c in land.cultivation
    ])
    profile["ownershipVerified"] = True
    return profile


def build_profile(
    land: Optional[LandRecordFields], identity: Optional[IdentityFields]
) -> ReconciliationResult:
    """Reconcile both documents and build the gated farmer profile.

    Either input may be ``None`` (document never uploaded) or partially
    empty.  The profile is rebuilt from scratch on every call.
    """
    land = land or LandRecordFields()
    identity = identity or IdentityFields()

    rtc_name = canonical_rtc_name(land)
    identity_name = canonical_identity_name(identity, match_script_of=rtc_name)
    status = verify_names(rtc_name, identity_name)
    _trace(f"IDENTITY compare rtc={rtc_name!r} aadhaar={identity_name!r} → {status.value}")

    profile = _identity_profile(identity)
    if status == NameVerificationStatus.VERIFIED:
        profile.update(_land_profile(land))
    profile["nameVerificationStatus"] = status.value

    logger.info(
        f"Name verification: {status.value} "
        f"(rtc_name={'yes' if rtc_name else 'no'}, aadhaar_name={'yes' if identity_name else 'no'})"
    )
    return ReconciliationResult(
        status=status, rtc_name=rtc_name, identity_name=identity_name, profile=profile,
    )


def build_message(status: NameVerificationStatus, unreadable: list[str] | None = None) -> str:
    """User-facing summary of a reconciliation outcome.

    Args:
        status: Verification outcome.
        unreadable: Document kinds uploaded in this request whose text could
            not be extracted.
    """
    if status == NameVerificationStatus.VERIFIED:
        msg = "Names on the RTC and Aadhaar match. Land and identity details have been saved to your profile."
    elif status == NameVerificationStatus.NOT_VERIFIED:
        msg = (
            "The owner name on the RTC does not match the name on the Aadhaar. "
            "Only Aadhaar details have been saved; upload matching RTC and Aadhaar "
            "documents to add your land details."
        )
    else:
        msg = (
            "Documents processed. Land details will appear once both an RTC and an "
            "Aadhaar with readable names have been uploaded."
        )
    for kind in unreadable or []:
        label = _DOCUMENT_LABELS.get(kind, kind)
        msg += f" No text could be read from the {label} document; please upload a clearer PDF."
    return msg
