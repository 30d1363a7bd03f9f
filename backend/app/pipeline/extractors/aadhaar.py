"""Aadhaar card / e-letter field parser (Kannada + English layout).

Pattern rules run over the raw text (numbers, DOB) and line heuristics run
over the tokenized lines (names, gender, address blocks).  Every field is
independent: a missing Aadhaar number does not stop the name rules, and so
on.
"""

import logging
import re
from typing import Optional

from app.pipeline.extractors.base import BaseExtractor, _trace
from app.pipeline.schemas import DocumentKind, IdentityFields
from app.pipeline.utils import (
    AADHAAR_NUMBER_RE,
    clean_fragment,
    count_kannada,
    count_latin,
    first_match,
    has_kannada,
)

logger = logging.getLogger(__name__)

_MOBILE_RE = re.compile(r'(?<!\d)[6-9]\d{9}(?!\d)')
_DOB_RE = re.compile(r'DOB[: ]*(\d{2}/\d{2}/\d{4})', re.IGNORECASE)
_LATIN_NAME_RE = re.compile(r'^[A-Za-z ]+$')

# Boilerplate that shares a line shape with names on the English side.
# Words matched whole; stems matched at word start ("enrol" → "Enrolment").
# Address words keep lines such as "Post Office Road" out of the name slot.
_ENGLISH_DENY_WORDS = (
    "to", "po", "pin", "dob", "uid", "vtc", "card", "male", "female",
    "post", "office", "road", "near", "stop", "street", "cross",
)
_ENGLISH_DENY_STEMS = (
    "address", "district", "state", "mobile", "verified", "signature",
    "digitally", "enrol", "identification", "authority", "india",
    "government", "unique", "enrollment", "resident",
)
_ENGLISH_DENY_RE = re.compile(
    r'\b(?:' + "|".join(_ENGLISH_DENY_WORDS) + r')\b'
    r'|\b(?:' + "|".join(_ENGLISH_DENY_STEMS) + r')',
    re.IGNORECASE,
)

_KANNADA_DENY = (
    "ವಿಳಾ", "ನೋಂದಣಿ", "ನಂ", "DOB", "ಜನ್ಮ",
    "ವಿಳಾಸ", "ಮನೆ", "ರಸ್ತೆ", "ಬಡಾವಣೆ",
    "ತಾಲ್ಲೂಕು", "ಜಿಲ್ಲೆ", "ರಾಜ್ಯ", "ಪಿನ್",
    "ಸಹಿ", "ಸಹಿತ", "ಆಧಾರ್", "ಗುರುತು",
    "ಪುರುಷ", "ಮಹಿಳೆ", "ಭಾರತ",
)

_FEMALE_RE = re.compile(r'\bFEMALE\b|ಮಹಿಳೆ', re.IGNORECASE)
_MALE_RE = re.compile(r'\bMALE\b|ಪುರುಷ', re.IGNORECASE)

_ADDRESS_START_RE = re.compile(r'^(?:C/O|S/O)', re.IGNORECASE)
_ENGLISH_ADDRESS_STOP_RE = re.compile(r'Signature|Digitally|Verified|Enrol|Mobile:', re.IGNORECASE)
_KANNADA_ADDRESS_MARKERS = ("ವಿಳಾ", "ವಿಳಾಸ")
_KANNADA_ADDRESS_STOP_RE = re.compile(
    r'Enrol|Signature|Digitally|Verified|DOB|Details as on', re.IGNORECASE
)


# ═══════════════════════════════════════════════════
# RULES
# ═══════════════════════════════════════════════════

def find_aadhaar_number(text: str) -> Optional[str]:
    return first_match(AADHAAR_NUMBER_RE, text)


def find_mobile(text: str) -> Optional[str]:
    return first_match(_MOBILE_RE, text)


def find_dob(text: str) -> Optional[str]:
    return first_match(_DOB_RE, text, group=1)


def is_english_name_line(line: str) -> bool:
    if not _LATIN_NAME_RE.match(line):
        return False
    if not 3 < len(line) < 50:
        return False
    if not 2 <= len(line.split()) <= 4:
        return False
    return _ENGLISH_DENY_RE.search(line) is None


def find_english_name(lines: list[str]) -> Optional[str]:
    return next((ln for ln in lines if is_english_name_line(ln)), None)


def is_kannada_name_line(line: str) -> bool:
    if not has_kannada(line):
        return False
    if any(marker in line for marker in _KANNADA_DENY):
        return False
    return 2 < len(line) < 30 and len(line.split()) <= 3


def find_kannada_name(lines: list[str]) -> Optional[str]:
    return next((ln for ln in lines if is_kannada_name_line(ln)), None)


def find_gender(lines: list[str]) -> Optional[str]:
    """First line naming exactly one gender decides.

    Word boundaries keep "MALE" from matching inside "FEMALE"; a line naming
    both (a form label such as "MALE / FEMALE") carries no information and
    is skipped.
    """
    for ln in lines:
        female = _FEMALE_RE.search(ln) is not None
        male = _MALE_RE.search(ln) is not None
        if female and male:
            _trace(f"Aadhaar gender: skipping label row '{ln}'")
            continue
        if female:
            return "FEMALE"
        if male:
            return "MALE"
    return None


def find_english_address(lines: list[str]) -> Optional[str]:
    """Block from the first C/O or S/O line up to the number/signature area."""
    start = next((i for i, ln in enumerate(lines) if _ADDRESS_START_RE.match(ln)), -1)
    if start == -1:
        return None
    block = []
    for ln in lines[start:]:
        if AADHAAR_NUMBER_RE.search(ln) or _ENGLISH_ADDRESS_STOP_RE.search(ln):
            break
        part = clean_fragment(ln)
        if part:
            block.append(part)
    return clean_fragment(", ".join(block))


def find_kannada_address(lines: list[str]) -> Optional[str]:
    """Kannada-dominant lines following the Kannada address marker."""
    start = next(
        (i for i, ln in enumerate(lines) if any(m in ln for m in _KANNADA_ADDRESS_MARKERS)),
        -1,
    )
    if start == -1:
        return None
    block = []
    for ln in lines[start + 1:]:
        if AADHAAR_NUMBER_RE.search(ln) or _KANNADA_ADDRESS_STOP_RE.search(ln):
            break
        if count_kannada(ln) > count_latin(ln):
            part = clean_fragment(ln)
            if part:
                block.append(part)
    return clean_fragment(", ".join(block))


# ═══════════════════════════════════════════════════
# EXTRACTOR
# ═══════════════════════════════════════════════════

class AadhaarExtractor(BaseExtractor[IdentityFields]):
    document_kind = DocumentKind.AADHAAR

    def empty(self) -> IdentityFields:
        return IdentityFields()

    def parse(self, text: str, lines: list[str]) -> IdentityFields:
        return parse_aadhaar(text, lines)


def parse_aadhaar(text: str, lines: list[str]) -> IdentityFields:
    """Apply every Aadhaar rule.  Missing patterns yield ``None``."""
    fields = IdentityFields(
        aadhaar_number=find_aadhaar_number(text),
        name_english=find_english_name(lines),
        name_kannada=find_kannada_name(lines),
        dob=find_dob(text),
        gender=find_gender(lines),
        mobile=find_mobile(text),
        address=find_english_address(lines),
        address_kannada=find_kannada_address(lines),
    )
    found = [k for k, v in fields.to_dict().items() if v is not None]
    _trace(f"Aadhaar fields found: {found}")
    return fields


def parse_aadhaar_document(text: str) -> IdentityFields:
    """Tokenize and parse Aadhaar text; any parser error yields an empty record."""
    return AadhaarExtractor().extract(text)
