"""RTC (Bhoomi Record of Rights, Tenancy and Crops) field parser.

The pdftotext layout of a Karnataka RTC is bilingual and positionally
unstable, so extraction is a fixed sequence of independent heuristics over
the tokenized lines.  Each rule is a pure function that returns ``None``
(or an empty structure) when its marker is missing; no rule depends on the
success of another, except that the hissa number is derived from whatever
survey number the location rule produced.

These rules are best-effort: a layout change on the source
document degrades individual fields to ``None`` instead of failing the parse.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from app.pipeline.extractors.base import BaseExtractor, _trace
from app.pipeline.schemas import (
    CultivationEntry,
    DocumentKind,
    LandDetails,
    LandIdentification,
    LandRecordFields,
    Location,
    Ownership,
)
from app.pipeline.utils import (
    DATE_RE,
    DATE_TIME_RE,
    FOUR_PART_EXTENT_RE,
    first_line_containing,
    first_match,
)

logger = logging.getLogger(__name__)

# ── Markers ──
LOCATION_MARKER = "ನಂಬರ್"            # "number": header row carrying taluk/hobli/village/survey
VALID_FROM_MARKER = "Valid from"
LAND_TAX_MARKER = "ಕಂದಾಯ"            # land revenue
SOIL_TYPE_MARKER = "ನಮೂನೆ"            # soil "type" header; value is on the next line

SEASON_MUNGARU = "ಮುಂಗಾರು"           # kharif
SEASON_PURVA_PREFIX = "ಪೂ."
SEASON_PURVA_MUNGARU = "ಪೂರ್ವ ಮುಂಗಾರು"
SEASON_UTTARA_MUNGARU = "ಉತ್ತರ ಮುಂಗಾರು"
SEASON_HINGARU = "ಹಿಂಗಾರು"           # rabi
CROP_KEYWORDS = ("ಹು",)

_SURVEY_TOKEN_RE = re.compile(r'^\d+(?:/[0-9A-Za-z]+)*\*?$')
_SEASON_RANGE_RE = re.compile(r'\d{4}-\d{4}')
_LAND_TAX_RE = re.compile(r'\d+(?:\.\d+)?')
_SHORT_NUMBER_RE = re.compile(r'\b\d{1,4}\b')
_MR_RE = re.compile(r'\bMR\b', re.IGNORECASE)


def _is_survey_token(token: str) -> bool:
    """Numeric token with a slash (or Bhoomi's trailing '*'), never a date."""
    if LOCATION_MARKER in token or not _SURVEY_TOKEN_RE.match(token):
        return False
    if "/" not in token and not token.endswith("*"):
        return False
    return not DATE_RE.fullmatch(token.rstrip("*"))


# ═══════════════════════════════════════════════════
# RULES
# ═══════════════════════════════════════════════════

def find_location_and_survey(lines: list[str]) -> tuple[Location, Optional[str]]:
    """Taluk/hobli/village from token positions 0/1/2 of the location row.

    The location row is the first line with the location marker; when the
    marker was lost in extraction, the first line carrying a starred survey
    token (e.g. ``123/45*``) is used instead.
    """
    _, loc_line = first_line_containing(lines, LOCATION_MARKER)
    if loc_line is None:
        loc_line = next(
            (ln for ln in lines if any(_is_survey_token(t) and t.endswith("*") for t in ln.split())),
            None,
        )
    if loc_line is None:
        _trace("RTC location: no location row")
        return Location(), None

    tokens = loc_line.split()
    location = Location(
        taluk=tokens[0] if len(tokens) > 0 else None,
        hobli=tokens[1] if len(tokens) > 1 else None,
        village=tokens[2] if len(tokens) > 2 else None,
    )
    survey_number = next((t for t in tokens if _is_survey_token(t)), None)
    _trace(f"RTC location: {location} survey={survey_number!r} from '{loc_line}'")
    return location, survey_number


def find_valid_from(lines: list[str]) -> Optional[str]:
    _, line = first_line_containing(lines, VALID_FROM_MARKER)
    return first_match(DATE_TIME_RE, line)


def derive_hissa_number(survey_number: Optional[str]) -> Optional[str]:
    """Hissa is the segment after the last '/' of the survey number."""
    if not survey_number or "/" not in survey_number:
        return None
    hissa = survey_number.rsplit("/", 1)[-1].replace("*", "")
    return hissa or None


def find_extents(lines: list[str]) -> tuple[Optional[str], Optional[str], Optional[str]]:
    """Total extent and the two phut kharab rows printed right below it."""
    for i, ln in enumerate(lines):
        m = FOUR_PART_EXTENT_RE.search(ln)
        if not m:
            continue
        phut_a = first_match(FOUR_PART_EXTENT_RE, lines[i + 1]) if i + 1 < len(lines) else None
        phut_b = first_match(FOUR_PART_EXTENT_RE, lines[i + 2]) if i + 2 < len(lines) else None
        return m.group(0), phut_a, phut_b
    return None, None, None


def find_land_tax(lines: list[str]) -> Optional[str]:
    _, line = first_line_containing(lines, LAND_TAX_MARKER)
    return first_match(_LAND_TAX_RE, line)


def find_soil_type(lines: list[str]) -> Optional[str]:
    idx, _ = first_line_containing(lines, SOIL_TYPE_MARKER)
    if idx == -1 or idx + 1 >= len(lines):
        return None
    return lines[idx + 1]


def _is_ownership_row(line: str) -> bool:
    return (
        "." in line
        and FOUR_PART_EXTENT_RE.search(line) is not None
        and _SHORT_NUMBER_RE.search(line) is not None
        and _MR_RE.search(line) is not None
    )


def find_ownership(lines: list[str]) -> Ownership:
    """Owner row: ``<name> . <name> . <extent> <account> ... MR<n>``.

    Owner names precede the extent token and are separated by periods.
    """
    line = next((ln for ln in lines if _is_ownership_row(ln)), None)
    if line is None:
        _trace("RTC ownership: no owner row")
        return Ownership()

    tokens = line.split()
    ext_idx = next((i for i, t in enumerate(tokens) if FOUR_PART_EXTENT_RE.search(t)), -1)
    if ext_idx == -1:
        # extent pattern straddled a token boundary
        return Ownership()

    owner_part = " ".join(tokens[:ext_idx])
    owners = [o.strip() for o in owner_part.split(".") if o.strip()]
    account_no = tokens[ext_idx + 1] if ext_idx + 1 < len(tokens) else None
    mutation_no = next((t for t in tokens[ext_idx + 2:] if "MR" in t.upper()), None)
    _trace(f"RTC ownership: owners={owners} account={account_no} mutation={mutation_no}")
    return Ownership(
        owners=owners,
        extent=tokens[ext_idx],
        account_no=account_no,
        mutation_no=mutation_no,
    )


def find_mutation_date(lines: list[str]) -> Optional[str]:
    for ln in lines:
        m = DATE_RE.search(ln)
        if m:
            return m.group(0)
    return None


def _season_for(line: str) -> Optional[str]:
    if SEASON_MUNGARU in line:
        return SEASON_PURVA_MUNGARU if SEASON_PURVA_PREFIX in line else SEASON_UTTARA_MUNGARU
    if SEASON_HINGARU in line:
        return SEASON_HINGARU
    return None


def find_cultivation(lines: list[str]) -> list[CultivationEntry]:
    """One entry per line carrying a ``YYYY-YYYY`` agricultural year."""
    rows = []
    for ln in lines:
        year = first_match(_SEASON_RANGE_RE, ln)
        if not year:
            continue
        rows.append(CultivationEntry(
            year=year,
            season=_season_for(ln),
            crop=next((c for c in CROP_KEYWORDS if c in ln), None),
            extent=first_match(FOUR_PART_EXTENT_RE, ln),
        ))
    return rows


# ═══════════════════════════════════════════════════
# EXTRACTOR
# ═══════════════════════════════════════════════════

class RTCExtractor(BaseExtractor[LandRecordFields]):
    document_kind = DocumentKind.RTC

    def empty(self) -> LandRecordFields:
        return LandRecordFields()

    def parse(self, text: str, lines: list[str]) -> LandRecordFields:
        return parse_rtc(lines)


def parse_rtc(lines: list[str]) -> LandRecordFields:
    """Apply every RTC rule to ``lines``.  Missing markers yield ``None``."""
    location, survey_number = find_location_and_survey(lines)
    total_extent, phut_a, phut_b = find_extents(lines)
    ownership = find_ownership(lines)
    ownership.mutation_date = find_mutation_date(lines)

    return LandRecordFields(
        location=location,
        land_identification=LandIdentification(
            survey_number=survey_number,
            hissa_number=derive_hissa_number(survey_number),
            valid_from=find_valid_from(lines),
        ),
        land_details=LandDetails(
            total_extent=total_extent,
            phut_kharab_a=phut_a,
            phut_kharab_b=phut_b,
            remaining_extent=total_extent,
            land_tax=find_land_tax(lines),
            soil_type=find_soil_type(lines),
        ),
        ownership=ownership,
        cultivation=find_cultivation(lines),
    )


def parse_rtc_document(text: str) -> LandRecordFields:
    """Tokenize and parse RTC text; any parser error yields an empty record."""
    return RTCExtractor().extract(text)
