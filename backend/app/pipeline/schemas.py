"""Typed field records produced by the document parsers.

Every leaf is independently optional: a parser rule that finds nothing
leaves its field as ``None`` and never touches its siblings.  Records
round-trip through plain dicts (``to_dict`` / ``from_dict``) so they can
be persisted in the JSON profile store and rebuilt on the next upload.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any


class DocumentKind:
    RTC = "rtc"
    AADHAAR = "aadhaar"


class NameVerificationStatus(str, Enum):
    """Outcome of comparing the RTC owner name with the Aadhaar name."""
    VERIFIED = "verified"
    NOT_VERIFIED = "not_verified"
    PENDING = "pending"          # not enough data to compare


def _pick(cls, data: dict | None) -> dict:
    """Keep only keys that are declared fields of ``cls``."""
    if not isinstance(data, dict):
        return {}
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


# ═══════════════════════════════════════════════════
# RTC (land record)
# ═══════════════════════════════════════════════════

@dataclass
class Location:
    taluk: str | None = None
    hobli: str | None = None
    village: str | None = None


@dataclass
class LandIdentification:
    survey_number: str | None = None
    hissa_number: str | None = None
    valid_from: str | None = None


@dataclass
class LandDetails:
    total_extent: str | None = None
    phut_kharab_a: str | None = None
    phut_kharab_b: str | None = None
    remaining_extent: str | None = None
    land_tax: str | None = None
    soil_type: str | None = None


@dataclass
class Ownership:
    owners: list[str] = field(default_factory=list)   # ordered; first is canonical
    extent: str | None = None
    account_no: str | None = None
    mutation_no: str | None = None
    mutation_date: str | None = None

    @property
    def primary_owner(self) -> str | None:
        return self.owners[0] if self.owners else None


@dataclass
class CultivationEntry:
    year: str | None = None
    season: str | None = None
    crop: str | None = None
    extent: str | None = None


@dataclass
class LandRecordFields:
    location: Location = field(default_factory=Location)
    land_identification: LandIdentification = field(default_factory=LandIdentification)
    land_details: LandDetails = field(default_factory=LandDetails)
    ownership: Ownership = field(default_factory=Ownership)
    cultivation: list[CultivationEntry] = field(default_factory=list)

    def is_empty(self) -> bool:
        """True when no rule produced a value."""
        groups = (self.location, self.land_identification, self.land_details)
        if any(v is not None for g in groups for v in asdict(g).values()):
            return False
        o = self.ownership
        if o.owners or any(v is not None for v in (o.extent, o.account_no, o.mutation_no, o.mutation_date)):
            return False
        return not self.cultivation

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> "LandRecordFields":
        data = data if isinstance(data, dict) else {}
        ownership = _pick(Ownership, data.get("ownership"))
        ownership["owners"] = [str(o) for o in (ownership.get("owners") or []) if o]
        return cls(
            location=Location(**_pick(Location, data.get("location"))),
            land_identification=LandIdentification(
                **_pick(LandIdentification, data.get("land_identification"))
            ),
            land_details=LandDetails(**_pick(LandDetails, data.get("land_details"))),
            ownership=Ownership(**ownership),
            cultivation=[
                CultivationEntry(**_pick(CultivationEntry, row))
                for row in (data.get("cultivation") or [])
                if isinstance(row, dict)
            ],
        )


# ═══════════════════════════════════════════════════
# AADHAAR (identity)
# ═══════════════════════════════════════════════════

@dataclass
class IdentityFields:
    aadhaar_number: str | None = None
    name_english: str | None = None
    name_kannada: str | None = None
    dob: str | None = None
    gender: str | None = None
    mobile: str | None = None
    address: str | None = None           # English block
    address_kannada: str | None = None

    def is_empty(self) -> bool:
        return all(v is None for v in asdict(self).values())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> "IdentityFields":
        return cls(**_pick(cls, data))
