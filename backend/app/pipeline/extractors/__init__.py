"""Field parsers for the supported KYC document kinds."""

from .base import BaseExtractor
from .rtc import RTCExtractor, parse_rtc, parse_rtc_document
from .aadhaar import AadhaarExtractor, parse_aadhaar, parse_aadhaar_document

EXTRACTORS: dict[str, BaseExtractor] = {
    RTCExtractor.document_kind: RTCExtractor(),
    AadhaarExtractor.document_kind: AadhaarExtractor(),
}


def get_extractor(kind: str) -> BaseExtractor:
    """Return the parser for a document kind (``KeyError`` if unsupported)."""
    return EXTRACTORS[kind]


__all__ = [
    "BaseExtractor",
    "RTCExtractor",
    "AadhaarExtractor",
    "EXTRACTORS",
    "get_extractor",
    "parse_rtc",
    "parse_rtc_document",
    "parse_aadhaar",
    "parse_aadhaar_document",
]
