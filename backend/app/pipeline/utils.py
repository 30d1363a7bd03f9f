"""Shared text helpers for the RTC and Aadhaar parsers.

Script detection (Kannada vs Latin), the handful of patterns both parsers
rely on, and small cleaning utilities for address fragments.
"""

import re
from typing import Any, Optional

# ═══════════════════════════════════════════════════
# PATTERNS
# ═══════════════════════════════════════════════════

# Bhoomi extents print as acre.gunta.anna.paisa, e.g. "2.10.5.0"
FOUR_PART_EXTENT_RE = re.compile(r'\d+\.\d+\.\d+\.\d+')
DATE_RE = re.compile(r'\d{2}/\d{2}/\d{4}')
DATE_TIME_RE = re.compile(r'\d{2}/\d{2}/\d{4}\s*\d{2}:\d{2}')
AADHAAR_NUMBER_RE = re.compile(r'\b\d{4} \d{4} \d{4}\b')

_KANNADA_MIN = 0x0C80
_KANNADA_MAX = 0x0CFF
_LATIN_RE = re.compile(r'[A-Za-z]')


# ═══════════════════════════════════════════════════
# SCRIPT DETECTION
# ═══════════════════════════════════════════════════

def is_kannada_char(ch: str) -> bool:
    return _KANNADA_MIN <= ord(ch) <= _KANNADA_MAX


def has_kannada(s: Any) -> bool:
    """Check if string contains Kannada Unicode characters."""
    if not s or not isinstance(s, str):
        return False
    return any(is_kannada_char(ch) for ch in s)


def count_kannada(s: str) -> int:
    return sum(1 for ch in s if is_kannada_char(ch))


def count_latin(s: str) -> int:
    return len(_LATIN_RE.findall(s))


# ═══════════════════════════════════════════════════
# CLEANING
# ═══════════════════════════════════════════════════

def clean_fragment(s: Optional[str]) -> Optional[str]:
    """Strip trailing commas and collapse whitespace.

    Returns ``None`` for empty input or when nothing is left after cleaning.
    """
    if not s:
        return None
    s = re.sub(r'[,\s]+$', '', s)
    s = re.sub(r'\s+', ' ', s).strip()
    return s or None


def first_match(pattern: re.Pattern, text: Optional[str], group: int = 0) -> Optional[str]:
    """Return the first match of ``pattern`` in ``text`` (or ``None``)."""
    if not text:
        return None
    m = pattern.search(text)
    return m.group(group) if m else None


def first_line_containing(lines: list[str], marker: str) -> tuple[int, Optional[str]]:
    """Return ``(index, line)`` of the first line containing ``marker``.

    ``(-1, None)`` when no line matches.
    """
    for i, ln in enumerate(lines):
        if marker in ln:
            return i, ln
    return -1, None
