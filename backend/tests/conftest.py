"""Shared fixtures for the KYC extraction test suite."""

import pytest

from app.pipeline.profile_store import ProfileStore


# ═══════════════════════════════════════════════════
# Raw-text fixtures (shaped like pdftotext -layout output after cleaning)
# ═══════════════════════════════════════════════════

RTC_TEXT = """ಪಹಣಿ / RTC
Bengaluru Yelahanka Hebbal 123/45*
Valid from 01/04/2021 10:30
2.10.5.0
0.1.0.0
0.0.8.0
ಕಂದಾಯ 12.50
ಮಣ್ಣಿನ ನಮೂನೆ
ಕೆಂಪು ಮಣ್ಣು
Ramesh Kumar . 2.10.5.0 1023 MR-44
2020-2021 ಪೂ. ಮುಂಗಾರು ಹುರುಳಿ 1.0.0.0
2021-2022 ಮುಂಗಾರು ರಾಗಿ 1.5.0.0"""

AADHAAR_TEXT = """ಭಾರತ ಸರ್ಕಾರ
Government of India
ರಮೇಶ್ ಕುಮಾರ್
RAMESH KUMAR
ಜನ್ಮ ದಿನಾಂಕ/DOB: 15/08/1985
ಪುರುಷ / MALE
1234 5678 9012
ವಿಳಾಸ:
ಮನೆ ಸಂಖ್ಯೆ 12, ಹೆಬ್ಬಾಳ
ಬೆಂಗಳೂರು 560024
Address:
S/O Krishnappa,
#12, Hebbal Main Road,
Bengaluru, Karnataka - 560024
Mobile: 9876543210
1234 5678 9012"""


def aadhaar_text_for(name: str) -> str:
    """AADHAAR_TEXT with a different English name line."""
    return AADHAAR_TEXT.replace("RAMESH KUMAR", name)


@pytest.fixture
def rtc_text():
    return RTC_TEXT


@pytest.fixture
def aadhaar_text():
    return AADHAAR_TEXT


@pytest.fixture
def rtc_lines():
    return RTC_TEXT.split("\n")


@pytest.fixture
def make_aadhaar_text():
    return aadhaar_text_for


@pytest.fixture
def aadhaar_lines():
    return AADHAAR_TEXT.split("\n")


@pytest.fixture
def store(tmp_path):
    """ProfileStore rooted in a per-test temp directory."""
    return ProfileStore(tmp_path / "profiles")
