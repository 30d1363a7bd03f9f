"""PDF text extraction with pdftotext + pdfplumber fallback.

Strategy:
  1. Reject empty / non-PDF buffers up front (no tool invocation).
  2. Run ``pdftotext -layout`` on a copy of the bytes written into a
     per-call temporary directory, bounded by PDF_TEXT_TIMEOUT.
  3. If the binary is missing or the run fails, read the bytes in-memory
     with pdfplumber.
  4. Normalize whitespace and return the text.

Extraction never raises: every failure mode (missing tool, corrupt file,
timeout) is logged and returned as an empty string so the parsers treat it
exactly like a document with no recognizable lines.
"""

import io
import logging
import re
import shutil
import subprocess
import tempfile
from pathlib import Path

import pdfplumber

from app.config import PDF_TEXT_ENGINE, PDFTOTEXT_CMD, PDF_TEXT_TIMEOUT

logger = logging.getLogger(__name__)

PDF_MAGIC_BYTES = b"%PDF"
_ENGINES = ("auto", "pdftotext", "pdfplumber")


def _find_binary(candidate: str) -> str | None:
    """Return ``candidate`` if it is an existing file or resolvable in PATH."""
    if not candidate:
        return None
    p = Path(candidate)
    if p.is_file():
        return str(p)
    return shutil.which(candidate)


def resolve_pdftotext() -> str | None:
    """Locate the pdftotext binary (None when not installed)."""
    return _find_binary(PDFTOTEXT_CMD)


# ── Cleaning / tokenizing ──────────────────────────────────────────

def clean_text(text: str) -> str:
    """Replace NBSPs, collapse runs of spaces, trim.  Newlines are kept."""
    if not text:
        return ""
    text = text.replace("\u00a0", " ")
    text = re.sub(r' {2,}', ' ', text)
    return text.strip()


def split_lines(text: str) -> list[str]:
    """Split raw text into non-empty, trimmed lines (order preserved)."""
    if not text:
        return []
    return [ln.strip() for ln in text.splitlines() if ln.strip()]


# ── Engines ────────────────────────────────────────────────────────

def _run_pdftotext(data: bytes, binary: str) -> str:
    """Run pdftotext on ``data``.  Raises on any failure.

    The PDF is written into a fresh TemporaryDirectory so concurrent
    extractions never share a path; the directory is removed on every exit
    path, including timeouts.
    """
    with tempfile.TemporaryDirectory(prefix="kyc_extract_") as tmp_dir:
        pdf_path = Path(tmp_dir) / "input.pdf"
        pdf_path.write_bytes(data)
        proc = subprocess.run(
            [binary, "-layout", "-nopgbrk", str(pdf_path), "-"],
            capture_output=True,
            timeout=PDF_TEXT_TIMEOUT,
            check=False,
        )
    if proc.returncode != 0:
        stderr = proc.stderr.decode("utf-8", errors="replace").strip()
        raise RuntimeError(f"pdftotext exited with {proc.returncode}: {stderr[:200]}")
    return proc.stdout.decode("utf-8", errors="replace")


def _run_pdfplumber(data: bytes) -> str:
    """Extract text in-memory with pdfplumber.  Raises on any failure."""
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        return "\n".join(page.extract_text() or "" for page in pdf.pages)


def extract_pdf_text(data: bytes, *, engine: str | None = None) -> str:
    """Extract cleaned text from a PDF byte buffer.

    Args:
        data: Raw PDF bytes.
        engine: Override for PDF_TEXT_ENGINE ("auto" | "pdftotext" | "pdfplumber").

    Returns:
        Whitespace-normalized text, or ``""`` if extraction failed for any
        reason.
    """
    if not data:
        logger.warning("Text extraction skipped: empty buffer")
        return ""
    if not data[:1024].lstrip().startswith(PDF_MAGIC_BYTES):
        logger.warning(f"Text extraction skipped: buffer is not a PDF ({len(data):,} bytes)")
        return ""

    engine = (engine or PDF_TEXT_ENGINE).lower()
    if engine not in _ENGINES:
        logger.warning(f"Unknown PDF_TEXT_ENGINE '{engine}', using 'auto'")
        engine = "auto"

    if engine in ("auto", "pdftotext"):
        binary = resolve_pdftotext()
        if binary:
            try:
                text = clean_text(_run_pdftotext(data, binary))
                logger.info(f"pdftotext extracted {len(text):,} chars from {len(data):,} bytes")
                return text
            except subprocess.TimeoutExpired:
                logger.warning(f"pdftotext timed out after {PDF_TEXT_TIMEOUT}s")
            except Exception as e:
                logger.warning(f"pdftotext failed: {e}")
        else:
            logger.warning(f"pdftotext binary not found ({PDFTOTEXT_CMD})")
        if engine == "pdftotext":
            return ""

    try:
        text = clean_text(_run_pdfplumber(data))
        logger.info(f"pdfplumber extracted {len(text):,} chars from {len(data):,} bytes")
        return text
    except Exception as e:
        logger.warning(f"pdfplumber failed: {e}")
        return ""
