"""Base extractor interface shared by the RTC and Aadhaar parsers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from app.config import TRACE_ENABLED
from app.pipeline.ingestion import split_lines

logger = logging.getLogger(__name__)

FieldsT = TypeVar("FieldsT")


def _trace(msg: str):
    """Emit a trace-level debug message when KYC_TRACE is enabled."""
    if TRACE_ENABLED:
        logger.debug(f"[TRACE] {msg}")


class BaseExtractor(ABC, Generic[FieldsT]):
    """Abstract base for document-kind-specific field parsers.

    Subclasses implement ``parse()`` as a fixed sequence of independent,
    best-effort rules.  ``extract()`` is the containment boundary: any
    exception raised by a rule is logged and replaced by the all-null
    record, so a malformed document can never break the upload flow.
    """

    document_kind: str = ""

    @abstractmethod
    def empty(self) -> FieldsT:
        """Return the all-null field record for this document kind."""

    @abstractmethod
    def parse(self, text: str, lines: list[str]) -> FieldsT:
        """Parse tokenized document text into a field record.

        Args:
            text: Cleaned raw text (some rules search across line breaks).
            lines: ``split_lines(text)``.
        """

    def extract(self, text: str) -> FieldsT:
        """Tokenize and parse ``text``; never raises."""
        if not text:
            _trace(f"{self.document_kind}: empty text, returning empty record")
            return self.empty()
        lines = split_lines(text)
        try:
            result = self.parse(text, lines)
        except Exception as e:
            logger.warning(
                f"{self.document_kind} parsing failed on {len(lines)} lines: {e}",
                exc_info=True,
            )
            return self.empty()
        if result.is_empty():
            logger.info(f"{self.document_kind}: no recognizable fields in {len(lines)} lines")
        else:
            logger.info(f"{self.document_kind}: parsed {len(lines)} lines")
        return result
