"""Base extractor interface for all supported document formats."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from portable_brains.errors import EmptyResult, ExtractionError, ExtractionFailed, SizeLimitExceeded
from portable_brains.ingest.formats import DocumentFormat
from portable_brains.ingest.normalize import normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionLimits:
    """Memory ceilings applied by every extractor.

    Attributes:
        max_file_size: Largest raw payload accepted, in bytes.
        max_text_length: Longest extracted text kept, in characters.
    """

    max_file_size: int = 50 * 1024 * 1024
    max_text_length: int = 5_000_000


class BaseExtractor(ABC):
    """Abstract base for all extractors.

    ``extract()`` is the template every format shares:

    1. Reject payloads over ``max_file_size`` before any parsing.
    2. ``_extract_raw()`` — format-specific parsing (subclasses).
    3. Normalize, truncate to ``max_text_length`` characters.
    4. Fail with ``EmptyResult`` if nothing is left.

    Parser exceptions that are not already an ``ExtractionError`` are wrapped
    in ``ExtractionFailed``.
    """

    format: DocumentFormat

    def __init__(self, limits: ExtractionLimits | None = None) -> None:
        self.limits = limits or ExtractionLimits()

    def extract(self, path_hint: str, data: bytes) -> str:
        """Convert *data* to cleaned text.

        Args:
            path_hint: Original file path, used only for log messages.
            data: Raw file bytes.

        Raises:
            SizeLimitExceeded: ``len(data)`` exceeds ``max_file_size``.
            ExtractionFailed: The payload could not be parsed.
            EmptyResult: Parsing succeeded but produced no text.
        """
        self.check_size(data)
        try:
            raw = self._extract_raw(path_hint, data)
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionFailed(self.format.value, exc) from exc

        text = self.truncate(normalize_text(raw), path_hint)
        if not text.strip():
            raise EmptyResult(self.format.value)
        logger.debug("Extracted %d characters from %s", len(text), path_hint)
        return text

    @abstractmethod
    def _extract_raw(self, path_hint: str, data: bytes) -> str:
        """Return the un-normalized text of *data*."""

    def check_size(self, data: bytes) -> None:
        if len(data) > self.limits.max_file_size:
            raise SizeLimitExceeded(len(data), self.limits.max_file_size)

    def truncate(self, text: str, path_hint: str = "") -> str:
        """Cut *text* to ``max_text_length`` characters (silently, by code point)."""
        limit = self.limits.max_text_length
        if len(text) > limit:
            logger.debug("Truncating %s from %d to %d characters", path_hint, len(text), limit)
            return text[:limit]
        return text
