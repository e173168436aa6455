"""Two-phase ingestion orchestrator.

Phase 1 walks the input files one at a time:
  exists check → size check → store raw document → extract text → chunk →
  store fragments (without embeddings).

Phase 2 then runs once over the whole store and attaches embeddings to every
fragment that has none (see ``embedding_writer``). The phases never
interleave: no embedding work starts until every file has been through
Phase 1.

Per-file errors are logged and recorded in the report; the run continues with
the next file. Global errors (model mismatch, count mismatch) propagate.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Sequence

from portable_brains.config import BrainsConfig
from portable_brains.db.base import Storage
from portable_brains.errors import ChunkingFailed, ExtractionError, PortableBrainsError, StorageError
from portable_brains.ingest.base import ExtractionLimits
from portable_brains.ingest.chunker import SentenceChunker, make_fragments
from portable_brains.ingest.embedders import EmbeddingBackend
from portable_brains.ingest.embedding_writer import EmbeddingWriter, ProgressCallback
from portable_brains.ingest.formats import SUPPORTED_EXTENSIONS, DocumentFormat
from portable_brains.ingest.registry import get_extractor

logger = logging.getLogger(__name__)

_MAX_SCAN_DEPTH = 10


class FileStatus(str, Enum):
    """Where a file ended up in Phase 1."""

    PENDING = "pending"
    SKIPPED_EXISTS = "skipped_exists"
    SKIPPED_TOO_LARGE = "skipped_too_large"
    RAW_STORED = "raw_stored"
    TEXT_EXTRACTED = "text_extracted"
    CHUNKED = "chunked"
    FRAGMENTS_STORED = "fragments_stored"
    FAILED = "failed"


@dataclass
class FileResult:
    """Outcome of Phase 1 for one file.

    Attributes:
        path: The file processed.
        status: Last state reached.
        document_id: Id of the stored document (set from RAW_STORED on).
        chars: Length of the extracted text.
        fragments: Number of fragments stored.
        reason: Error message when ``status`` is FAILED or a skip.
    """

    path: Path
    status: FileStatus = FileStatus.PENDING
    document_id: str | None = None
    chars: int = 0
    fragments: int = 0
    reason: str | None = None


@dataclass
class IngestReport:
    """Aggregate of a run: per-file results plus the Phase 2 count."""

    results: list[FileResult] = field(default_factory=list)
    embedded: int = 0

    def _count(self, *statuses: FileStatus) -> int:
        return sum(1 for r in self.results if r.status in statuses)

    @property
    def stored(self) -> int:
        return self._count(FileStatus.FRAGMENTS_STORED)

    @property
    def skipped(self) -> int:
        return self._count(FileStatus.SKIPPED_EXISTS, FileStatus.SKIPPED_TOO_LARGE)

    @property
    def failed(self) -> int:
        return self._count(FileStatus.FAILED)

    @property
    def fragments(self) -> int:
        return sum(r.fragments for r in self.results)


class IngestionPipeline:
    """Drive files through Phase 1 and the store through Phase 2.

    Args:
        storage: Open storage backend.
        config: Loaded configuration; supplies embedding batch settings and
            defaults for *extractor_limits* and *chunker*.
        extractor_limits: Memory ceilings for extraction.
        chunker: Sentence chunker to split extracted text.
    """

    def __init__(
        self,
        storage: Storage,
        config: BrainsConfig | None = None,
        extractor_limits: ExtractionLimits | None = None,
        chunker: SentenceChunker | None = None,
    ) -> None:
        self.storage = storage
        self.config = config or BrainsConfig()
        self.limits = extractor_limits or ExtractionLimits(
            max_file_size=self.config.extraction.max_file_size,
            max_text_length=self.config.extraction.max_text_length,
        )
        self.chunker = chunker or SentenceChunker(
            chunk_size=self.config.chunking.chunk_size,
            overlap=self.config.chunking.overlap,
        )

    # ------------------------------------------------------------------
    # File discovery
    # ------------------------------------------------------------------

    @staticmethod
    def find_supported_files(
        directory: Path,
        recursive: bool = False,
        exclude: Iterable[str] = (),
    ) -> list[Path]:
        """Return supported files in *directory*, sorted by path.

        Files with an unrecognised extension are left out silently. Entries
        whose name matches any *exclude* glob are skipped (directories too).

        Raises:
            NotADirectoryError: If *directory* is not a directory.
        """
        if not directory.is_dir():
            raise NotADirectoryError(f"Not a directory: {directory}")
        return _scan_dir(directory, recursive=recursive, exclude=list(exclude), depth=0)

    # ------------------------------------------------------------------
    # Phase 1
    # ------------------------------------------------------------------

    def process_file(self, path: Path) -> FileResult:
        """Run one file through Phase 1. Never raises for per-file problems."""
        result = FileResult(path=path)

        fmt = DocumentFormat.from_path(path)
        if fmt is None:
            result.status = FileStatus.FAILED
            result.reason = f"Unsupported file type: {path.suffix or path.name}"
            logger.error("Failed to process %s: %s", path, result.reason)
            return result

        try:
            if self.storage.document_exists(path):
                logger.warning("Document already exists, skipping: %s", path)
                result.status = FileStatus.SKIPPED_EXISTS
                return result

            size = path.stat().st_size
            if size > self.limits.max_file_size:
                result.status = FileStatus.SKIPPED_TOO_LARGE
                result.reason = f"File too large: {size} bytes (max: {self.limits.max_file_size} bytes)"
                logger.warning("Skipping %s: %s", path, result.reason)
                return result

            data = path.read_bytes()
            result.document_id = self.storage.store_document(path, data)
            result.status = FileStatus.RAW_STORED
            logger.debug("Stored raw document %s (%d bytes)", path, len(data))

            text = get_extractor(fmt, self.limits).extract(str(path), data)
            del data
            result.chars = len(text)
            result.status = FileStatus.TEXT_EXTRACTED

            texts = self._chunk(text)
            del text
            result.status = FileStatus.CHUNKED

            for fragment in make_fragments(result.document_id, texts):
                self.storage.store_text_fragment(
                    fragment.document_id, fragment.fragment_order, fragment.content
                )
                result.fragments += 1
            result.status = FileStatus.FRAGMENTS_STORED
            logger.info("Stored %d fragments for %s", result.fragments, path)

        except (ExtractionError, StorageError, OSError) as exc:
            result.status = FileStatus.FAILED
            result.reason = str(exc)
            logger.error("Failed to process %s: %s", path, exc)

        return result

    def _chunk(self, text: str) -> list[str]:
        try:
            texts = self.chunker.chunk(text)
        except PortableBrainsError:
            raise
        except Exception as exc:
            raise ChunkingFailed(f"Failed to chunk text: {exc}") from exc
        if not texts:
            raise ChunkingFailed("No fragments produced from extracted text")
        return texts

    def run_phase_one(
        self,
        paths: Sequence[Path],
        on_file: Callable[[FileResult], None] | None = None,
    ) -> IngestReport:
        """Run Phase 1 over *paths* in order and return the report."""
        report = IngestReport()
        for path in paths:
            result = self.process_file(path)
            report.results.append(result)
            if on_file is not None:
                on_file(result)
        logger.info(
            "Phase 1 complete: %d stored, %d skipped, %d failed",
            report.stored,
            report.skipped,
            report.failed,
        )
        return report

    # ------------------------------------------------------------------
    # Both phases
    # ------------------------------------------------------------------

    def run(
        self,
        paths: Sequence[Path],
        backend: EmbeddingBackend,
        on_file: Callable[[FileResult], None] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> IngestReport:
        """Verify the store's embedding model, then run Phase 1 and Phase 2.

        Raises:
            ModelMismatch: The store was built with a different model or version.
            CountMismatch: The backend returned the wrong number of vectors.
        """
        self.storage.verify_or_set_model(backend.model)
        report = self.run_phase_one(paths, on_file=on_file)
        writer = EmbeddingWriter(
            self.storage,
            backend,
            batch_size=self.config.embedding.batch_size,
            batch_delay=self.config.embedding.batch_delay,
        )
        report.embedded = writer.write_pending(on_progress=on_progress)
        return report


# ------------------------------------------------------------------
# Directory scan
# ------------------------------------------------------------------


def _scan_dir(directory: Path, recursive: bool, exclude: list[str], depth: int) -> list[Path]:
    """Return supported files in *directory* (optionally recursive)."""
    files: list[Path] = []
    try:
        entries = sorted(directory.iterdir())
    except PermissionError:
        logger.warning("Permission denied, skipping directory: %s", directory)
        return []
    for entry in entries:
        if any(fnmatch.fnmatch(entry.name, pat) for pat in exclude):
            continue
        if entry.is_file() and entry.suffix.lower().lstrip(".") in SUPPORTED_EXTENSIONS:
            files.append(entry)
        elif entry.is_dir() and recursive and depth < _MAX_SCAN_DEPTH:
            files.extend(_scan_dir(entry, recursive=recursive, exclude=exclude, depth=depth + 1))
    return files
