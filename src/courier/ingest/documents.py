"""Generic document ingestion: one file → ``document`` chunks owned by the file id."""

from __future__ import annotations

import logging
import sqlite3

from courier.db.models import Chunk, ContentType, DocumentFile, DocumentMetadata
from courier.db.repository import Repository
from courier.ingest.catalog import IngestReport
from courier.ingest.chunker import TextChunker
from courier.ingest.embedding_writer import EmbeddingWriter, IngestError
from courier.rag.llm_client import Embedder

logger = logging.getLogger(__name__)


class DocumentIngestor:
    """Register a document file and rebuild its chunk set.

    Re-ingesting the same file id replaces its previous chunks.
    """

    def __init__(
        self,
        repo: Repository,
        embedder: Embedder,
        chunker: TextChunker | None = None,
    ) -> None:
        self._repo = repo
        self._writer = EmbeddingWriter(repo, embedder)
        self._chunker = chunker or TextChunker()

    def ingest(self, file_id: str, name: str, text: str) -> IngestReport:
        report = IngestReport(owner_id=file_id, records={ContentType.DOCUMENT.value: 0})

        try:
            self._repo.upsert_file(DocumentFile(id=file_id, name=name))
            report.deleted = self._repo.delete_chunks_by_owner(file_id)
        except sqlite3.Error as exc:
            raise IngestError(f"Failed to prepare file {file_id}: {exc}") from exc

        metadata = DocumentMetadata(file_name=name)
        chunks = [
            Chunk(
                owner_id=file_id,
                content_type=ContentType.DOCUMENT,
                content_id=file_id,
                title=name,
                text=segment,
                metadata=metadata,
            )
            for segment in self._chunker.split(text)
        ]
        if not chunks:
            logger.warning("File %s (%s) produced no chunks", file_id, name)
            return report

        report.add(self._writer.write(chunks))
        report.records[ContentType.DOCUMENT.value] = 1
        logger.info(
            "Ingested file %s: %d chunks (%d duplicates skipped)",
            file_id,
            report.chunks_written,
            report.duplicates,
        )
        return report
