"""Courier ingest pipeline: chunker, formatters, embedding writer, catalog + document ingestors."""

from courier.ingest.catalog import CatalogIngestor, IngestReport, sync_catalog_store
from courier.ingest.chunker import TextChunker
from courier.ingest.documents import DocumentIngestor
from courier.ingest.embedding_writer import EmbeddingWriter, IngestError

__all__ = [
    "CatalogIngestor",
    "DocumentIngestor",
    "EmbeddingWriter",
    "IngestError",
    "IngestReport",
    "TextChunker",
    "sync_catalog_store",
]
