"""Tests for DocumentIngestor."""

from __future__ import annotations

import pytest

from courier.db.models import ContentType, DocumentMetadata
from courier.ingest.chunker import TextChunker
from courier.ingest.documents import DocumentIngestor
from courier.ingest.embedding_writer import IngestError


def test_ingest_registers_file_and_chunks(repo, embedder):
    report = DocumentIngestor(repo, embedder).ingest("faq", "faq.md", "Returns accepted within 30 days.")

    assert repo.get_file("faq").name == "faq.md"
    [chunk] = repo.list_chunks_by_owner("faq")
    assert chunk.content_type == ContentType.DOCUMENT
    assert chunk.content_id == "faq"
    assert chunk.title == "faq.md"
    assert chunk.metadata == DocumentMetadata(file_name="faq.md")
    assert report.chunks_written == 1
    assert report.records == {"document": 1}


def test_reingest_replaces_previous_chunks(repo, embedder):
    ingestor = DocumentIngestor(repo, embedder)
    ingestor.ingest("faq", "faq.md", "Old shipping policy.")
    report = ingestor.ingest("faq", "faq.md", "New shipping policy.")
    assert report.deleted == 1
    assert [c.text for c in repo.list_chunks_by_owner("faq")] == ["New shipping policy."]


def test_long_document_is_split(repo, embedder):
    text = "\n".join(f"Line {i}: store hours are nine to five." for i in range(50))
    DocumentIngestor(repo, embedder, TextChunker(200)).ingest("hours", "hours.txt", text)
    chunks = repo.list_chunks_by_owner("hours")
    assert len(chunks) > 1
    assert all(len(c.text) <= 200 for c in chunks)


def test_empty_document_writes_nothing(repo, embedder):
    report = DocumentIngestor(repo, embedder).ingest("blank", "blank.txt", "   \n  ")
    assert report.chunks_written == 0
    assert repo.count_chunks_by_owner("blank") == 0
    assert repo.get_file("blank") is not None
    assert embedder.calls == []


def test_embedding_failure_raises(repo, embedder_factory):
    with pytest.raises(IngestError):
        DocumentIngestor(repo, embedder_factory(fail_on="secret")).ingest("f", "f.txt", "secret text")
