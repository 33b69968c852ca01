"""Tests for courier ingest-file command."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from courier.cli.main import app

runner = CliRunner()


@pytest.fixture
def keyword_embedder(embedder_factory):
    emb = embedder_factory()
    with patch("courier.cli.ingest.build_embedder", return_value=emb):
        yield emb


def test_ingest_markdown_file(cli_project, open_repo, keyword_embedder):
    doc = cli_project / "faq.md"
    doc.write_text("Returns accepted within 30 days.", encoding="utf-8")

    result = runner.invoke(app, ["ingest-file", str(doc)])

    assert result.exit_code == 0, result.output
    assert "1 chunks" in result.output
    repo = open_repo()
    assert repo.get_file("faq").name == "faq.md"
    assert [c.text for c in repo.list_chunks_by_owner("faq")] == ["Returns accepted within 30 days."]


def test_ingest_with_explicit_id(cli_project, open_repo, keyword_embedder):
    doc = cli_project / "hours.txt"
    doc.write_text("Store open 9 to 5.", encoding="utf-8")

    result = runner.invoke(app, ["ingest-file", str(doc), "--id", "store-hours"])

    assert result.exit_code == 0, result.output
    assert open_repo().count_chunks_by_owner("store-hours") == 1


def test_reingest_replaces_chunks(cli_project, open_repo, keyword_embedder):
    doc = cli_project / "faq.md"
    doc.write_text("Old policy.", encoding="utf-8")
    runner.invoke(app, ["ingest-file", str(doc)])
    doc.write_text("New policy.", encoding="utf-8")
    runner.invoke(app, ["ingest-file", str(doc)])

    assert [c.text for c in open_repo().list_chunks_by_owner("faq")] == ["New policy."]


def test_unsupported_extension(cli_project, keyword_embedder):
    pdf = cli_project / "manual.pdf"
    pdf.write_bytes(b"%PDF-1.4")

    result = runner.invoke(app, ["ingest-file", str(pdf)])

    assert result.exit_code == 1
    assert "Unsupported file type" in result.output
    assert keyword_embedder.calls == []


def test_empty_file(cli_project, keyword_embedder):
    doc = cli_project / "blank.txt"
    doc.write_text("  \n", encoding="utf-8")

    result = runner.invoke(app, ["ingest-file", str(doc)])

    assert result.exit_code == 0
    assert "No chunks" in result.output


def test_embedding_failure_exits(cli_project, embedder_factory):
    doc = cli_project / "faq.md"
    doc.write_text("secret text", encoding="utf-8")

    with patch("courier.cli.ingest.build_embedder", return_value=embedder_factory(fail_on="secret")):
        result = runner.invoke(app, ["ingest-file", str(doc)])

    assert result.exit_code == 1
    assert "Ingestion failed" in result.output


def test_missing_path(cli_project):
    result = runner.invoke(app, ["ingest-file", str(cli_project / "nope.md")])
    assert result.exit_code != 0
