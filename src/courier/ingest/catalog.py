"""Catalog ingestion: full replacement of one store's chunk set.

Order of work for ``CatalogIngestor.ingest(owner_id)``:
  1. delete every existing chunk of the owner (fatal on failure)
  2. products, then pages, then collections, each paginated until exhausted
  3. format → chunk → embed → insert, one record at a time

Fetches are sequential. A failed run leaves the owner's chunk set partially
rebuilt; rerunning the sync is the recovery path.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Callable, Iterator, TypeVar

from courier.clients.catalog import (
    CatalogAPIError,
    CatalogSource,
    Listing,
    StorefrontClient,
)
from courier.config import CourierConfig
from courier.db.models import Chunk, ChunkMetadata, ContentType
from courier.db.repository import Repository
from courier.ingest import formatters
from courier.ingest.chunker import TextChunker
from courier.ingest.embedding_writer import EmbeddingWriter, IngestError, WriteStats
from courier.rag.llm_client import Embedder

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class IngestReport:
    owner_id: str
    deleted: int = 0
    records: dict[str, int] = field(
        default_factory=lambda: {"product": 0, "page": 0, "collection": 0}
    )
    chunks_written: int = 0
    duplicates: int = 0

    def add(self, stats: WriteStats) -> None:
        self.chunks_written += stats.written
        self.duplicates += stats.duplicates


class CatalogIngestor:
    """Rebuild the chunk set of one catalog store.

    Args:
        repo:     Open Repository.
        source:   Catalog client (products, pages, collections).
        embedder: Embedding collaborator.
        chunker:  Text chunker; defaults to 1500-character windows.
        product_page_size / page_page_size / collection_page_size:
            Page sizes requested from the source.
    """

    def __init__(
        self,
        repo: Repository,
        source: CatalogSource,
        embedder: Embedder,
        chunker: TextChunker | None = None,
        product_page_size: int = 250,
        page_page_size: int = 100,
        collection_page_size: int = 100,
    ) -> None:
        self._repo = repo
        self._source = source
        self._writer = EmbeddingWriter(repo, embedder)
        self._chunker = chunker or TextChunker()
        self._product_page_size = product_page_size
        self._page_page_size = page_page_size
        self._collection_page_size = collection_page_size

    def ingest(self, owner_id: str) -> IngestReport:
        """Replace every chunk of *owner_id* with freshly fetched content.

        Raises:
            IngestError: On delete failure, source failure, embedding failure
                or any non-duplicate write failure.
        """
        report = IngestReport(owner_id=owner_id)

        try:
            report.deleted = self._repo.delete_chunks_by_owner(owner_id)
        except sqlite3.Error as exc:
            raise IngestError(f"Failed to clear existing chunks for {owner_id}: {exc}") from exc
        logger.info("Cleared %d existing chunks for %s", report.deleted, owner_id)

        try:
            for product in _paginate(self._source.get_products, self._product_page_size):
                self._write_record(
                    report,
                    owner_id,
                    ContentType.PRODUCT,
                    product.id,
                    product.title,
                    formatters.product_to_text(product),
                    formatters.product_metadata(product),
                )

            for page in _paginate(self._source.get_pages, self._page_page_size):
                self._write_record(
                    report,
                    owner_id,
                    ContentType.PAGE,
                    page.id,
                    page.title,
                    formatters.page_to_text(page),
                    formatters.page_metadata(page),
                )

            for collection in _paginate(self._source.get_collections, self._collection_page_size):
                self._write_record(
                    report,
                    owner_id,
                    ContentType.COLLECTION,
                    collection.id,
                    collection.title,
                    formatters.collection_to_text(collection),
                    formatters.collection_metadata(collection),
                )
        except CatalogAPIError as exc:
            raise IngestError(f"Failed to fetch catalog for {owner_id}: {exc}") from exc

        logger.info(
            "Ingested %s: %s records, %d chunks (%d duplicates skipped)",
            owner_id,
            report.records,
            report.chunks_written,
            report.duplicates,
        )
        return report

    def _write_record(
        self,
        report: IngestReport,
        owner_id: str,
        content_type: ContentType,
        content_id: str,
        title: str,
        text: str,
        metadata: ChunkMetadata,
    ) -> None:
        chunks = [
            Chunk(
                owner_id=owner_id,
                content_type=content_type,
                content_id=content_id,
                title=title,
                text=segment,
                metadata=metadata,
            )
            for segment in self._chunker.split(text)
        ]
        report.add(self._writer.write(chunks))
        report.records[content_type.value] += 1


def _paginate(fetch: Callable[..., Listing[T]], page_size: int) -> Iterator[T]:
    """Yield every item of a cursor-paginated listing, in source order."""
    cursor: str | None = None
    while True:
        listing = fetch(page_size, cursor)
        yield from listing.items
        if not listing.has_next_page:
            return
        if not listing.end_cursor or listing.end_cursor == cursor:
            raise CatalogAPIError(
                f"Listing reports more pages but the cursor did not advance (cursor={cursor!r})"
            )
        cursor = listing.end_cursor


# ------------------------------------------------------------------
# Store sync
# ------------------------------------------------------------------


def sync_catalog_store(
    repo: Repository,
    store_id: str,
    embedder: Embedder,
    config: CourierConfig | None = None,
    client_factory: Callable[..., CatalogSource] | None = None,
) -> IngestReport:
    """Ingest the catalog of a registered store and stamp ``last_synced_at``.

    The timestamp is only written after a fully successful run.

    Args:
        repo:           Open Repository.
        store_id:       Id of a row in ``catalog_stores``.
        embedder:       Embedding collaborator.
        config:         Loaded config (page sizes, chunk size, API version).
        client_factory: Builds the catalog client from
            ``(store_domain, storefront_token, api_version, timeout)``.
            Defaults to ``StorefrontClient``.

    Raises:
        IngestError: If the store is unknown or ingestion fails.
    """
    cfg = config or CourierConfig()
    store = repo.get_catalog_store(store_id)
    if store is None:
        raise IngestError(f"Store not found: {store_id}")

    factory = client_factory or StorefrontClient
    client = factory(
        store.store_domain,
        store.storefront_token,
        api_version=cfg.catalog.api_version,
        timeout=cfg.catalog.timeout,
    )
    try:
        ingestor = CatalogIngestor(
            repo,
            client,
            embedder,
            chunker=TextChunker(cfg.ingest.chunk_size),
            product_page_size=cfg.ingest.product_page_size,
            page_page_size=cfg.ingest.page_page_size,
            collection_page_size=cfg.ingest.collection_page_size,
        )
        report = ingestor.ingest(store_id)
    finally:
        close = getattr(client, "close", None)
        if close is not None:
            close()

    repo.mark_store_synced(store_id)
    return report
