"""Domain models for the Courier database layer."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import ClassVar, Union


class ContentType(str, Enum):
    PRODUCT = "product"
    PAGE = "page"
    COLLECTION = "collection"
    DOCUMENT = "document"


class DataSourceKind(str, Enum):
    """Which retrieval path a channel address uses."""

    FILES = "files"
    CATALOG = "catalog"


class Direction(str, Enum):
    INBOUND = "inbound"    # customer → business ("user")
    OUTBOUND = "outbound"  # business → customer ("assistant")


# ------------------------------------------------------------------
# Chunk metadata: one shape per content type
# ------------------------------------------------------------------


@dataclass
class ProductMetadata:
    content_type: ClassVar[ContentType] = ContentType.PRODUCT

    handle: str
    variants_count: int
    images_count: int
    available_variants: int


@dataclass
class PageMetadata:
    content_type: ClassVar[ContentType] = ContentType.PAGE

    handle: str


@dataclass
class CollectionMetadata:
    content_type: ClassVar[ContentType] = ContentType.COLLECTION

    handle: str


@dataclass
class DocumentMetadata:
    content_type: ClassVar[ContentType] = ContentType.DOCUMENT

    file_name: str = ""


ChunkMetadata = Union[ProductMetadata, PageMetadata, CollectionMetadata, DocumentMetadata]

_METADATA_TYPES: dict[ContentType, type] = {
    ContentType.PRODUCT: ProductMetadata,
    ContentType.PAGE: PageMetadata,
    ContentType.COLLECTION: CollectionMetadata,
    ContentType.DOCUMENT: DocumentMetadata,
}


def metadata_to_json(metadata: ChunkMetadata) -> str:
    return json.dumps(asdict(metadata))


def metadata_from_json(content_type: ContentType | str, raw: str) -> ChunkMetadata:
    """Rebuild the typed metadata for *content_type* from its stored JSON.

    Unknown keys are dropped so rows written by older versions still load.
    """
    cls = _METADATA_TYPES[ContentType(content_type)]
    data = json.loads(raw or "{}")
    known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
    return cls(**known)


# ------------------------------------------------------------------
# Entities
# ------------------------------------------------------------------


@dataclass
class Chunk:
    owner_id: str
    content_type: ContentType
    content_id: str
    title: str
    text: str
    metadata: ChunkMetadata = field(default_factory=DocumentMetadata)
    embedding: list[float] | None = None
    created_at: str | None = None
    rowid: int | None = None  # set after insert; None for unsaved chunks


@dataclass
class CatalogStore:
    id: str
    store_domain: str
    storefront_token: str
    created_at: str | None = None
    last_synced_at: str | None = None


@dataclass
class DocumentFile:
    id: str
    name: str
    ingested_at: str | None = None


@dataclass
class PhoneMapping:
    """One (channel address → source) binding with its tenant settings."""

    phone_number: str
    data_source: DataSourceKind
    file_id: str | None = None
    store_id: str | None = None
    system_prompt: str | None = None
    intent: str | None = None
    auth_token: str | None = None
    origin: str | None = None


@dataclass
class Message:
    message_id: str
    from_number: str
    to_number: str
    received_at: str
    direction: Direction | str
    content_text: str | None = None
    channel: str = "whatsapp"
    content_type: str = "text"
    sender_name: str | None = None
    auto_respond_sent: bool | None = None
    response_sent_at: str | None = None
    raw_payload: str = field(default_factory=lambda: "{}")
