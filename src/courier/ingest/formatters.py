"""Convert catalog records into normalized plain text + typed chunk metadata.

HTML stripping is a best-effort tag removal, not an HTML parser: malformed
markup can leave fragments behind.
"""

from __future__ import annotations

import re

from courier.clients.catalog import CatalogCollection, CatalogProduct, StorePage
from courier.db.models import CollectionMetadata, PageMetadata, ProductMetadata

_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(html: str) -> str:
    return _TAG_RE.sub("", html).strip()


def product_to_text(product: CatalogProduct) -> str:
    lines = [f"Product: {product.title}"]

    if product.description:
        lines.append(f"Description: {strip_html(product.description)}")

    prices = [p for p in (_parse_price(v.price_amount) for v in product.variants) if p is not None]
    if prices:
        low, high = min(prices), max(prices)
        currency = product.variants[0].currency_code
        if low == high:
            lines.append(f"Price: {currency} {low:.2f}")
        else:
            lines.append(f"Price Range: {currency} {low:.2f} - {currency} {high:.2f}")

    available = sum(1 for v in product.variants if v.available_for_sale)
    lines.append(f"Availability: {available}/{len(product.variants)} variants available")

    skus = [v.sku for v in product.variants if v.sku]
    if skus:
        lines.append(f"SKUs: {', '.join(skus)}")

    if product.images:
        lines.append(f"Images: {len(product.images)} available")

    return "\n".join(lines).strip()


def page_to_text(page: StorePage) -> str:
    lines = [f"Page: {page.title}"]
    if page.body:
        lines.append(f"Content: {strip_html(page.body)}")
    return "\n".join(lines).strip()


def collection_to_text(collection: CatalogCollection) -> str:
    lines = [f"Collection: {collection.title}"]
    if collection.description:
        lines.append(f"Description: {strip_html(collection.description)}")
    return "\n".join(lines).strip()


def product_metadata(product: CatalogProduct) -> ProductMetadata:
    return ProductMetadata(
        handle=product.handle,
        variants_count=len(product.variants),
        images_count=len(product.images),
        available_variants=sum(1 for v in product.variants if v.available_for_sale),
    )


def page_metadata(page: StorePage) -> PageMetadata:
    return PageMetadata(handle=page.handle)


def collection_metadata(collection: CatalogCollection) -> CollectionMetadata:
    return CollectionMetadata(handle=collection.handle)


def _parse_price(amount: str) -> float | None:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return None
    # NaN never compares equal; treat it like a missing price
    return None if value != value else value
