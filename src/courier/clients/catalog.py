"""Storefront catalog client — paginated products, pages and collections.

Talks to the Shopify Storefront GraphQL API:
  POST https://{store_domain}/api/{api_version}/graphql.json
  header X-Shopify-Storefront-Access-Token: {storefront_token}

Every list call takes a page size and an opaque cursor and returns a
``Listing`` with the next cursor and a has-more flag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

import httpx

T = TypeVar("T")


class CatalogAPIError(RuntimeError):
    """Raised on HTTP failures or GraphQL ``errors`` from the storefront."""


# ------------------------------------------------------------------
# Records
# ------------------------------------------------------------------


@dataclass
class ProductVariant:
    price_amount: str
    currency_code: str
    available_for_sale: bool = False
    sku: str | None = None


@dataclass
class CatalogProduct:
    id: str
    title: str
    handle: str
    description: str = ""
    variants: list[ProductVariant] = field(default_factory=list)
    images: list[str] = field(default_factory=list)


@dataclass
class StorePage:
    """An informational page (about, shipping policy, FAQ ...)."""

    id: str
    title: str
    handle: str
    body: str = ""


@dataclass
class CatalogCollection:
    id: str
    title: str
    handle: str
    description: str = ""


@dataclass
class Listing(Generic[T]):
    """One page of a paginated listing."""

    items: list[T]
    end_cursor: str | None = None
    has_next_page: bool = False


class CatalogSource(Protocol):
    def get_products(self, first: int, after: str | None = None) -> Listing[CatalogProduct]: ...

    def get_pages(self, first: int, after: str | None = None) -> Listing[StorePage]: ...

    def get_collections(
        self, first: int, after: str | None = None
    ) -> Listing[CatalogCollection]: ...


# ------------------------------------------------------------------
# GraphQL documents
# ------------------------------------------------------------------

_PRODUCTS_QUERY = """
query Products($first: Int!, $after: String) {
  products(first: $first, after: $after) {
    pageInfo { hasNextPage endCursor }
    edges {
      node {
        id
        title
        handle
        descriptionHtml
        variants(first: 100) {
          edges { node { sku availableForSale price { amount currencyCode } } }
        }
        images(first: 50) { edges { node { url } } }
      }
    }
  }
}
"""

_PAGES_QUERY = """
query Pages($first: Int!, $after: String) {
  pages(first: $first, after: $after) {
    pageInfo { hasNextPage endCursor }
    edges { node { id title handle body } }
  }
}
"""

_COLLECTIONS_QUERY = """
query Collections($first: Int!, $after: String) {
  collections(first: $first, after: $after) {
    pageInfo { hasNextPage endCursor }
    edges { node { id title handle descriptionHtml } }
  }
}
"""


class StorefrontClient:
    """Minimal Storefront GraphQL client.

    Args:
        store_domain: e.g. ``my-shop.myshopify.com``.
        storefront_token: Public Storefront API access token.
        api_version: Storefront API version segment.
        timeout: Request timeout in seconds.
        http: Optional pre-built ``httpx.Client`` (tests, connection reuse).
    """

    def __init__(
        self,
        store_domain: str,
        storefront_token: str,
        api_version: str = "2024-01",
        timeout: float = 30.0,
        http: httpx.Client | None = None,
    ) -> None:
        domain = store_domain.removeprefix("https://").removeprefix("http://").rstrip("/")
        self.endpoint = f"https://{domain}/api/{api_version}/graphql.json"
        self._token = storefront_token
        self._http = http or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> StorefrontClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def get_products(self, first: int, after: str | None = None) -> Listing[CatalogProduct]:
        conn = self._query(_PRODUCTS_QUERY, first, after)["products"]
        return _listing(conn, _parse_product)

    def get_pages(self, first: int, after: str | None = None) -> Listing[StorePage]:
        conn = self._query(_PAGES_QUERY, first, after)["pages"]
        return _listing(
            conn,
            lambda n: StorePage(
                id=n["id"], title=n["title"], handle=n.get("handle", ""), body=n.get("body") or ""
            ),
        )

    def get_collections(
        self, first: int, after: str | None = None
    ) -> Listing[CatalogCollection]:
        conn = self._query(_COLLECTIONS_QUERY, first, after)["collections"]
        return _listing(
            conn,
            lambda n: CatalogCollection(
                id=n["id"],
                title=n["title"],
                handle=n.get("handle", ""),
                description=n.get("descriptionHtml") or "",
            ),
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _query(self, query: str, first: int, after: str | None) -> dict:
        try:
            response = self._http.post(
                self.endpoint,
                json={"query": query, "variables": {"first": first, "after": after}},
                headers={
                    "Content-Type": "application/json",
                    "X-Shopify-Storefront-Access-Token": self._token,
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise CatalogAPIError(f"Storefront request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise CatalogAPIError(f"Storefront response is not JSON: {exc}") from exc
        if not isinstance(body, dict):
            raise CatalogAPIError(
                f"Storefront response is not a JSON object: {type(body).__name__}"
            )
        if body.get("errors"):
            messages = "; ".join(str(e.get("message", e)) for e in body["errors"])
            raise CatalogAPIError(f"Storefront GraphQL error: {messages}")
        if not body.get("data"):
            raise CatalogAPIError("Storefront response has no data")
        return body["data"]


# ------------------------------------------------------------------
# Parsing helpers
# ------------------------------------------------------------------


def _listing(connection: dict, parse) -> Listing:
    info = connection.get("pageInfo") or {}
    return Listing(
        items=[parse(edge["node"]) for edge in connection.get("edges", [])],
        end_cursor=info.get("endCursor"),
        has_next_page=bool(info.get("hasNextPage")),
    )


def _parse_product(node: dict) -> CatalogProduct:
    variants = []
    for edge in (node.get("variants") or {}).get("edges", []):
        v = edge["node"]
        price = v.get("price") or {}
        variants.append(
            ProductVariant(
                price_amount=str(price.get("amount", "")),
                currency_code=price.get("currencyCode", ""),
                available_for_sale=bool(v.get("availableForSale")),
                sku=v.get("sku") or None,
            )
        )
    images = [
        edge["node"]["url"] for edge in (node.get("images") or {}).get("edges", [])
    ]
    return CatalogProduct(
        id=node["id"],
        title=node["title"],
        handle=node.get("handle", ""),
        description=node.get("descriptionHtml") or "",
        variants=variants,
        images=images,
    )
