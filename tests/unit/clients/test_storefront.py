"""Tests for the Storefront GraphQL catalog client."""

from __future__ import annotations

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from courier.clients.catalog import CatalogAPIError, StorefrontClient

ENDPOINT = "https://shop.example.com/api/2024-01/graphql.json"


def _product_node(**overrides):
    node = {
        "id": "gid://shopify/Product/1",
        "title": "Blue Mug",
        "handle": "blue-mug",
        "descriptionHtml": "<p>Holds coffee.</p>",
        "variants": {
            "edges": [
                {
                    "node": {
                        "sku": "MUG-1",
                        "availableForSale": True,
                        "price": {"amount": "12.0", "currencyCode": "USD"},
                    }
                }
            ]
        },
        "images": {"edges": [{"node": {"url": "https://cdn.example.com/mug.jpg"}}]},
    }
    node.update(overrides)
    return node


def _connection(nodes, has_next=False, cursor=None):
    return {
        "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
        "edges": [{"node": n} for n in nodes],
    }


@pytest.fixture
def client():
    c = StorefrontClient("https://shop.example.com/", "public-token")
    yield c
    c.close()


def test_endpoint_normalises_domain():
    c = StorefrontClient("shop.example.com", "t", api_version="2025-04")
    try:
        assert c.endpoint == "https://shop.example.com/api/2025-04/graphql.json"
    finally:
        c.close()


def test_get_products_parses_listing(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        url=ENDPOINT,
        json={"data": {"products": _connection([_product_node()], has_next=True, cursor="c1")}},
    )

    listing = client.get_products(250)

    assert listing.has_next_page is True
    assert listing.end_cursor == "c1"
    [product] = listing.items
    assert product.title == "Blue Mug"
    assert product.description == "<p>Holds coffee.</p>"
    assert product.variants[0].price_amount == "12.0"
    assert product.variants[0].currency_code == "USD"
    assert product.variants[0].available_for_sale is True
    assert product.variants[0].sku == "MUG-1"
    assert product.images == ["https://cdn.example.com/mug.jpg"]


def test_request_carries_token_and_pagination(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=ENDPOINT, json={"data": {"pages": _connection([])}})

    client.get_pages(100, after="cursor-9")

    request = httpx_mock.get_request()
    assert request.headers["X-Shopify-Storefront-Access-Token"] == "public-token"
    body = json.loads(request.content)
    assert body["variables"] == {"first": 100, "after": "cursor-9"}
    assert "pages(first: $first, after: $after)" in body["query"]


def test_get_pages_and_collections(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        url=ENDPOINT,
        json={"data": {"pages": _connection([{"id": "p1", "title": "Shipping", "handle": "shipping", "body": "We ship."}])}},
    )
    httpx_mock.add_response(
        url=ENDPOINT,
        json={"data": {"collections": _connection([{"id": "c1", "title": "Mugs", "handle": "mugs", "descriptionHtml": None}])}},
    )

    [page] = client.get_pages(100).items
    [collection] = client.get_collections(100).items

    assert page.body == "We ship."
    assert collection.title == "Mugs"
    assert collection.description == ""


def test_missing_optional_fields(client, httpx_mock: HTTPXMock):
    node = _product_node(descriptionHtml=None, variants=None, images=None)
    httpx_mock.add_response(url=ENDPOINT, json={"data": {"products": _connection([node])}})

    [product] = client.get_products(10).items

    assert product.description == ""
    assert product.variants == []
    assert product.images == []


def test_http_error_raises(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=ENDPOINT, status_code=401, text="Unauthorized")
    with pytest.raises(CatalogAPIError, match="Storefront request failed"):
        client.get_products(10)


def test_transport_error_raises(client, httpx_mock: HTTPXMock):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))
    with pytest.raises(CatalogAPIError, match="connection refused"):
        client.get_products(10)


def test_graphql_errors_raise(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        url=ENDPOINT, json={"errors": [{"message": "Field 'foo' doesn't exist"}]}
    )
    with pytest.raises(CatalogAPIError, match="Field 'foo'"):
        client.get_products(10)


def test_empty_data_raises(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=ENDPOINT, json={"data": None})
    with pytest.raises(CatalogAPIError, match="no data"):
        client.get_collections(10)


def test_non_json_body_raises(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=ENDPOINT, text="<html>maintenance</html>")
    with pytest.raises(CatalogAPIError, match="not JSON"):
        client.get_products(10)


def test_non_object_body_raises(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=ENDPOINT, json=[1, 2])
    with pytest.raises(CatalogAPIError, match="not a JSON object"):
        client.get_pages(10)
