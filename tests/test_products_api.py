"""HTTP tests for the catalog, review and reputation endpoints."""

import pytest
from httpx import AsyncClient

from tests.conftest import Wallet, make_wallet, product_payload, signed_request


async def _list_product(client: AsyncClient, seller: Wallet, **overrides) -> dict:  # type: ignore[no-untyped-def]
    resp = await signed_request(client, seller, "POST", "/products", json_body=product_payload(**overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _review(client: AsyncClient, reviewer: Wallet, product_id: str, rating: int) -> dict:
    resp = await signed_request(
        client, reviewer, "POST", f"/products/{product_id}/reviews",
        json_body={"author": "alice", "rating": rating, "comment": "Exactly as described, would buy again."},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_list_product_caller_becomes_seller(client: AsyncClient, seller: Wallet) -> None:
    product = await _list_product(client, seller)
    assert product["seller_id"] == seller.address
    assert product["name"] == "Vintage film camera"
    assert product["images"] == ["https://example.com/camera.jpg"]

    resp = await client.get(f"/products/{product['product_id']}")
    assert resp.status_code == 200
    assert resp.json()["product_id"] == product["product_id"]


@pytest.mark.asyncio
async def test_list_product_requires_auth(client: AsyncClient) -> None:
    resp = await client.post("/products", json=product_payload())
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_list_product_validation(client: AsyncClient, seller: Wallet) -> None:
    resp = await signed_request(client, seller, "POST", "/products", json_body=product_payload(price_tiers=["-1"]))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_browse_products_by_seller(client: AsyncClient, seller: Wallet) -> None:
    other = make_wallet()
    mine = await _list_product(client, seller)
    await _list_product(client, other, name="Someone else's lens")

    resp = await client.get("/products", params={"seller_id": seller.address.upper().replace("0X", "0x")})
    assert resp.status_code == 200
    assert [p["product_id"] for p in resp.json()] == [mine["product_id"]]

    resp = await client.get("/products")
    assert len(resp.json()) == 2


@pytest.mark.asyncio
async def test_get_missing_product_404(client: AsyncClient) -> None:
    resp = await client.get("/products/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_product_owner_only(client: AsyncClient, seller: Wallet) -> None:
    product = await _list_product(client, seller)
    path = f"/products/{product['product_id']}"

    resp = await signed_request(client, make_wallet(), "PATCH", path, json_body={"name": "Hijacked"})
    assert resp.status_code == 403

    resp = await signed_request(client, seller, "PATCH", path, json_body={"name": "Mint film camera"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Mint film camera"


@pytest.mark.asyncio
async def test_delete_product(client: AsyncClient, seller: Wallet) -> None:
    product = await _list_product(client, seller)
    path = f"/products/{product['product_id']}"

    resp = await signed_request(client, seller, "DELETE", path)
    assert resp.status_code == 204
    assert (await client.get(path)).status_code == 404
    assert (await signed_request(client, seller, "DELETE", path)).status_code == 404


@pytest.mark.asyncio
async def test_reviews_roundtrip(client: AsyncClient, seller: Wallet, buyer: Wallet) -> None:
    product = await _list_product(client, seller)
    review = await _review(client, buyer, product["product_id"], 4)
    assert review["rating"] == 4

    resp = await client.get(f"/products/{product['product_id']}/reviews")
    assert resp.status_code == 200
    assert [r["review_id"] for r in resp.json()] == [review["review_id"]]


@pytest.mark.asyncio
async def test_review_missing_product_404(client: AsyncClient, buyer: Wallet) -> None:
    resp = await signed_request(
        client, buyer, "POST", "/products/00000000-0000-0000-0000-000000000000/reviews",
        json_body={"author": "bob", "rating": 5, "comment": "Lovely, arrived quickly."},
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_review_short_comment_422(client: AsyncClient, seller: Wallet, buyer: Wallet) -> None:
    product = await _list_product(client, seller)
    resp = await signed_request(
        client, buyer, "POST", f"/products/{product['product_id']}/reviews",
        json_body={"author": "bob", "rating": 5, "comment": "ok"},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_seller_reputation_endpoint(client: AsyncClient, seller: Wallet, buyer: Wallet) -> None:
    camera = await _list_product(client, seller)
    lens = await _list_product(client, seller, name="Portrait lens")
    await _review(client, buyer, camera["product_id"], 5)
    await _review(client, buyer, camera["product_id"], 5)
    await _review(client, buyer, lens["product_id"], 4)

    resp = await client.get(f"/sellers/{seller.address}/reputation")
    assert resp.status_code == 200
    data = resp.json()
    assert data["rating"] == 4.7
    assert data["total_reviews"] == 3
    assert data["loyalty_points"] == 60
    assert data["loyalty_tier"]["tier"] == "Silver"

    resp = await client.get(f"/sellers/{seller.address}/reviews")
    assert resp.status_code == 200
    assert {r["product_name"] for r in resp.json()} == {"Vintage film camera", "Portrait lens"}


@pytest.mark.asyncio
async def test_unknown_seller_is_unrated(client: AsyncClient) -> None:
    resp = await client.get(f"/sellers/{make_wallet().address}/reputation")
    assert resp.status_code == 200
    assert resp.json()["loyalty_tier"]["tier"] == "Unrated"


@pytest.mark.asyncio
async def test_loyalty_tier_lookup(client: AsyncClient) -> None:
    resp = await client.get("/loyalty-tiers/80")
    assert resp.json() == {"tier": "Gold", "color": "text-yellow-400", "icon": "⭐"}
    resp = await client.get("/loyalty-tiers/30")
    assert resp.json()["tier"] == "Bronze"
