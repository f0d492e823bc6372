# tests/api/test_api.py
from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import httpx

API = "/api/v1"


async def _category(client: httpx.AsyncClient, name: str = "parts", type: str = "product") -> str:
    resp = await client.post(f"{API}/categories", json={"name": name, "type": type})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["id"]


async def _sku(client: httpx.AsyncClient, code: str, category_id: str, unit_cost: str = "10") -> str:
    resp = await client.post(
        f"{API}/skus",
        json={"sku_code": code, "name": f"{code} name", "category_id": category_id, "unit_cost": unit_cost},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["id"]


async def _receive(client: httpx.AsyncClient, sku_id: str, quantity: int, cost: str) -> list[dict]:
    resp = await client.post(f"{API}/instances/receive", json={"sku_id": sku_id, "quantity": quantity, "unit_cost": cost})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def _inventory(client: httpx.AsyncClient, sku_id: str) -> dict:
    resp = await client.get(f"{API}/inventory/{sku_id}")
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


async def test_health(client: httpx.AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "tagtrack-ims"}


async def test_actor_header_is_required(client: httpx.AsyncClient):
    resp = await client.get(f"{API}/tags", headers={"X-User": ""})
    assert resp.status_code == 401


async def test_reserve_and_ship_flow(client: httpx.AsyncClient):
    category_id = await _category(client)
    sku_id = await _sku(client, "API-CBL", category_id)
    received = await _receive(client, sku_id, 3, "2.5")
    assert [i["state"] for i in received] == ["available"] * 3
    assert received[0]["added_by"] == "tester"

    resp = await client.post(
        f"{API}/tags",
        json={"customer_name": "Acme", "sku_items": [{"sku_id": sku_id, "quantity": 2}]},
    )
    assert resp.status_code == 201, resp.text
    tag = resp.json()["data"]
    assert tag["status"] == "active"
    assert tag["total_quantity"] == 2
    assert Decimal(tag["total_value"]) == Decimal("5")

    inventory = await _inventory(client, sku_id)
    assert (inventory["available_quantity"], inventory["reserved_quantity"]) == (1, 2)

    resp = await client.post(f"{API}/tags/{tag['id']}/fulfill", json={"mode": "consume"})
    assert resp.status_code == 200, resp.text
    shipped = resp.json()["data"]
    assert shipped["status"] == "fulfilled"
    assert shipped["fulfilled_by"] == "tester"

    inventory = await _inventory(client, sku_id)
    assert (inventory["total_quantity"], inventory["available_quantity"], inventory["reserved_quantity"]) == (1, 1, 0)

    resp = await client.get(f"{API}/instances/{sku_id}")
    assert len(resp.json()["data"]) == 1


async def test_unknown_tag_is_404(client: httpx.AsyncClient):
    resp = await client.get(f"{API}/tags/{uuid4()}")
    assert resp.status_code == 404
    body = resp.json()
    assert body["data"] is None
    assert body["error"]["code"] == "TAG_NOT_FOUND"


async def test_insufficient_stock_rolls_back_the_whole_tag(client: httpx.AsyncClient):
    category_id = await _category(client)
    bolts = await _sku(client, "API-BOLT", category_id)
    nuts = await _sku(client, "API-NUT", category_id)
    await _receive(client, bolts, 5, "1")
    await _receive(client, nuts, 1, "1")

    resp = await client.post(
        f"{API}/tags",
        json={
            "customer_name": "Acme",
            "sku_items": [{"sku_id": bolts, "quantity": 2}, {"sku_id": nuts, "quantity": 3}],
        },
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INSUFFICIENT_STOCK"

    resp = await client.get(f"{API}/tags")
    assert resp.json()["meta"]["total_count"] == 0
    inventory = await _inventory(client, bolts)
    assert (inventory["available_quantity"], inventory["reserved_quantity"]) == (5, 0)


async def test_validation_errors_are_422(client: httpx.AsyncClient):
    category_id = await _category(client)
    sku_id = await _sku(client, "API-VAL", category_id)
    await _receive(client, sku_id, 1, "1")

    resp = await client.post(
        f"{API}/tags",
        json={"customer_name": "Acme", "sku_items": [{"sku_id": sku_id, "quantity": 1, "instance_ids": [str(uuid4())]}]},
    )
    assert resp.status_code == 422

    resp = await client.post(
        f"{API}/tags",
        json={"customer_name": "Acme", "sku_items": [{"sku_id": sku_id, "instance_ids": [str(uuid4())]}]},
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "INVALID_INSTANCE_SELECTION"


async def test_cancel_twice_conflicts(client: httpx.AsyncClient):
    category_id = await _category(client)
    sku_id = await _sku(client, "API-CAN", category_id)
    await _receive(client, sku_id, 2, "1")
    resp = await client.post(f"{API}/tags", json={"customer_name": "Acme", "sku_items": [{"sku_id": sku_id, "quantity": 2}]})
    tag_id = resp.json()["data"]["id"]

    resp = await client.post(f"{API}/tags/{tag_id}/cancel", json={"reason": "changed plans"})
    assert resp.status_code == 200
    assert resp.json()["data"]["cancellation_reason"] == "changed plans"
    assert (await _inventory(client, sku_id))["available_quantity"] == 2

    resp = await client.post(f"{API}/tags/{tag_id}/cancel", json={"reason": "again"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_TAG_STATE"


async def test_tool_checkout_and_broken_return(client: httpx.AsyncClient):
    category_id = await _category(client, "power tools", "tool")
    drill = await _sku(client, "API-DRILL", category_id, "120")
    await _receive(client, drill, 2, "120")

    resp = await client.post(f"{API}/tools/checkout", json={"customer_name": "Crew", "sku_items": [{"sku_id": drill, "quantity": 2}]})
    assert resp.status_code == 201, resp.text
    tag = resp.json()["data"]
    assert tag["tag_type"] == "loaned"

    resp = await client.post(
        f"{API}/tools/{tag['id']}/return",
        json={"condition": "broken", "notes": "dropped", "resolutions": [{"sku_id": drill, "quantity": 1}]},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["tag"]["total_quantity"] == 1
    assert data["condition_tag"]["tag_type"] == "broken"

    inventory = await _inventory(client, drill)
    assert (inventory["loaned_quantity"], inventory["broken_quantity"], inventory["available_quantity"]) == (1, 1, 0)


async def test_sync_and_valuation(client: httpx.AsyncClient):
    category_id = await _category(client)
    sku_id = await _sku(client, "API-SYNC", category_id)
    await _receive(client, sku_id, 4, "2.25")

    resp = await client.post(f"{API}/inventory/sync", json={})
    assert resp.status_code == 200, resp.text
    report = resp.json()["data"]
    assert report["skus_processed"] == 1
    assert report["records_updated"] == 0
    assert report["violations"] == []

    resp = await client.get(f"{API}/inventory/reports/valuation")
    assert resp.status_code == 200
    assert Decimal(resp.json()["data"]["total_value"]) == Decimal("9")


async def test_empty_instance_selection_is_422_and_keeps_stock(client: httpx.AsyncClient):
    category_id = await _category(client)
    sku_id = await _sku(client, "API-EMPTY", category_id)
    await _receive(client, sku_id, 2, "1")
    resp = await client.post(f"{API}/tags", json={"customer_name": "Acme", "sku_items": [{"sku_id": sku_id, "quantity": 2}]})
    tag_id = resp.json()["data"]["id"]

    resp = await client.post(
        f"{API}/tags/{tag_id}/fulfill",
        json={"mode": "consume", "resolutions": [{"sku_id": sku_id, "instance_ids": []}]},
    )
    assert resp.status_code == 422

    inventory = await _inventory(client, sku_id)
    assert (inventory["total_quantity"], inventory["reserved_quantity"]) == (2, 2)
