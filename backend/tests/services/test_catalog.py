# tests/services/test_catalog.py
from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers.catalog import day, make_sku, receive

from tagtrack.core.errors import NotFound, ValidationFailed
from tagtrack.models.category import CategoryType
from tagtrack.models.sku import SKUStatus
from tagtrack.services.category_service import CategoryService
from tagtrack.services.sku_service import SKUService


async def test_category_names_are_unique_and_lowercased(session: AsyncSession):
    category = await CategoryService.create_category(session, "  Cables ", CategoryType.PRODUCT, attributes=["length", " "])
    assert category.name == "cables"
    assert category.attributes == ["length"]

    with pytest.raises(ValidationFailed):
        await CategoryService.create_category(session, "CABLES")


async def test_list_categories_filters_by_type(session: AsyncSession):
    await CategoryService.create_category(session, "drills", CategoryType.TOOL, sort_order=2)
    await CategoryService.create_category(session, "saws", CategoryType.TOOL, sort_order=1)
    await CategoryService.create_category(session, "cables", CategoryType.PRODUCT)

    tools = await CategoryService.list_categories(session, type=CategoryType.TOOL)
    assert [c.name for c in tools] == ["saws", "drills"]
    assert all(c.is_tool for c in tools)


async def test_create_sku_records_initial_cost(session: AsyncSession):
    sku = await make_sku(session, "cbl-hdmi", unit_cost="4.50")

    assert sku.sku_code == "CBL-HDMI"
    assert sku.status == SKUStatus.ACTIVE.value
    assert [h.cost for h in sku.cost_history] == [Decimal("4.50")]
    assert sku.cost_history[0].notes == "Initial cost"


async def test_duplicate_sku_code_rejected(session: AsyncSession):
    await make_sku(session, "A-1")
    with pytest.raises(ValidationFailed):
        await make_sku(session, "a-1")


async def test_create_sku_requires_existing_category(session: AsyncSession):
    with pytest.raises(NotFound):
        await SKUService.create_sku(session, "X-1", "Orphan", uuid4(), actor="tester")


async def test_bundle_definition_is_validated(session: AsyncSession):
    part = await make_sku(session, "P-1")

    with pytest.raises(ValidationFailed):
        await make_sku(session, "B-EMPTY", is_bundle=True)
    with pytest.raises(ValidationFailed):
        await make_sku(session, "B-UNKNOWN", is_bundle=True, bundle_items=[{"sku_id": uuid4(), "quantity": 1}])
    with pytest.raises(ValidationFailed):
        await make_sku(session, "B-ZERO", is_bundle=True, bundle_items=[{"sku_id": part.id, "quantity": 0}])
    with pytest.raises(ValidationFailed):
        await make_sku(session, "P-2", bundle_items=[{"sku_id": part.id, "quantity": 1}])

    bundle = await make_sku(session, "B-OK", is_bundle=True, bundle_items=[{"sku_id": part.id, "quantity": 2}])
    assert [(b.component_sku_id, b.quantity) for b in bundle.bundle_items] == [(part.id, 2)]

    with pytest.raises(ValidationFailed):
        await make_sku(session, "B-NESTED", is_bundle=True, bundle_items=[{"sku_id": bundle.id, "quantity": 1}])


async def test_add_cost_appends_history_and_keeps_instance_costs(session: AsyncSession):
    sku = await make_sku(session, "C-1", unit_cost="10")
    on_hand = await receive(session, sku, 2, "10")

    await SKUService.add_cost(session, sku.id, Decimal("12"), effective_date=day(10), notes="supplier increase", actor="buyer")
    await SKUService.add_cost(session, sku.id, Decimal("15"), effective_date=day(20), actor="buyer")

    assert sku.unit_cost == Decimal("15")
    assert len(sku.cost_history) == 3
    assert sku.cost_history[0].cost == Decimal("10")
    assert all(i.acquisition_cost == Decimal("10") for i in on_hand)

    assert await SKUService.get_cost_at_date(session, sku.id, day(15)) == Decimal("12")
    assert await SKUService.get_cost_at_date(session, sku.id, day(25)) == Decimal("15")
    assert await SKUService.get_cost_at_date(session, sku.id, day(5)) == Decimal("0")


async def test_negative_cost_rejected(session: AsyncSession):
    sku = await make_sku(session, "C-2")
    with pytest.raises(ValidationFailed):
        await SKUService.add_cost(session, sku.id, Decimal("-1"))


async def test_update_sku_never_touches_cost(session: AsyncSession):
    sku = await make_sku(session, "U-1", unit_cost="3")
    await SKUService.update_sku(session, sku.id, name="Renamed", understocked_threshold=2, actor="editor")

    assert sku.name == "Renamed"
    assert sku.unit_cost == Decimal("3")
    assert sku.last_updated_by == "editor"
    assert len(sku.cost_history) == 1


async def test_archive_hides_sku_from_default_listing(session: AsyncSession):
    keep = await make_sku(session, "L-1")
    gone = await make_sku(session, "L-2")
    await SKUService.archive_sku(session, gone.id, actor="tester")

    items, total = await SKUService.get_skus(session)
    assert total == 1 and items[0].id == keep.id

    items, total = await SKUService.get_skus(session, status=None)
    assert total == 2


async def test_get_skus_filters_by_category_type_and_search(session: AsyncSession):
    await make_sku(session, "DRILL-18V", tool=True)
    await make_sku(session, "CBL-USB")

    tools, _ = await SKUService.get_skus(session, category_type=CategoryType.TOOL)
    assert [s.sku_code for s in tools] == ["DRILL-18V"]

    found, total = await SKUService.get_skus(session, search="usb")
    assert total == 1 and found[0].sku_code == "CBL-USB"


async def test_stock_status_thresholds(session: AsyncSession):
    sku = await make_sku(session, "S-1")
    assert sku.get_stock_status(3) == "understocked"
    assert sku.get_stock_status(50) == "adequate"
    assert sku.get_stock_status(150) == "overstocked"
