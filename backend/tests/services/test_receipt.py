# tests/services/test_receipt.py
from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers.catalog import assert_conserved, counts, day, empty_tag, instance_count, make_sku, receive

from tagtrack.core.errors import InsufficientStock, NotFound, ValidationFailed
from tagtrack.services.allocation_service import AllocationService
from tagtrack.services.instance_service import InstanceService
from tagtrack.services.inventory_service import InventoryService


async def test_receive_creates_unattached_instances(session: AsyncSession):
    sku = await make_sku(session, "R-1")
    created = await receive(session, sku, 3, "7.25")

    assert len(created) == 3
    assert {i.acquisition_date for i in created} == {day(0)}
    assert all(i.is_available and i.location == "HQ" and i.added_by == "tester" for i in created)

    assert await counts(session, sku.id) == {"total": 3, "available": 3, "reserved": 0, "broken": 0, "loaned": 0}
    inventory = await InventoryService.get_inventory(session, sku.id)
    assert inventory.total_value == Decimal("21.75")
    assert inventory.average_cost == Decimal("7.25")
    assert inventory.is_out_of_stock is False


async def test_receive_defaults_to_current_sku_cost(session: AsyncSession):
    sku = await make_sku(session, "R-2", unit_cost="9.5")
    created = await InstanceService.receive_stock(session, sku.id, 2, actor="tester")
    assert all(i.acquisition_cost == Decimal("9.5") for i in created)


async def test_receive_bundle_expands_into_components(session: AsyncSession):
    cable = await make_sku(session, "KIT-CABLE", unit_cost="2")
    adapter = await make_sku(session, "KIT-ADAPTER", unit_cost="5")
    kit = await make_sku(
        session,
        "KIT-1",
        is_bundle=True,
        bundle_items=[{"sku_id": cable.id, "quantity": 2}, {"sku_id": adapter.id, "quantity": 1}],
    )

    created = await InstanceService.receive_stock(session, kit.id, 3, actor="tester")

    cables = [i for i in created if i.sku_id == cable.id]
    adapters = [i for i in created if i.sku_id == adapter.id]
    assert len(cables) == 6 and all(i.acquisition_cost == Decimal("2") for i in cables)
    assert len(adapters) == 3 and all(i.acquisition_cost == Decimal("5") for i in adapters)
    assert await instance_count(session, kit.id) == 0
    assert await InventoryService.get_inventory(session, kit.id) is None
    assert (await counts(session, cable.id))["available"] == 6
    await assert_conserved(session, adapter.id)


async def test_receive_rejects_bad_input(session: AsyncSession):
    sku = await make_sku(session, "R-3")
    with pytest.raises(ValidationFailed):
        await InstanceService.receive_stock(session, sku.id, 0, actor="tester")
    with pytest.raises(ValidationFailed):
        await InstanceService.receive_stock(session, sku.id, 1, Decimal("-2"), actor="tester")
    with pytest.raises(NotFound):
        await InstanceService.receive_stock(session, uuid4(), 1, actor="tester")


async def test_negative_adjustment_removes_oldest_available(session: AsyncSession):
    sku = await make_sku(session, "ADJ-1", unit_cost="6")
    await receive(session, sku, 2, "5", on_day=0)
    newer = await receive(session, sku, 2, "7", on_day=5)

    result = await InstanceService.adjust_quantity(session, sku.id, -3, reason="shrinkage", actor="auditor")

    assert result["action"] == "decreased"
    assert result["instances_removed"] == 3
    assert result["total_value_removed"] == Decimal("17")
    remaining = await InstanceService.list_for_sku(session, sku.id)
    assert len(remaining) == 1 and remaining[0].id in {i.id for i in newer}
    assert await counts(session, sku.id) == {"total": 1, "available": 1, "reserved": 0, "broken": 0, "loaned": 0}


async def test_positive_adjustment_uses_current_cost(session: AsyncSession):
    sku = await make_sku(session, "ADJ-2", unit_cost="6")
    result = await InstanceService.adjust_quantity(session, sku.id, 2, actor="auditor")

    assert result["action"] == "increased"
    assert len(result["instances_created"]) == 2
    created = await InstanceService.list_for_sku(session, sku.id)
    assert all(i.location == "Inventory Adjustment" and i.acquisition_cost == Decimal("6") for i in created)
    await assert_conserved(session, sku.id)


async def test_adjustment_never_touches_held_instances(session: AsyncSession):
    sku = await make_sku(session, "ADJ-3")
    await receive(session, sku, 2, "5")
    tag = await empty_tag(session)
    await AllocationService.allocate_instances(session, tag.id, sku.id, quantity=1, actor="tester")

    with pytest.raises(InsufficientStock) as exc:
        await InstanceService.adjust_quantity(session, sku.id, -2, actor="auditor")
    assert exc.value.available == 1
    assert await counts(session, sku.id) == {"total": 2, "available": 1, "reserved": 1, "broken": 0, "loaned": 0}

    with pytest.raises(ValidationFailed):
        await InstanceService.adjust_quantity(session, sku.id, 0, actor="auditor")


async def test_update_instance_changes_metadata_only(session: AsyncSession):
    sku = await make_sku(session, "UPD-1")
    (instance,) = await receive(session, sku, 1, "3")

    await InstanceService.update_instance(session, instance.id, location=" Shelf B ", notes="dented box")
    assert instance.location == "Shelf B"
    assert instance.notes == "dented box"
    assert instance.acquisition_cost == Decimal("3")

    with pytest.raises(NotFound):
        await InstanceService.update_instance(session, uuid4(), location="nowhere")


async def test_cost_summary_and_breakdown_cover_available_instances(session: AsyncSession):
    sku = await make_sku(session, "COST-1")
    await receive(session, sku, 2, "5", on_day=0)
    await receive(session, sku, 1, "7", on_day=3)
    await receive(session, sku, 1, "9", on_day=4)
    tag = await empty_tag(session)
    await AllocationService.allocate_instances(session, tag.id, sku.id, quantity=1, method="cost_based", cost_order="highest", actor="tester")

    summary = await InstanceService.cost_summary(session, sku.id)
    assert summary["count"] == 3
    assert summary["total_value"] == Decimal("17")
    assert summary["lowest_cost"] == Decimal("5")
    assert summary["highest_cost"] == Decimal("7")
    assert summary["average_cost"].quantize(Decimal("0.01")) == Decimal("5.67")

    breakdown = await InstanceService.cost_breakdown(session, sku.id)
    assert [(line["cost"], line["count"]) for line in breakdown] == [(Decimal("5"), 2), (Decimal("7"), 1)]
