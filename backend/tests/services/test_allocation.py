# tests/services/test_allocation.py
from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers.catalog import assert_conserved, counts, empty_tag, make_sku, receive

from tagtrack.core.errors import (
    InsufficientStock,
    InvalidInstanceSelection,
    InvalidTagState,
    TagNotFound,
    ValidationFailed,
)
from tagtrack.models.tag import SelectionMethod, TagType
from tagtrack.services.allocation_service import AllocationService
from tagtrack.services.fulfillment_service import FulfillmentService


async def test_fifo_takes_oldest_instances_first(session: AsyncSession):
    sku = await make_sku(session, "FIFO-1")
    old = await receive(session, sku, 2, "10", on_day=0)
    mid = await receive(session, sku, 2, "10", on_day=5)
    new = await receive(session, sku, 2, "10", on_day=9)
    tag = await empty_tag(session)

    await AllocationService.allocate_instances(session, tag.id, sku.id, quantity=3, method="fifo", actor="tester")

    line = tag.line_for(sku.id)
    held = set(line.selected_instance_ids)
    assert line.quantity == 3
    assert line.selection_method == SelectionMethod.FIFO.value
    assert {i.id for i in old} <= held
    assert len(held & {i.id for i in mid}) == 1
    assert not held & {i.id for i in new}
    assert await counts(session, sku.id) == {"total": 6, "available": 3, "reserved": 3, "broken": 0, "loaned": 0}


async def test_cost_based_lowest_and_highest(session: AsyncSession):
    sku = await make_sku(session, "COST-SEL")
    await receive(session, sku, 1, "12", on_day=0)
    late_cheap = await receive(session, sku, 1, "8", on_day=3)
    early_cheap = await receive(session, sku, 1, "8", on_day=1)
    await receive(session, sku, 1, "10", on_day=2)

    cheap = await empty_tag(session)
    await AllocationService.allocate_instances(
        session, cheap.id, sku.id, quantity=1, method="cost_based", cost_order="lowest", actor="tester"
    )
    # equal cost: older acquisition wins
    assert cheap.line_for(sku.id).selected_instance_ids == [early_cheap[0].id]

    await AllocationService.allocate_instances(
        session, cheap.id, sku.id, quantity=2, method="cost_based", cost_order="lowest", actor="tester"
    )
    costs = sorted(i.acquisition_cost for i in cheap.line_for(sku.id).instances)
    assert costs == [Decimal("8"), Decimal("8"), Decimal("10")]
    assert late_cheap[0].id in cheap.line_for(sku.id).selected_instance_ids

    dear = await empty_tag(session)
    await AllocationService.allocate_instances(
        session, dear.id, sku.id, quantity=1, method="cost_based", cost_order="highest", actor="tester"
    )
    assert [i.acquisition_cost for i in dear.line_for(sku.id).instances] == [Decimal("12")]
    await assert_conserved(session, sku.id)


async def test_insufficient_stock_allocates_nothing(session: AsyncSession):
    sku = await make_sku(session, "SHORT-1")
    await receive(session, sku, 2, "5")
    tag = await empty_tag(session)

    with pytest.raises(InsufficientStock) as exc:
        await AllocationService.allocate_instances(session, tag.id, sku.id, quantity=3, actor="tester")

    assert exc.value.requested == 3
    assert exc.value.available == 2
    assert tag.line_for(sku.id) is None
    assert await counts(session, sku.id) == {"total": 2, "available": 2, "reserved": 0, "broken": 0, "loaned": 0}


async def test_no_instance_is_held_by_two_tags(session: AsyncSession):
    sku = await make_sku(session, "DOUBLE-1")
    await receive(session, sku, 3, "5")
    first = await empty_tag(session, customer="First")
    second = await empty_tag(session, customer="Second")

    await AllocationService.allocate_instances(session, first.id, sku.id, quantity=2, actor="tester")
    with pytest.raises(InsufficientStock):
        await AllocationService.allocate_instances(session, second.id, sku.id, quantity=2, actor="tester")
    await AllocationService.allocate_instances(session, second.id, sku.id, quantity=1, actor="tester")

    a = set(first.line_for(sku.id).selected_instance_ids)
    b = set(second.line_for(sku.id).selected_instance_ids)
    assert len(a) == 2 and len(b) == 1 and not a & b
    assert (await counts(session, sku.id))["available"] == 0
    await assert_conserved(session, sku.id)


async def test_manual_selection_is_validated(session: AsyncSession):
    sku = await make_sku(session, "MAN-A")
    other = await make_sku(session, "MAN-B")
    mine = await receive(session, sku, 2, "5")
    theirs = await receive(session, other, 1, "5")
    tag = await empty_tag(session)

    for bad in ([uuid4()], [theirs[0].id], [mine[0].id, mine[0].id]):
        with pytest.raises(InvalidInstanceSelection):
            await AllocationService.allocate_instances(
                session, tag.id, sku.id, instance_ids=bad, method="manual", actor="tester"
            )
    assert tag.line_for(sku.id) is None

    await AllocationService.allocate_instances(
        session, tag.id, sku.id, instance_ids=[mine[1].id], method="manual", actor="tester"
    )
    assert tag.line_for(sku.id).selected_instance_ids == [mine[1].id]
    assert mine[1].tag_id == tag.id

    rival = await empty_tag(session, customer="Rival")
    with pytest.raises(InvalidInstanceSelection):
        await AllocationService.allocate_instances(
            session, rival.id, sku.id, instance_ids=[mine[1].id], method="manual", actor="tester"
        )
    await assert_conserved(session, sku.id)


async def test_method_and_arguments_must_agree(session: AsyncSession):
    sku = await make_sku(session, "ARGS-1")
    (instance,) = await receive(session, sku, 1, "5")
    tag = await empty_tag(session)

    with pytest.raises(ValidationFailed):
        await AllocationService.allocate_instances(session, tag.id, sku.id, quantity=1, method="manual")
    with pytest.raises(ValidationFailed):
        await AllocationService.allocate_instances(session, tag.id, sku.id, instance_ids=[instance.id], method="fifo")
    with pytest.raises(ValidationFailed):
        await AllocationService.allocate_instances(session, tag.id, sku.id, method="fifo")
    with pytest.raises(ValidationFailed):
        await AllocationService.allocate_instances(session, tag.id, sku.id, quantity=0)


async def test_allocation_requires_an_active_tag(session: AsyncSession):
    sku = await make_sku(session, "STATE-1")
    await receive(session, sku, 2, "5")

    with pytest.raises(TagNotFound):
        await AllocationService.allocate_instances(session, uuid4(), sku.id, quantity=1)

    tag = await empty_tag(session)
    await FulfillmentService.cancel_tag(session, tag.id, "not needed", actor="tester")
    with pytest.raises(InvalidTagState):
        await AllocationService.allocate_instances(session, tag.id, sku.id, quantity=1)
    assert (await counts(session, sku.id))["available"] == 2


@pytest.mark.parametrize(
    "tag_type, counter",
    [
        (TagType.RESERVED, "reserved"),
        (TagType.STOCK, "reserved"),
        (TagType.LOANED, "loaned"),
        (TagType.BROKEN, "broken"),
        (TagType.IMPERFECT, "broken"),
    ],
)
async def test_held_counter_follows_tag_type(session: AsyncSession, tag_type: TagType, counter: str):
    sku = await make_sku(session, f"TYPE-{tag_type.value}")
    await receive(session, sku, 3, "5")
    tag = await empty_tag(session, tag_type)

    await AllocationService.allocate_instances(session, tag.id, sku.id, quantity=2, actor="tester")

    c = await counts(session, sku.id)
    assert c[counter] == 2
    assert c["available"] == 1
    assert sum(c[k] for k in ("reserved", "broken", "loaned")) == 2
    await assert_conserved(session, sku.id)
