# tests/services/test_tag_service.py
from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers.catalog import counts, day, make_sku, receive

from tagtrack.core.errors import InvalidTagState, NotFound, TagNotFound, ValidationFailed
from tagtrack.models.tag import TagStatus, TagType
from tagtrack.services.fulfillment_service import FulfillmentService
from tagtrack.services.tag_service import TagService


async def test_create_tag_with_mixed_lines(session: AsyncSession):
    bolts = await make_sku(session, "TAG-BOLT")
    nuts = await make_sku(session, "TAG-NUT")
    await receive(session, bolts, 3, "2")
    picked = await receive(session, nuts, 2, "1.5")

    tag = await TagService.create_tag(
        session,
        "  Acme  ",
        TagType.RESERVED,
        [
            {"sku_id": bolts.id, "quantity": 2},
            {"sku_id": nuts.id, "instance_ids": [picked[1].id]},
        ],
        project_name="Fit-out",
        actor="tester",
    )

    assert tag.customer_name == "Acme"
    assert tag.status == TagStatus.ACTIVE.value
    assert tag.created_by == "tester"
    assert tag.line_for(bolts.id).selection_method == "fifo"
    assert tag.line_for(nuts.id).selection_method == "manual"
    assert tag.line_for(nuts.id).selected_instance_ids == [picked[1].id]

    summary = TagService.tag_summary(tag)
    assert summary["total_quantity"] == 3
    assert summary["total_value"] == Decimal("5.5")
    assert len(summary["lines"]) == 2


@pytest.mark.parametrize(
    "customer, lines",
    [
        ("", None),
        ("Acme", []),
    ],
)
async def test_create_tag_validation(session: AsyncSession, customer, lines):
    with pytest.raises(ValidationFailed):
        await TagService.create_tag(session, customer, TagType.RESERVED, lines, actor="tester")


async def test_create_tag_rejects_repeated_sku(session: AsyncSession):
    sku = await make_sku(session, "TAG-DUP")
    await receive(session, sku, 2, "1")
    with pytest.raises(ValidationFailed):
        await TagService.create_tag(
            session,
            "Acme",
            TagType.RESERVED,
            [{"sku_id": sku.id, "quantity": 1}, {"sku_id": sku.id, "quantity": 1}],
            actor="tester",
        )
    assert (await counts(session, sku.id))["reserved"] == 0


async def test_create_tag_unknown_sku(session: AsyncSession):
    with pytest.raises(NotFound):
        await TagService.create_tag(session, "Acme", TagType.RESERVED, [{"sku_id": uuid4(), "quantity": 1}], actor="tester")


async def test_list_tags_filters(session: AsyncSession):
    bolts = await make_sku(session, "LST-BOLT")
    nuts = await make_sku(session, "LST-NUT")
    await receive(session, bolts, 5, "1")
    await receive(session, nuts, 5, "1")

    acme = await TagService.create_tag(session, "Acme Corp", TagType.RESERVED, [{"sku_id": bolts.id, "quantity": 1}], actor="tester")
    await TagService.create_tag(session, "Globex", TagType.LOANED, [{"sku_id": nuts.id, "quantity": 1}], actor="tester")
    closed = await TagService.create_tag(session, "acme labs", TagType.RESERVED, [{"sku_id": nuts.id, "quantity": 1}], actor="tester")
    await FulfillmentService.cancel_tag(session, closed.id, "dropped", actor="tester")

    _, total = await TagService.list_tags(session)
    assert total == 3

    items, total = await TagService.list_tags(session, customer="acme")
    assert total == 2

    items, total = await TagService.list_tags(session, customer="acme", status=TagStatus.ACTIVE)
    assert [t.id for t in items] == [acme.id]

    items, total = await TagService.list_tags(session, tag_type=TagType.LOANED)
    assert [t.customer_name for t in items] == ["Globex"]

    items, total = await TagService.list_tags(session, sku_id=nuts.id)
    assert total == 2

    items, total = await TagService.list_tags(session, page=2, page_size=2)
    assert len(items) == 1 and total == 3


async def test_overdue_tags(session: AsyncSession):
    sku = await make_sku(session, "OVD-1")
    await receive(session, sku, 3, "1")
    late = await TagService.create_tag(
        session, "Late", TagType.LOANED, [{"sku_id": sku.id, "quantity": 1}], due_date=day(1), actor="tester"
    )
    await TagService.create_tag(
        session, "Early", TagType.LOANED, [{"sku_id": sku.id, "quantity": 1}], due_date=day(30), actor="tester"
    )
    await TagService.create_tag(session, "Open", TagType.LOANED, [{"sku_id": sku.id, "quantity": 1}], actor="tester")

    overdue = await TagService.get_overdue_tags(session, now=day(10))
    assert [t.id for t in overdue] == [late.id]


async def test_update_tag_metadata(session: AsyncSession):
    sku = await make_sku(session, "UPD-1")
    await receive(session, sku, 1, "1")
    tag = await TagService.create_tag(session, "Acme", TagType.RESERVED, [{"sku_id": sku.id, "quantity": 1}], actor="tester")

    tag = await TagService.update_tag(session, tag.id, project_name=" Phase 2 ", notes="call first", actor="editor")
    assert tag.project_name == "Phase 2"
    assert tag.notes == "call first"
    assert tag.last_updated_by == "editor"
    assert tag.total_quantity == 1

    with pytest.raises(ValidationFailed):
        await TagService.update_tag(session, tag.id, customer_name="  ", actor="editor")

    await FulfillmentService.fulfill_tag(session, tag.id, actor="editor")
    with pytest.raises(InvalidTagState):
        await TagService.update_tag(session, tag.id, notes="too late", actor="editor")

    with pytest.raises(TagNotFound):
        await TagService.update_tag(session, uuid4(), notes="x", actor="editor")
