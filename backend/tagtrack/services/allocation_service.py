"""TagTrack IMS — AllocationService: claims available instances for a tag line."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tagtrack.core.errors import (
    InsufficientStock,
    InvalidInstanceSelection,
    InvalidTagState,
    TagNotFound,
    ValidationFailed,
)
from tagtrack.models.instance import Instance
from tagtrack.models.tag import CostOrder, SelectionMethod, Tag, TagSkuItem
from tagtrack.services.audit_service import ACTION_TAG_ALLOCATED, log_audit
from tagtrack.services.inventory_service import InventoryService
from tagtrack.services.sku_service import SKUService

logger = logging.getLogger(__name__)


def tag_options():
    return (selectinload(Tag.sku_items).selectinload(TagSkuItem.instances),)


async def lock_tag(db: AsyncSession, tag_id: UUID) -> Tag:
    """
    Load a tag with its lines and held instances and lock its row. Tag rows are
    always locked before inventory rows.
    """
    result = await db.execute(
        select(Tag)
        .where(Tag.id == tag_id)
        .options(*tag_options())
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    tag = result.scalar_one_or_none()
    if not tag:
        raise TagNotFound(tag_id)
    return tag


class AllocationService:

    @staticmethod
    async def allocate_instances(
        db: AsyncSession,
        tag_id: UUID,
        sku_id: UUID,
        *,
        quantity: int | None = None,
        instance_ids: list[UUID] | None = None,
        method: SelectionMethod | str = SelectionMethod.FIFO,
        cost_order: CostOrder | str = CostOrder.LOWEST,
        notes: str = "",
        actor: str = "System",
    ) -> Tag:
        """
        Hold instances of `sku_id` under the tag.

        fifo / cost_based pick `quantity` available instances (oldest first, or by
        acquisition cost in `cost_order`); manual claims exactly `instance_ids`.
        Every check runs before the first write, so a failure leaves nothing allocated.
        """
        method = SelectionMethod(method)
        cost_order = CostOrder(cost_order)
        if (quantity is None) == (instance_ids is None):
            raise ValidationFailed("Provide exactly one of quantity or instance_ids")
        if method is SelectionMethod.MANUAL and instance_ids is None:
            raise ValidationFailed("Manual selection requires instance_ids")
        if method is not SelectionMethod.MANUAL and quantity is None:
            raise ValidationFailed(f"{method.value} selection requires a quantity")
        if quantity is not None and quantity < 1:
            raise ValidationFailed("Quantity must be a positive integer", {"quantity": quantity})
        if instance_ids is not None and not instance_ids:
            raise ValidationFailed("instance_ids must not be empty")

        tag = await lock_tag(db, tag_id)
        if not tag.is_active:
            raise InvalidTagState(tag.id, tag.status, "allocate to")
        sku = await SKUService.require(db, sku_id)
        if sku.is_bundle:
            raise ValidationFailed(
                f"{sku.sku_code} is a bundle; allocate its component SKUs", {"sku_id": str(sku_id)}
            )

        inventory = await InventoryService.lock(db, sku_id, actor)
        if method is SelectionMethod.MANUAL:
            chosen = await AllocationService._select_manual(db, sku_id, instance_ids)
        else:
            chosen = await AllocationService._select_ranked(db, sku_id, quantity, method, cost_order)

        line = tag.line_for(sku_id)
        if line is None:
            line = TagSkuItem(tag_id=tag.id, sku_id=sku_id, selection_method=method.value, notes=notes, instances=[])
            tag.sku_items.append(line)
        else:
            line.selection_method = method.value
            if notes:
                line.notes = notes

        for instance in chosen:
            instance.hold(line)
        tag.last_updated_by = actor
        await db.flush()
        await InventoryService.move_held(db, inventory, tag.type, len(chosen), to_available=False, actor=actor)

        logger.info(
            "Allocated %d instance(s) of %s to tag %s (%s)", len(chosen), sku.sku_code, tag.id, method.value
        )
        log_audit(
            actor,
            ACTION_TAG_ALLOCATED,
            "tag",
            tag.id,
            {
                "sku_id": str(sku_id),
                "quantity": len(chosen),
                "method": method.value,
                "instance_ids": [str(i.id) for i in chosen],
            },
        )
        return tag

    @staticmethod
    async def _select_ranked(
        db: AsyncSession,
        sku_id: UUID,
        quantity: int,
        method: SelectionMethod,
        cost_order: CostOrder,
    ) -> list[Instance]:
        if method is SelectionMethod.FIFO:
            ordering = (Instance.acquisition_date, Instance.created_at, Instance.id)
        elif cost_order is CostOrder.HIGHEST:
            ordering = (Instance.acquisition_cost.desc(), Instance.acquisition_date, Instance.id)
        else:
            ordering = (Instance.acquisition_cost.asc(), Instance.acquisition_date, Instance.id)

        result = await db.execute(
            select(Instance)
            .where(Instance.sku_id == sku_id, Instance.tag_id.is_(None))
            .order_by(*ordering)
            .limit(quantity)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        chosen = list(result.scalars().all())
        if len(chosen) < quantity:
            raise InsufficientStock(sku_id, quantity, len(chosen))
        return chosen

    @staticmethod
    async def _select_manual(db: AsyncSession, sku_id: UUID, instance_ids: list[UUID]) -> list[Instance]:
        if len(set(instance_ids)) != len(instance_ids):
            duplicates = sorted({str(i) for i in instance_ids if instance_ids.count(i) > 1})
            raise InvalidInstanceSelection("Instance ids are listed more than once", {"instance_ids": duplicates})

        result = await db.execute(
            select(Instance)
            .where(Instance.id.in_(instance_ids))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        found = {i.id: i for i in result.scalars().all()}

        missing = [str(i) for i in instance_ids if i not in found]
        if missing:
            raise InvalidInstanceSelection(f"{len(missing)} instance(s) not found", {"instance_ids": missing})
        foreign = [str(i) for i in instance_ids if found[i].sku_id != sku_id]
        if foreign:
            raise InvalidInstanceSelection(
                f"{len(foreign)} instance(s) do not belong to SKU {sku_id}",
                {"instance_ids": foreign, "sku_id": str(sku_id)},
            )
        held = [str(i) for i in instance_ids if not found[i].is_available]
        if held:
            raise InvalidInstanceSelection(f"{len(held)} instance(s) are already held", {"instance_ids": held})
        return [found[i] for i in instance_ids]

