"""TagTrack IMS — FulfillmentService: fulfillment, cancellation and tool returns."""
import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.core.errors import InvalidTagState, NotInTag, ValidationFailed
from tagtrack.models.category import CategoryType
from tagtrack.models.instance import Instance
from tagtrack.models.tag import (
    FulfillmentMode,
    SelectionMethod,
    Tag,
    TagSkuItem,
    TagStatus,
    TagType,
    ToolCondition,
)
from tagtrack.services.allocation_service import AllocationService, lock_tag
from tagtrack.services.audit_service import (
    ACTION_TAG_CANCELLED,
    ACTION_TAG_FULFILLED,
    ACTION_TOOLS_RETURNED,
    log_audit,
)
from tagtrack.services.inventory_service import InventoryService
from tagtrack.services.sku_service import SKUService

logger = logging.getLogger(__name__)

CONDITION_TAG_TYPE = {
    ToolCondition.NEEDS_MAINTENANCE: TagType.RESERVED,
    ToolCondition.BROKEN: TagType.BROKEN,
}


def _append_note(existing: str, note: str) -> str:
    return "\n".join(part for part in (existing, note) if part)


def _resolve(tag: Tag, resolutions: list[dict] | None) -> list[tuple[TagSkuItem, list[Instance]]]:
    """
    Turn fulfillment resolutions into (line, instances) pairs, validating every
    reference before anything is written. `None` selects everything the tag holds.
    """
    if resolutions is None:
        return [(line, list(line.instances)) for line in tag.sku_items if line.instances]

    plan: list[tuple[TagSkuItem, list[Instance]]] = []
    seen: set[UUID] = set()
    for index, resolution in enumerate(resolutions):
        sku_id = resolution["sku_id"]
        if sku_id in seen:
            raise ValidationFailed(f"resolutions[{index}] repeats SKU {sku_id}")
        seen.add(sku_id)

        line = tag.line_for(sku_id)
        if line is None:
            raise NotInTag(f"SKU {sku_id} is not on tag {tag.id}", {"tag_id": str(tag.id), "sku_id": str(sku_id)})

        instance_ids = resolution.get("instance_ids")
        quantity = resolution.get("quantity")
        if instance_ids is not None:
            if not instance_ids:
                raise ValidationFailed(f"resolutions[{index}].instance_ids must not be empty")
            if len(set(instance_ids)) != len(instance_ids):
                raise ValidationFailed(f"resolutions[{index}] lists an instance more than once")
            if quantity is not None and quantity != len(instance_ids):
                raise ValidationFailed(f"resolutions[{index}].quantity does not match instance_ids")
            held = {i.id: i for i in line.instances}
            missing = [str(i) for i in instance_ids if i not in held]
            if missing:
                raise NotInTag(
                    f"{len(missing)} instance(s) are not held by tag {tag.id} for SKU {sku_id}",
                    {"tag_id": str(tag.id), "sku_id": str(sku_id), "instance_ids": missing},
                )
            chosen = [held[i] for i in instance_ids]
        elif quantity is not None:
            if quantity < 1:
                raise ValidationFailed(f"resolutions[{index}].quantity must be a positive integer")
            if quantity > line.quantity:
                raise NotInTag(
                    f"Tag {tag.id} holds {line.quantity} instance(s) of SKU {sku_id}, not {quantity}",
                    {"tag_id": str(tag.id), "sku_id": str(sku_id), "requested": quantity, "held": line.quantity},
                )
            chosen = sorted(line.instances, key=lambda i: i.fifo_key)[:quantity]
        else:
            chosen = list(line.instances)
        plan.append((line, chosen))
    return plan


class FulfillmentService:
    """Moves held instances out of a tag: consumed, released back to stock, or re-tagged by condition."""

    @staticmethod
    async def fulfill_tag(
        db: AsyncSession,
        tag_id: UUID,
        resolutions: list[dict] | None = None,
        *,
        mode: FulfillmentMode | str = FulfillmentMode.CONSUME,
        actor: str = "System",
    ) -> Tag:
        """
        Resolve some or all held instances.

        consume: instances leave the system (total and the held counter drop, available is unchanged).
        release: instances return to available stock.
        The tag becomes fulfilled once no line holds anything.
        """
        mode = FulfillmentMode(mode)
        tag = await lock_tag(db, tag_id)
        if not tag.is_active:
            raise InvalidTagState(tag.id, tag.status, "fulfill")

        plan = _resolve(tag, resolutions)
        inventories = await InventoryService.lock_many(db, [line.sku_id for line, _ in plan], actor)

        resolved = 0
        for line, chosen in plan:
            if not chosen:
                continue
            inventory = inventories[line.sku_id]
            count = len(chosen)
            if mode is FulfillmentMode.CONSUME:
                for instance in chosen:
                    line.instances.remove(instance)
                    await db.delete(instance)
                await db.flush()
                await InventoryService.apply_movement(
                    db, inventory, total=-count, actor=actor, **{tag.type.counter: -count}
                )
            else:
                for instance in chosen:
                    instance.release(line)
                await db.flush()
                await InventoryService.move_held(db, inventory, tag.type, count, to_available=True, actor=actor)
            resolved += count

        tag.last_updated_by = actor
        if tag.is_fully_fulfilled:
            tag.status = TagStatus.FULFILLED.value
            tag.fulfilled_date = datetime.now(timezone.utc)
            tag.fulfilled_by = actor
        await db.flush()

        logger.info("Fulfilled %d instance(s) on tag %s (%s, status=%s)", resolved, tag.id, mode.value, tag.status)
        log_audit(
            actor,
            ACTION_TAG_FULFILLED,
            "tag",
            tag.id,
            {"mode": mode.value, "quantity": resolved, "status": tag.status},
        )
        return tag

    @staticmethod
    async def cancel_tag(db: AsyncSession, tag_id: UUID, reason: str = "", *, actor: str = "System") -> Tag:
        """Release every held instance back to available stock; instances are never deleted."""
        tag = await lock_tag(db, tag_id)
        if not tag.is_active:
            raise InvalidTagState(tag.id, tag.status, "cancel")

        lines = [line for line in tag.sku_items if line.instances]
        inventories = await InventoryService.lock_many(db, [line.sku_id for line in lines], actor)

        released = 0
        for line in lines:
            count = len(line.instances)
            for instance in list(line.instances):
                instance.release(line)
            await db.flush()
            await InventoryService.move_held(db, inventories[line.sku_id], tag.type, count, to_available=True, actor=actor)
            released += count

        now = datetime.now(timezone.utc)
        tag.status = TagStatus.CANCELLED.value
        tag.cancelled_date = now
        tag.cancelled_by = actor
        tag.cancellation_reason = reason
        tag.notes = _append_note(tag.notes, f"Cancelled: {reason}")
        tag.last_updated_by = actor
        await db.flush()

        logger.info("Cancelled tag %s, released %d instance(s)", tag.id, released)
        log_audit(actor, ACTION_TAG_CANCELLED, "tag", tag.id, {"reason": reason, "released": released})
        return tag

    @staticmethod
    async def return_tools(
        db: AsyncSession,
        tag_id: UUID,
        resolutions: list[dict] | None = None,
        *,
        condition: ToolCondition | str = ToolCondition.FUNCTIONAL,
        notes: str = "",
        actor: str = "System",
    ) -> tuple[Tag, Tag | None]:
        """
        Return loaned tools. Functional tools go back to available stock; the rest are
        released and immediately re-held by a new condition tag in the same transaction.
        """
        condition = ToolCondition(condition)
        tag = await lock_tag(db, tag_id)
        if not tag.is_active:
            raise InvalidTagState(tag.id, tag.status, "return tools on")
        for line in tag.sku_items:
            if await SKUService.category_type_of(db, line.sku_id) != CategoryType.TOOL.value:
                raise ValidationFailed(
                    f"SKU {line.sku_id} on tag {tag.id} is not a tool", {"tag_id": str(tag.id), "sku_id": str(line.sku_id)}
                )

        plan = _resolve(tag, resolutions)
        returned = {line.sku_id: [i.id for i in chosen] for line, chosen in plan if chosen}
        if notes:
            tag.notes = _append_note(tag.notes, f"Returned ({condition.value}): {notes}")
            await db.flush()

        tag = await FulfillmentService.fulfill_tag(
            db,
            tag.id,
            [{"sku_id": sku_id, "instance_ids": ids} for sku_id, ids in returned.items()],
            mode=FulfillmentMode.RELEASE,
            actor=actor,
        )

        condition_tag = None
        if condition is not ToolCondition.FUNCTIONAL and returned:
            condition_tag = Tag(
                customer_name=f"Maintenance - {tag.customer_name}",
                project_name=f"Tool condition: {condition.value}",
                tag_type=CONDITION_TAG_TYPE[condition].value,
                notes=_append_note(f"Returned from tag {tag.id}", notes),
                created_by=actor,
                last_updated_by=actor,
                sku_items=[],
            )
            db.add(condition_tag)
            await db.flush()
            for sku_id, ids in sorted(returned.items(), key=lambda item: str(item[0])):
                condition_tag = await AllocationService.allocate_instances(
                    db,
                    condition_tag.id,
                    sku_id,
                    instance_ids=ids,
                    method=SelectionMethod.MANUAL,
                    notes=f"Tool returned as {condition.value}",
                    actor=actor,
                )

        logger.info(
            "Returned %d tool(s) from tag %s as %s",
            sum(len(ids) for ids in returned.values()),
            tag.id,
            condition.value,
        )
        log_audit(
            actor,
            ACTION_TOOLS_RETURNED,
            "tag",
            tag.id,
            {
                "condition": condition.value,
                "quantity": sum(len(ids) for ids in returned.values()),
                "condition_tag_id": str(condition_tag.id) if condition_tag else None,
            },
        )
        return tag, condition_tag
