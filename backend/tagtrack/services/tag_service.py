"""TagTrack IMS — TagService: tag creation, tool checkout and tag queries."""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.core.errors import InvalidTagState, TagNotFound, ValidationFailed
from tagtrack.models.category import CategoryType
from tagtrack.models.tag import CostOrder, SelectionMethod, Tag, TagSkuItem, TagStatus, TagType
from tagtrack.services.allocation_service import AllocationService, tag_options
from tagtrack.services.audit_service import ACTION_TAG_CREATED, log_audit
from tagtrack.services.sku_service import SKUService

logger = logging.getLogger(__name__)


class TagService:

    @staticmethod
    async def get_by_id(db: AsyncSession, id: UUID) -> Tag | None:
        result = await db.execute(select(Tag).where(Tag.id == id).options(*tag_options()))
        return result.scalar_one_or_none()

    @staticmethod
    async def require(db: AsyncSession, id: UUID) -> Tag:
        tag = await TagService.get_by_id(db, id)
        if not tag:
            raise TagNotFound(id)
        return tag

    @staticmethod
    async def list_tags(
        db: AsyncSession,
        *,
        status: TagStatus | None = None,
        tag_type: TagType | None = None,
        customer: str | None = None,
        sku_id: UUID | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Tag], int]:
        filters = []
        if status is not None:
            filters.append(Tag.status == status.value)
        if tag_type is not None:
            filters.append(Tag.tag_type == tag_type.value)
        if customer:
            filters.append(Tag.customer_name.ilike(f"%{customer}%"))
        if sku_id:
            filters.append(Tag.id.in_(select(TagSkuItem.tag_id).where(TagSkuItem.sku_id == sku_id)))

        total = (await db.execute(select(func.count(Tag.id)).where(*filters))).scalar_one()
        result = await db.execute(
            select(Tag)
            .where(*filters)
            .options(*tag_options())
            .order_by(Tag.created_at.desc(), Tag.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def get_overdue_tags(db: AsyncSession, now: datetime | None = None) -> list[Tag]:
        now = now or datetime.now(timezone.utc)
        result = await db.execute(
            select(Tag)
            .where(Tag.status == TagStatus.ACTIVE.value, Tag.due_date.is_not(None), Tag.due_date < now)
            .options(*tag_options())
            .order_by(Tag.due_date)
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_tag(
        db: AsyncSession,
        customer_name: str,
        tag_type: TagType | str = TagType.RESERVED,
        sku_items: list[dict] | None = None,
        *,
        project_name: str = "",
        notes: str = "",
        due_date: datetime | None = None,
        actor: str = "System",
    ) -> Tag:
        """
        Create an active tag and allocate each line. Lines are dicts with `sku_id` and
        either `quantity` or `instance_ids`, plus optional `selection_method`,
        `cost_order` and `notes`. A failing line aborts the whole tag.
        """
        tag_type = TagType(tag_type)
        if not customer_name or not customer_name.strip():
            raise ValidationFailed("customer_name is required")
        if not sku_items:
            raise ValidationFailed("A tag needs at least one SKU line")
        sku_ids = [item["sku_id"] for item in sku_items]
        if len(set(sku_ids)) != len(sku_ids):
            raise ValidationFailed("Each SKU may appear only once per tag")

        tag = Tag(
            customer_name=customer_name.strip(),
            project_name=project_name.strip(),
            tag_type=tag_type.value,
            notes=notes.strip(),
            due_date=due_date,
            created_by=actor,
            last_updated_by=actor,
            sku_items=[],
        )
        db.add(tag)
        await db.flush()

        for item in sku_items:
            instance_ids = item.get("instance_ids")
            default_method = SelectionMethod.MANUAL if instance_ids else SelectionMethod.FIFO
            tag = await AllocationService.allocate_instances(
                db,
                tag.id,
                item["sku_id"],
                quantity=None if instance_ids else item.get("quantity"),
                instance_ids=instance_ids or None,
                method=item.get("selection_method") or default_method,
                cost_order=item.get("cost_order") or CostOrder.LOWEST,
                notes=item.get("notes", ""),
                actor=actor,
            )

        logger.info("Created %s tag %s for %s with %d line(s)", tag_type.value, tag.id, tag.customer_name, len(sku_items))
        log_audit(
            actor,
            ACTION_TAG_CREATED,
            "tag",
            tag.id,
            {"customer_name": tag.customer_name, "tag_type": tag.tag_type, "total_quantity": tag.total_quantity},
        )
        return tag

    @staticmethod
    async def checkout_tools(
        db: AsyncSession,
        customer_name: str,
        sku_items: list[dict],
        *,
        tag_type: TagType | str = TagType.LOANED,
        project_name: str = "",
        notes: str = "",
        due_date: datetime | None = None,
        actor: str = "System",
    ) -> Tag:
        """create_tag restricted to SKUs in tool categories."""
        for item in sku_items or []:
            if await SKUService.category_type_of(db, item["sku_id"]) != CategoryType.TOOL.value:
                await SKUService.require(db, item["sku_id"])
                raise ValidationFailed(f"SKU {item['sku_id']} is not a tool", {"sku_id": str(item["sku_id"])})
        return await TagService.create_tag(
            db,
            customer_name,
            tag_type,
            sku_items,
            project_name=project_name,
            notes=notes,
            due_date=due_date,
            actor=actor,
        )

    @staticmethod
    async def update_tag(
        db: AsyncSession,
        id: UUID,
        *,
        customer_name: str | None = None,
        project_name: str | None = None,
        notes: str | None = None,
        due_date: datetime | None = None,
        actor: str = "System",
    ) -> Tag:
        """Metadata only; lines and instances change through allocation and fulfillment."""
        tag = await TagService.require(db, id)
        if not tag.is_active:
            raise InvalidTagState(tag.id, tag.status, "update")
        if customer_name is not None:
            if not customer_name.strip():
                raise ValidationFailed("customer_name cannot be blank")
            tag.customer_name = customer_name.strip()
        if project_name is not None:
            tag.project_name = project_name.strip()
        if notes is not None:
            tag.notes = notes.strip()
        if due_date is not None:
            tag.due_date = due_date
        tag.last_updated_by = actor
        await db.flush()
        return tag

    @staticmethod
    def tag_summary(tag: Tag) -> dict:
        lines = [
            {
                "sku_id": line.sku_id,
                "quantity": line.quantity,
                "value": line.value,
                "selection_method": line.selection_method,
            }
            for line in tag.sku_items
        ]
        return {
            "tag_id": tag.id,
            "status": tag.status,
            "tag_type": tag.tag_type,
            "total_quantity": tag.total_quantity,
            "total_value": sum((line["value"] for line in lines), Decimal("0")),
            "lines": lines,
        }
