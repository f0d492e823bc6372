"""TagTrack IMS — InstanceService: stock receipt, quantity adjustment and instance queries."""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.config import get_settings
from tagtrack.core.errors import InsufficientStock, NotFound, ValidationFailed
from tagtrack.models.instance import Instance
from tagtrack.services.audit_service import ACTION_STOCK_ADJUSTED, ACTION_STOCK_RECEIVED, log_audit
from tagtrack.services.inventory_service import InventoryService
from tagtrack.services.sku_service import SKUService

logger = logging.getLogger(__name__)


class InstanceService:
    """Creates and retires available instances. Held instances are only touched by the allocation engine."""

    @staticmethod
    async def get_by_id(db: AsyncSession, id: UUID) -> Instance | None:
        result = await db.execute(select(Instance).where(Instance.id == id))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_sku(db: AsyncSession, sku_id: UUID, *, available_only: bool = False) -> list[Instance]:
        q = select(Instance).where(Instance.sku_id == sku_id)
        if available_only:
            q = q.where(Instance.tag_id.is_(None))
        q = q.order_by(Instance.acquisition_date, Instance.id)
        result = await db.execute(q)
        return list(result.scalars().all())

    @staticmethod
    async def list_for_tag(db: AsyncSession, tag_id: UUID) -> list[Instance]:
        result = await db.execute(
            select(Instance).where(Instance.tag_id == tag_id).order_by(Instance.acquisition_date, Instance.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def receive_stock(
        db: AsyncSession,
        sku_id: UUID,
        quantity: int,
        unit_cost: Decimal | None = None,
        *,
        location: str | None = None,
        supplier: str = "",
        reference_number: str = "",
        notes: str = "",
        acquisition_date: datetime | None = None,
        actor: str = "System",
    ) -> list[Instance]:
        """
        Create `quantity` unattached instances sharing one acquisition date and a frozen cost.
        A bundle SKU is expanded: each component receives quantity x line quantity instances
        at the component's current unit cost, and no bundle instances are created.
        """
        if quantity < 1:
            raise ValidationFailed("Quantity must be a positive integer", {"quantity": quantity})
        if unit_cost is not None and unit_cost < 0:
            raise ValidationFailed("Unit cost must be non-negative", {"unit_cost": str(unit_cost)})

        sku = await SKUService.require(db, sku_id)
        acquired = acquisition_date or datetime.now(timezone.utc)
        location = location or get_settings().DEFAULT_LOCATION

        if sku.is_bundle:
            plan = [(line.component_sku_id, quantity * line.quantity, None) for line in sku.bundle_items]
        else:
            plan = [(sku.id, quantity, unit_cost if unit_cost is not None else sku.unit_cost)]

        created: list[Instance] = []
        for target_id, count, cost in sorted(plan, key=lambda p: str(p[0])):
            if cost is None:
                cost = (await SKUService.require(db, target_id)).unit_cost
            inventory = await InventoryService.lock(db, target_id, actor)
            batch = [
                Instance(
                    sku_id=target_id,
                    acquisition_date=acquired,
                    acquisition_cost=cost,
                    location=location,
                    supplier=supplier,
                    reference_number=reference_number,
                    notes=notes,
                    added_by=actor,
                )
                for _ in range(count)
            ]
            db.add_all(batch)
            await db.flush()
            await InventoryService.apply_movement(db, inventory, total=count, available=count, actor=actor)
            created.extend(batch)

        logger.info("Received %d instance(s) for SKU %s", len(created), sku.sku_code)
        log_audit(
            actor,
            ACTION_STOCK_RECEIVED,
            "sku",
            sku.id,
            {
                "quantity": quantity,
                "instances_created": len(created),
                "is_bundle": sku.is_bundle,
                "reference_number": reference_number,
            },
        )
        return created

    @staticmethod
    async def adjust_quantity(
        db: AsyncSession,
        sku_id: UUID,
        adjustment: int,
        *,
        reason: str = "",
        actor: str = "System",
    ) -> dict:
        """
        Positive: create instances at the SKU's current cost.
        Negative: delete that many available instances, oldest first. Held instances are never touched.
        """
        if adjustment == 0:
            raise ValidationFailed("Adjustment cannot be zero")
        sku = await SKUService.require(db, sku_id)
        if sku.is_bundle:
            raise ValidationFailed("Adjust component SKUs, not the bundle", {"sku_id": str(sku_id)})

        if adjustment > 0:
            created = await InstanceService.receive_stock(
                db,
                sku_id,
                adjustment,
                sku.unit_cost,
                location=get_settings().ADJUSTMENT_LOCATION,
                notes=reason or f"Quantity increased by {adjustment} via adjustment",
                actor=actor,
            )
            result = {
                "action": "increased",
                "quantity": adjustment,
                "instances_created": [i.id for i in created],
                "cost_per_unit": sku.unit_cost,
            }
        else:
            to_remove = -adjustment
            inventory = await InventoryService.lock(db, sku_id, actor)
            rows = await db.execute(
                select(Instance)
                .where(Instance.sku_id == sku_id, Instance.tag_id.is_(None))
                .order_by(Instance.acquisition_date, Instance.id)
                .limit(to_remove)
                .with_for_update()
            )
            victims = list(rows.scalars().all())
            if len(victims) < to_remove:
                available = await InstanceService.count_available(db, sku_id)
                raise InsufficientStock(sku_id, to_remove, available)

            value_removed = sum((i.acquisition_cost for i in victims), Decimal("0"))
            for instance in victims:
                await db.delete(instance)
            await db.flush()
            await InventoryService.apply_movement(db, inventory, total=-to_remove, available=-to_remove, actor=actor)
            result = {
                "action": "decreased",
                "quantity": to_remove,
                "instances_removed": to_remove,
                "total_value_removed": value_removed,
                "average_cost_removed": value_removed / to_remove,
            }

        logger.info("Adjusted SKU %s by %+d", sku.sku_code, adjustment)
        log_audit(
            actor,
            ACTION_STOCK_ADJUSTED,
            "sku",
            sku.id,
            {"adjustment": adjustment, "reason": reason},
        )
        return result

    @staticmethod
    async def update_instance(
        db: AsyncSession,
        id: UUID,
        *,
        location: str | None = None,
        supplier: str | None = None,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> Instance:
        """Descriptive fields only; acquisition cost/date and tag reference are not writable here."""
        instance = await InstanceService.get_by_id(db, id)
        if not instance:
            raise NotFound(f"Instance {id} not found", {"instance_id": str(id)})
        if location is not None:
            instance.location = location.strip()
        if supplier is not None:
            instance.supplier = supplier.strip()
        if reference_number is not None:
            instance.reference_number = reference_number.strip()
        if notes is not None:
            instance.notes = notes.strip()
        await db.flush()
        return instance

    @staticmethod
    async def count_available(db: AsyncSession, sku_id: UUID) -> int:
        result = await db.execute(
            select(func.count(Instance.id)).where(Instance.sku_id == sku_id, Instance.tag_id.is_(None))
        )
        return result.scalar_one()

    @staticmethod
    async def cost_summary(db: AsyncSession, sku_id: UUID) -> dict:
        """Aggregate cost figures over the available instances of a SKU."""
        result = await db.execute(
            select(
                func.count(Instance.id),
                func.min(Instance.acquisition_cost),
                func.max(Instance.acquisition_cost),
                func.coalesce(func.sum(Instance.acquisition_cost), 0),
                func.min(Instance.acquisition_date),
                func.max(Instance.acquisition_date),
            ).where(Instance.sku_id == sku_id, Instance.tag_id.is_(None))
        )
        count, lowest, highest, total, oldest, newest = result.one()
        total = Decimal(str(total))
        return {
            "count": count,
            "average_cost": total / count if count else Decimal("0"),
            "lowest_cost": lowest,
            "highest_cost": highest,
            "total_value": total,
            "oldest_date": oldest,
            "newest_date": newest,
        }

    @staticmethod
    async def cost_breakdown(db: AsyncSession, sku_id: UUID) -> list[dict]:
        """Available instances grouped by acquisition cost, cheapest first."""
        result = await db.execute(
            select(
                Instance.acquisition_cost,
                func.count(Instance.id),
                func.min(Instance.acquisition_date),
                func.max(Instance.acquisition_date),
            )
            .where(Instance.sku_id == sku_id, Instance.tag_id.is_(None))
            .group_by(Instance.acquisition_cost)
            .order_by(Instance.acquisition_cost)
        )
        return [
            {"cost": cost, "count": count, "oldest_date": oldest, "newest_date": newest}
            for cost, count, oldest, newest in result.all()
        ]
