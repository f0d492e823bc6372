"""TagTrack IMS — InventoryService: the only writer of inventory counters.

Counters are a cache of Instance/Tag state. Engine operations lock the SKU's row
first, mutate instances, then call `apply_movement` with the deltas they caused.
`reconcile_inventory` rebuilds rows from instances when the cache drifts.
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.config import get_settings
from tagtrack.core.errors import IntegrityViolation, NotFound
from tagtrack.models.instance import Instance
from tagtrack.models.inventory import COUNTERS, Inventory
from tagtrack.models.sku import SKU
from tagtrack.models.tag import Tag, TagStatus, TagType
from tagtrack.services.audit_service import ACTION_INVENTORY_RECONCILED, log_audit

logger = logging.getLogger(__name__)

FOUR_PLACES = Decimal("0.0001")


def _empty_counts() -> dict[str, int]:
    return {"total": 0, **{name: 0 for name in COUNTERS}}


class InventoryService:
    """Inventory rows: locking, counter movements, reconciliation and read-side reports."""

    @staticmethod
    async def get_inventory(db: AsyncSession, sku_id: UUID) -> Inventory | None:
        result = await db.execute(select(Inventory).where(Inventory.sku_id == sku_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_inventory(db: AsyncSession, *, page: int = 1, page_size: int = 50) -> tuple[list[Inventory], int]:
        total = (await db.execute(select(func.count(Inventory.id)))).scalar_one()
        result = await db.execute(
            select(Inventory)
            .join(SKU, SKU.id == Inventory.sku_id)
            .order_by(SKU.sku_code)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    # ── Locking and movements ────────────────────────────────────────────────

    @staticmethod
    async def lock(db: AsyncSession, sku_id: UUID, actor: str = "System") -> Inventory:
        """
        Lock the SKU's inventory row for the rest of the transaction (SELECT ... FOR UPDATE).
        A missing row is created from a recount of the current instances.
        """
        result = await db.execute(
            select(Inventory)
            .where(Inventory.sku_id == sku_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        inventory = result.scalar_one_or_none()
        if inventory is not None:
            return inventory

        counts, _ = await InventoryService._recount(db, [sku_id])
        inventory = InventoryService._new_row(sku_id, actor)
        InventoryService._write_counts(inventory, counts[sku_id])
        await InventoryService._revalue(db, inventory)
        inventory.refresh_flags()
        db.add(inventory)
        await db.flush()
        logger.info("Created inventory row for SKU %s from %d instance(s)", sku_id, inventory.total_quantity)
        return inventory

    @staticmethod
    async def lock_many(db: AsyncSession, sku_ids, actor: str = "System") -> dict[UUID, Inventory]:
        """Lock several rows in a fixed order so concurrent multi-SKU operations cannot deadlock."""
        rows: dict[UUID, Inventory] = {}
        for sku_id in sorted(set(sku_ids), key=str):
            rows[sku_id] = await InventoryService.lock(db, sku_id, actor)
        return rows

    @staticmethod
    async def apply_movement(
        db: AsyncSession,
        inventory: Inventory,
        *,
        total: int = 0,
        available: int = 0,
        reserved: int = 0,
        broken: int = 0,
        loaned: int = 0,
        actor: str = "System",
    ) -> Inventory:
        """
        Apply counter deltas after the instance changes that caused them have been flushed.
        Raises IntegrityViolation if a counter would go negative or the row stops adding up;
        the caller's transaction is then rolled back and the row needs reconciliation.
        """
        deltas = {"total": total, "available": available, "reserved": reserved, "broken": broken, "loaned": loaned}
        before = inventory.counts()
        after = {name: before[name] + delta for name, delta in deltas.items()}

        negative = [name for name, value in after.items() if value < 0]
        if negative:
            raise IntegrityViolation(
                f"Inventory for SKU {inventory.sku_id} would go negative on {', '.join(negative)}; reconcile first",
                {"sku_id": str(inventory.sku_id), "before": before, "deltas": deltas},
            )
        if sum(after[name] for name in COUNTERS) != after["total"]:
            raise IntegrityViolation(
                f"Inventory for SKU {inventory.sku_id} is out of balance; reconcile first",
                {"sku_id": str(inventory.sku_id), "before": before, "deltas": deltas},
            )

        InventoryService._write_counts(inventory, after)
        if total:
            await InventoryService._revalue(db, inventory)
        inventory.refresh_flags()
        inventory.last_movement_date = datetime.now(timezone.utc)
        inventory.last_updated_by = actor
        await db.flush()
        return inventory

    @staticmethod
    async def move_held(
        db: AsyncSession,
        inventory: Inventory,
        tag_type: TagType,
        quantity: int,
        *,
        to_available: bool,
        actor: str = "System",
    ) -> Inventory:
        """Move `quantity` between available and the held counter for `tag_type` (either direction)."""
        sign = 1 if to_available else -1
        return await InventoryService.apply_movement(
            db,
            inventory,
            available=sign * quantity,
            actor=actor,
            **{tag_type.counter: -sign * quantity},
        )

    @staticmethod
    def _new_row(sku_id: UUID, actor: str) -> Inventory:
        """Unsaved row with every column set, so flags can be computed before the first flush."""
        settings = get_settings()
        return Inventory(
            sku_id=sku_id,
            total_quantity=0,
            available_quantity=0,
            reserved_quantity=0,
            broken_quantity=0,
            loaned_quantity=0,
            minimum_stock_level=0,
            reorder_point=settings.DEFAULT_REORDER_POINT,
            primary_location=settings.DEFAULT_LOCATION,
            total_value=Decimal("0"),
            average_cost=Decimal("0"),
            last_updated_by=actor,
        )

    @staticmethod
    def _write_counts(inventory: Inventory, counts: dict[str, int]) -> None:
        inventory.total_quantity = counts["total"]
        for name in COUNTERS:
            setattr(inventory, f"{name}_quantity", counts[name])

    @staticmethod
    async def _revalue(db: AsyncSession, inventory: Inventory) -> None:
        result = await db.execute(
            select(func.count(Instance.id), func.coalesce(func.sum(Instance.acquisition_cost), 0)).where(
                Instance.sku_id == inventory.sku_id
            )
        )
        count, value = result.one()
        total_value = Decimal(str(value)).quantize(FOUR_PLACES)
        inventory.total_value = total_value
        inventory.average_cost = (total_value / count).quantize(FOUR_PLACES) if count else Decimal("0")

    # ── Reconciliation ───────────────────────────────────────────────────────

    @staticmethod
    async def _recount(db: AsyncSession, sku_ids: list[UUID]) -> tuple[dict[UUID, dict[str, int]], list[dict]]:
        """Counts per SKU from instances joined to their tags, plus integrity issues found on the way."""
        counts: dict[UUID, dict[str, int]] = defaultdict(_empty_counts)
        for sku_id in sku_ids:
            counts[sku_id] = _empty_counts()
        issues: list[dict] = []

        rows = await db.execute(
            select(Instance.id, Instance.sku_id, Instance.tag_id, Instance.tag_item_id, Tag.tag_type, Tag.status)
            .outerjoin(Tag, Tag.id == Instance.tag_id)
            .where(Instance.sku_id.in_(sku_ids))
        )
        for instance_id, sku_id, tag_id, tag_item_id, tag_type, tag_status in rows.all():
            bucket = counts[sku_id]
            bucket["total"] += 1
            if tag_id is None:
                bucket["available"] += 1
                continue

            if tag_type is None:
                # Dangling reference: not available, no type to attribute it to.
                bucket["reserved"] += 1
                issues.append({
                    "sku_id": sku_id,
                    "instance_id": instance_id,
                    "tag_id": tag_id,
                    "issue": "instance references a tag that does not exist",
                })
                continue

            bucket[TagType(tag_type).counter] += 1
            if tag_status != TagStatus.ACTIVE.value:
                issues.append({
                    "sku_id": sku_id,
                    "instance_id": instance_id,
                    "tag_id": tag_id,
                    "issue": f"instance still references a {tag_status} tag",
                })
            if tag_item_id is None:
                issues.append({
                    "sku_id": sku_id,
                    "instance_id": instance_id,
                    "tag_id": tag_id,
                    "issue": "instance has a tag but no tag line",
                })
        return counts, issues

    @staticmethod
    async def reconcile_inventory(
        db: AsyncSession,
        sku_id: UUID | None = None,
        *,
        actor: str = "System",
        strict: bool = False,
    ) -> dict:
        """
        Rebuild inventory rows from instances (one SKU, or every non-bundle SKU).
        Only the row is written; integrity issues are reported, never repaired.
        With `strict`, any issue raises IntegrityViolation instead of returning the report.
        """
        if sku_id is not None:
            sku = await db.get(SKU, sku_id)
            if not sku:
                raise NotFound(f"SKU {sku_id} not found", {"sku_id": str(sku_id)})
            sku_ids = [sku_id]
        else:
            result = await db.execute(select(SKU.id).where(SKU.is_bundle.is_(False)).order_by(SKU.sku_code))
            sku_ids = list(result.scalars().all())

        report = {
            "skus_processed": 0,
            "records_created": 0,
            "records_updated": 0,
            "drift": [],
            "violations": [],
        }
        if not sku_ids:
            return report

        counts, issues = await InventoryService._recount(db, sku_ids)
        existing = {
            row.sku_id: row
            for row in (
                await db.execute(
                    select(Inventory)
                    .where(Inventory.sku_id.in_(sku_ids))
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
            ).scalars()
        }

        for sid in sku_ids:
            report["skus_processed"] += 1
            inventory = existing.get(sid)
            if inventory is None:
                inventory = InventoryService._new_row(sid, actor)
                db.add(inventory)
                report["records_created"] += 1
                before = None
            else:
                before = inventory.counts()

            after = counts[sid]
            previous_value = (inventory.total_value, inventory.average_cost)
            InventoryService._write_counts(inventory, after)
            await InventoryService._revalue(db, inventory)
            inventory.refresh_flags()

            changed = before is not None and (before != after or previous_value != (inventory.total_value, inventory.average_cost))
            if changed:
                inventory.last_updated_by = actor
                report["records_updated"] += 1
                report["drift"].append({"sku_id": sid, "before": before, "after": dict(after)})

        await db.flush()

        for issue in issues:
            logger.warning("Integrity violation for SKU %s: %s (instance %s)", issue["sku_id"], issue["issue"], issue["instance_id"])
        report["violations"] = issues

        logger.info(
            "Reconciled %d SKU(s): %d created, %d updated, %d violation(s)",
            report["skus_processed"],
            report["records_created"],
            report["records_updated"],
            len(issues),
        )
        log_audit(
            actor,
            ACTION_INVENTORY_RECONCILED,
            "inventory",
            sku_id,
            {k: report[k] for k in ("skus_processed", "records_created", "records_updated")} | {"violations": len(issues)},
        )

        if strict and issues:
            raise IntegrityViolation(f"{len(issues)} integrity violation(s) found during reconciliation", {"violations": len(issues)})
        return report

    # ── Read-side reports ────────────────────────────────────────────────────

    @staticmethod
    def summary(inventory: Inventory) -> dict:
        return {**inventory.counts(), "needs_reorder": inventory.needs_reorder}

    @staticmethod
    async def low_stock(db: AsyncSession) -> list[Inventory]:
        result = await db.execute(
            select(Inventory).where(Inventory.is_low_stock.is_(True)).order_by(Inventory.available_quantity)
        )
        return list(result.scalars().all())

    @staticmethod
    async def out_of_stock(db: AsyncSession) -> list[Inventory]:
        result = await db.execute(
            select(Inventory).where(Inventory.is_out_of_stock.is_(True)).order_by(Inventory.last_movement_date.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def needs_reorder(db: AsyncSession) -> list[Inventory]:
        result = await db.execute(
            select(Inventory)
            .where(Inventory.available_quantity <= Inventory.reorder_point)
            .order_by(Inventory.available_quantity)
        )
        return list(result.scalars().all())

    @staticmethod
    async def valuation_report(db: AsyncSession) -> dict:
        """Value per SKU from the acquisition cost of every instance on hand."""
        result = await db.execute(
            select(
                SKU.id,
                SKU.sku_code,
                SKU.name,
                func.count(Instance.id),
                func.coalesce(func.sum(Instance.acquisition_cost), 0),
            )
            .join(Instance, Instance.sku_id == SKU.id)
            .group_by(SKU.id, SKU.sku_code, SKU.name)
            .order_by(SKU.sku_code)
        )
        lines = []
        grand_total = Decimal("0")
        for sku_id, sku_code, name, count, value in result.all():
            value = Decimal(str(value)).quantize(FOUR_PLACES)
            grand_total += value
            lines.append({
                "sku_id": sku_id,
                "sku_code": sku_code,
                "name": name,
                "quantity": count,
                "total_value": value,
                "average_cost": (value / count).quantize(FOUR_PLACES) if count else Decimal("0"),
            })
        return {"lines": lines, "total_value": grand_total}
