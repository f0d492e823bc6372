"""TagTrack IMS — SKUService: catalog CRUD, cost history and bundle definitions."""
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tagtrack.core.errors import NotFound, ValidationFailed
from tagtrack.models.category import Category, CategoryType
from tagtrack.models.sku import SKU, SKUBundleItem, SKUCostHistory, SKUStatus
from tagtrack.services.audit_service import (
    ACTION_SKU_ARCHIVED,
    ACTION_SKU_COST_UPDATED,
    ACTION_SKU_CREATED,
    log_audit,
)
from tagtrack.services.category_service import CategoryService


def _sku_options():
    return (
        selectinload(SKU.cost_history),
        selectinload(SKU.bundle_items),
    )


class SKUService:
    """CRUD and search for SKUs. Cost changes append to history and never rewrite it."""

    @staticmethod
    async def get_skus(
        db: AsyncSession,
        *,
        category_id: UUID | None = None,
        category_type: CategoryType | None = None,
        search: str | None = None,
        status: SKUStatus | None = SKUStatus.ACTIVE,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[SKU], int]:
        q = select(SKU).options(*_sku_options())
        count_q = select(func.count(SKU.id))

        filters = []
        if status is not None:
            filters.append(SKU.status == status.value)
        if category_id:
            filters.append(SKU.category_id == category_id)
        if category_type is not None:
            filters.append(SKU.category_id.in_(select(Category.id).where(Category.type == category_type.value)))
        if search:
            search_term = f"%{search}%"
            filters.append(or_(SKU.sku_code.ilike(search_term), SKU.name.ilike(search_term)))

        if filters:
            q = q.where(*filters)
            count_q = count_q.where(*filters)

        total = (await db.execute(count_q)).scalar_one()

        q = q.order_by(SKU.sku_code).offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(q)
        return list(result.scalars().all()), total

    @staticmethod
    async def get_by_id(db: AsyncSession, id: UUID) -> SKU | None:
        result = await db.execute(select(SKU).where(SKU.id == id).options(*_sku_options()))
        return result.scalar_one_or_none()

    @staticmethod
    async def require(db: AsyncSession, id: UUID) -> SKU:
        sku = await SKUService.get_by_id(db, id)
        if not sku:
            raise NotFound(f"SKU {id} not found", {"sku_id": str(id)})
        return sku

    @staticmethod
    async def get_by_code(db: AsyncSession, sku_code: str) -> SKU | None:
        result = await db.execute(
            select(SKU).where(SKU.sku_code == sku_code.strip().upper()).options(*_sku_options())
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def category_type_of(db: AsyncSession, sku_id: UUID) -> str | None:
        result = await db.execute(
            select(Category.type).join(SKU, SKU.category_id == Category.id).where(SKU.id == sku_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create_sku(
        db: AsyncSession,
        sku_code: str,
        name: str,
        category_id: UUID,
        *,
        unit_cost: Decimal = Decimal("0"),
        description: str = "",
        is_bundle: bool = False,
        bundle_items: list[dict] | None = None,
        barcode: str | None = None,
        manufacturer_model: str = "",
        understocked_threshold: int = 5,
        overstocked_threshold: int = 100,
        actor: str = "System",
    ) -> SKU:
        category = await CategoryService.get_by_id(db, category_id)
        if not category:
            raise NotFound("Category not found", {"category_id": str(category_id)})
        if await SKUService.get_by_code(db, sku_code):
            raise ValidationFailed(f"SKU code {sku_code.upper()} already exists", {"sku_code": sku_code})
        if unit_cost < 0:
            raise ValidationFailed("Unit cost must be non-negative", {"unit_cost": str(unit_cost)})

        lines = await SKUService._validate_bundle(db, is_bundle, bundle_items or [])

        now = datetime.now(timezone.utc)
        sku = SKU(
            sku_code=sku_code.strip().upper(),
            name=name.strip(),
            description=description.strip(),
            category_id=category_id,
            unit_cost=unit_cost,
            is_bundle=is_bundle,
            barcode=barcode or None,
            manufacturer_model=manufacturer_model,
            understocked_threshold=understocked_threshold,
            overstocked_threshold=overstocked_threshold,
            created_by=actor,
            last_updated_by=actor,
            cost_history=[SKUCostHistory(cost=unit_cost, effective_date=now, updated_by=actor, notes="Initial cost")],
            bundle_items=[SKUBundleItem(component_sku_id=sid, quantity=qty) for sid, qty in lines],
        )
        db.add(sku)
        await db.flush()
        log_audit(actor, ACTION_SKU_CREATED, "sku", sku.id, {"sku_code": sku.sku_code, "is_bundle": is_bundle})
        return sku

    @staticmethod
    async def _validate_bundle(db: AsyncSession, is_bundle: bool, bundle_items: list[dict]) -> list[tuple[UUID, int]]:
        if not is_bundle:
            if bundle_items:
                raise ValidationFailed("Only bundle SKUs may list bundle items")
            return []
        if not bundle_items:
            raise ValidationFailed("Bundle SKUs must have at least one bundle item")

        lines: dict[UUID, int] = {}
        for index, item in enumerate(bundle_items):
            sku_id = item["sku_id"]
            quantity = int(item.get("quantity", 1))
            if quantity < 1:
                raise ValidationFailed(f"bundle_items[{index}].quantity must be at least 1")
            if sku_id in lines:
                raise ValidationFailed(f"bundle_items[{index}] repeats component {sku_id}")
            component = await SKUService.get_by_id(db, sku_id)
            if not component:
                raise ValidationFailed(f"bundle_items[{index}] references unknown SKU {sku_id}")
            if component.is_bundle:
                raise ValidationFailed(f"bundle_items[{index}] references another bundle ({component.sku_code})")
            lines[sku_id] = quantity
        return list(lines.items())

    @staticmethod
    async def update_sku(
        db: AsyncSession,
        id: UUID,
        *,
        name: str | None = None,
        description: str | None = None,
        barcode: str | None = None,
        manufacturer_model: str | None = None,
        understocked_threshold: int | None = None,
        overstocked_threshold: int | None = None,
        status: SKUStatus | None = None,
        actor: str = "System",
    ) -> SKU:
        """Metadata only. Cost goes through add_cost."""
        sku = await SKUService.require(db, id)

        if name is not None:
            sku.name = name.strip()
        if description is not None:
            sku.description = description.strip()
        if barcode is not None:
            sku.barcode = barcode or None
        if manufacturer_model is not None:
            sku.manufacturer_model = manufacturer_model
        if understocked_threshold is not None:
            sku.understocked_threshold = understocked_threshold
        if overstocked_threshold is not None:
            sku.overstocked_threshold = overstocked_threshold
        if status is not None:
            sku.status = status.value
        sku.last_updated_by = actor

        await db.flush()
        return sku

    @staticmethod
    async def add_cost(
        db: AsyncSession,
        id: UUID,
        cost: Decimal,
        *,
        notes: str = "",
        effective_date: datetime | None = None,
        actor: str = "System",
    ) -> SKU:
        """Append a cost history entry and make it current. Existing instances keep their acquisition cost."""
        if cost < 0:
            raise ValidationFailed("Cost must be non-negative", {"cost": str(cost)})
        sku = await SKUService.require(db, id)

        previous = sku.unit_cost
        sku.cost_history.append(
            SKUCostHistory(
                cost=cost,
                effective_date=effective_date or datetime.now(timezone.utc),
                updated_by=actor,
                notes=notes,
            )
        )
        sku.unit_cost = cost
        sku.last_updated_by = actor
        await db.flush()
        log_audit(
            actor,
            ACTION_SKU_COST_UPDATED,
            "sku",
            sku.id,
            {"previous_cost": str(previous), "new_cost": str(cost), "notes": notes},
        )
        return sku

    @staticmethod
    async def get_cost_at_date(db: AsyncSession, id: UUID, at: datetime) -> Decimal:
        """Cost in effect at `at`: latest history entry not after it, else 0."""
        await SKUService.require(db, id)
        result = await db.execute(
            select(SKUCostHistory.cost)
            .where(SKUCostHistory.sku_id == id, SKUCostHistory.effective_date <= at)
            .order_by(SKUCostHistory.effective_date.desc())
            .limit(1)
        )
        cost = result.scalar_one_or_none()
        return Decimal(str(cost)) if cost is not None else Decimal("0")

    @staticmethod
    async def archive_sku(db: AsyncSession, id: UUID, actor: str = "System") -> SKU:
        sku = await SKUService.require(db, id)
        sku.status = SKUStatus.DISCONTINUED.value
        sku.last_updated_by = actor
        await db.flush()
        log_audit(actor, ACTION_SKU_ARCHIVED, "sku", sku.id, {"sku_code": sku.sku_code})
        return sku
