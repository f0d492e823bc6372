"""TagTrack IMS — CategoryService."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.core.errors import ValidationFailed
from tagtrack.models.category import Category, CategoryStatus, CategoryType
from tagtrack.services.audit_service import ACTION_CATEGORY_CREATED, log_audit


class CategoryService:
    """Reference data: product and tool categories."""

    @staticmethod
    async def list_categories(
        db: AsyncSession,
        *,
        type: CategoryType | None = None,
        include_inactive: bool = False,
    ) -> list[Category]:
        q = select(Category)
        if type is not None:
            q = q.where(Category.type == type.value)
        if not include_inactive:
            q = q.where(Category.status == CategoryStatus.ACTIVE.value)
        q = q.order_by(Category.sort_order, Category.name)
        result = await db.execute(q)
        return list(result.scalars().all())

    @staticmethod
    async def get_by_id(db: AsyncSession, id: UUID) -> Category | None:
        result = await db.execute(select(Category).where(Category.id == id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_name(db: AsyncSession, name: str) -> Category | None:
        result = await db.execute(select(Category).where(Category.name == name.strip().lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_category(
        db: AsyncSession,
        name: str,
        type: CategoryType = CategoryType.PRODUCT,
        *,
        description: str = "",
        attributes: list[str] | None = None,
        sort_order: int = 0,
        actor: str = "System",
    ) -> Category:
        if await CategoryService.get_by_name(db, name):
            raise ValidationFailed(f"Category '{name}' already exists", {"name": name})

        category = Category(
            name=name.strip().lower(),
            type=type.value,
            description=description.strip(),
            attributes=[a.strip() for a in attributes or [] if a.strip()],
            sort_order=sort_order,
        )
        db.add(category)
        await db.flush()
        log_audit(actor, ACTION_CATEGORY_CREATED, "category", category.id, {"name": category.name, "type": category.type})
        return category
