"""TagTrack IMS — Tag and TagSkuItem models."""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tagtrack.db.base import Base
from tagtrack.models.instance import Instance


class TagType(str, Enum):
    RESERVED = "reserved"
    LOANED = "loaned"
    BROKEN = "broken"
    IMPERFECT = "imperfect"
    STOCK = "stock"

    @property
    def counter(self) -> str:
        """Inventory counter ("reserved", "loaned" or "broken") that holds instances of this tag type."""
        return HELD_COUNTER[self]


HELD_COUNTER: dict[TagType, str] = {
    TagType.RESERVED: "reserved",
    TagType.STOCK: "reserved",
    TagType.LOANED: "loaned",
    TagType.BROKEN: "broken",
    TagType.IMPERFECT: "broken",
}


class TagStatus(str, Enum):
    ACTIVE = "active"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class SelectionMethod(str, Enum):
    FIFO = "fifo"
    COST_BASED = "cost_based"
    MANUAL = "manual"


class CostOrder(str, Enum):
    LOWEST = "lowest"
    HIGHEST = "highest"


class FulfillmentMode(str, Enum):
    CONSUME = "consume"
    RELEASE = "release"


class ToolCondition(str, Enum):
    FUNCTIONAL = "functional"
    NEEDS_MAINTENANCE = "needs_maintenance"
    BROKEN = "broken"


class Tag(Base):
    """Reservation, loan, damage hold or stock set-aside against one or more SKUs."""

    __tablename__ = "tags"
    __table_args__ = (
        Index("ix_tags_status_due", "status", "due_date"),
        Index("ix_tags_type_status", "tag_type", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    project_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    tag_type: Mapped[str] = mapped_column(String(20), nullable=False, default=TagType.RESERVED.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TagStatus.ACTIVE.value)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    last_updated_by: Mapped[str] = mapped_column(String(255), nullable=False)
    fulfilled_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    fulfilled_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cancelled_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    sku_items: Mapped[list["TagSkuItem"]] = relationship(
        "TagSkuItem", back_populates="tag", cascade="all, delete-orphan"
    )

    @property
    def type(self) -> TagType:
        return TagType(self.tag_type)

    @property
    def is_active(self) -> bool:
        return self.status == TagStatus.ACTIVE.value

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.sku_items)

    @property
    def total_value(self) -> Decimal:
        return sum((item.value for item in self.sku_items), Decimal("0"))

    @property
    def is_fully_fulfilled(self) -> bool:
        return all(item.quantity == 0 for item in self.sku_items)

    def line_for(self, sku_id: uuid.UUID) -> "TagSkuItem | None":
        for item in self.sku_items:
            if item.sku_id == sku_id:
                return item
        return None


class TagSkuItem(Base):
    """
    One SKU line of a tag. The instances it controls are found through
    `Instance.tag_item_id`; quantity is always the number of those instances.
    """

    __tablename__ = "tag_sku_items"
    __table_args__ = (UniqueConstraint("tag_id", "sku_id", name="uq_tag_sku_items_line"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tag_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)
    sku_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False, index=True)
    selection_method: Mapped[str] = mapped_column(String(20), nullable=False, default=SelectionMethod.FIFO.value)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    tag: Mapped["Tag"] = relationship("Tag", back_populates="sku_items")
    instances: Mapped[list[Instance]] = relationship(
        Instance,
        primaryjoin="TagSkuItem.id == Instance.tag_item_id",
        foreign_keys=[Instance.tag_item_id],
        order_by=(Instance.acquisition_date, Instance.id),
    )

    @property
    def selected_instance_ids(self) -> list[uuid.UUID]:
        return [i.id for i in sorted(self.instances, key=lambda i: i.fifo_key)]

    @property
    def quantity(self) -> int:
        return len(self.instances)

    @property
    def value(self) -> Decimal:
        return sum((i.acquisition_cost for i in self.instances), Decimal("0"))
