"""TagTrack IMS — SKU, cost history and bundle component models."""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tagtrack.db.base import Base


class SKUStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class SKU(Base):
    """Catalog entry for a product or tool type. Physical units are Instances."""

    __tablename__ = "skus"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sku_code: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("categories.id", ondelete="RESTRICT"), index=True)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SKUStatus.ACTIVE.value)
    is_bundle: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    barcode: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    manufacturer_model: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    understocked_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    overstocked_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    last_updated_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category: Mapped["Category"] = relationship("Category", back_populates="skus")
    cost_history: Mapped[list["SKUCostHistory"]] = relationship(
        "SKUCostHistory",
        back_populates="sku",
        cascade="all, delete-orphan",
        order_by="SKUCostHistory.effective_date",
    )
    bundle_items: Mapped[list["SKUBundleItem"]] = relationship(
        "SKUBundleItem",
        back_populates="bundle",
        cascade="all, delete-orphan",
        foreign_keys="SKUBundleItem.bundle_sku_id",
    )

    def get_stock_status(self, quantity: int) -> str:
        if quantity <= self.understocked_threshold:
            return "understocked"
        if quantity >= self.overstocked_threshold:
            return "overstocked"
        return "adequate"


class SKUCostHistory(Base):
    """Append-only. A cost change adds a row; rows are never updated."""

    __tablename__ = "sku_cost_history"
    __table_args__ = (CheckConstraint("cost >= 0", name="cost_non_negative"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sku_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("skus.id", ondelete="CASCADE"), index=True)
    cost: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    effective_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_by: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    sku: Mapped["SKU"] = relationship("SKU", back_populates="cost_history")


class SKUBundleItem(Base):
    """Component line of a bundle SKU: receiving one bundle yields `quantity` units of the component."""

    __tablename__ = "sku_bundle_items"
    __table_args__ = (
        UniqueConstraint("bundle_sku_id", "component_sku_id", name="uq_sku_bundle_items_line"),
        CheckConstraint("quantity >= 1", name="quantity_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    bundle_sku_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("skus.id", ondelete="CASCADE"), index=True)
    component_sku_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("skus.id", ondelete="RESTRICT"))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    bundle: Mapped["SKU"] = relationship("SKU", back_populates="bundle_items", foreign_keys=[bundle_sku_id])
    component: Mapped["SKU"] = relationship("SKU", foreign_keys=[component_sku_id])
