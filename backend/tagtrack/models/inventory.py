"""TagTrack IMS — Inventory counters (derived cache, one row per SKU)."""
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tagtrack.db.base import Base

COUNTERS = ("available", "reserved", "broken", "loaned")


class Inventory(Base):
    """
    Counters derived from Instance/Tag state. Written only by InventoryService;
    `available + reserved + broken + loaned == total` holds after every write and
    reconciliation rebuilds the row from instances.
    """

    __tablename__ = "inventory"
    __table_args__ = tuple(
        CheckConstraint(f"{name}_quantity >= 0", name=f"{name}_non_negative") for name in (*COUNTERS, "total")
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sku_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("skus.id", ondelete="CASCADE"), unique=True, nullable=False)

    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reserved_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    broken_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    loaned_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    minimum_stock_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reorder_point: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    maximum_stock_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    primary_location: Mapped[str] = mapped_column(String(255), nullable=False, default="HQ")

    total_value: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    average_cost: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False, default=Decimal("0"))

    is_low_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_out_of_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_overstock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    last_movement_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_updated_by: Mapped[str] = mapped_column(String(255), nullable=False, default="System")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    sku: Mapped["SKU"] = relationship("SKU")

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}

    @property
    def held_quantity(self) -> int:
        return self.reserved_quantity + self.broken_quantity + self.loaned_quantity

    @property
    def is_conserved(self) -> bool:
        return self.available_quantity + self.held_quantity == self.total_quantity

    @property
    def needs_reorder(self) -> bool:
        return self.available_quantity <= self.reorder_point

    def refresh_flags(self) -> None:
        self.is_out_of_stock = self.available_quantity == 0
        self.is_low_stock = 0 < self.available_quantity <= self.minimum_stock_level
        self.is_overstock = self.maximum_stock_level is not None and self.total_quantity > self.maximum_stock_level

    def counts(self) -> dict[str, int]:
        return {
            "total": self.total_quantity,
            **{name: getattr(self, f"{name}_quantity") for name in COUNTERS},
        }
