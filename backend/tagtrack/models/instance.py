"""TagTrack IMS — Instance model: one row per physical unit of a SKU."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from tagtrack.core.errors import IntegrityViolation, InvalidInstanceSelection
from tagtrack.db.base import Base

if TYPE_CHECKING:
    from tagtrack.models.tag import TagSkuItem


class InstanceState(str, Enum):
    AVAILABLE = "available"
    HELD = "held"


class Instance(Base):
    """
    Physical unit with a frozen acquisition cost and date.

    Available iff `tag_id` is null. `tag_id` and `tag_item_id` are set and cleared
    together, only through `hold()` / `release()`; the check constraint rejects
    any row where one is set without the other.
    """

    __tablename__ = "instances"
    __table_args__ = (
        CheckConstraint("acquisition_cost >= 0", name="acquisition_cost_non_negative"),
        CheckConstraint("(tag_id IS NULL) = (tag_item_id IS NULL)", name="tag_reference_pair"),
        Index("ix_instances_sku_tag", "sku_id", "tag_id"),
        Index("ix_instances_sku_acquired", "sku_id", "acquisition_date"),
        Index("ix_instances_sku_cost", "sku_id", "acquisition_cost"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sku_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False)
    acquisition_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    acquisition_cost: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="HQ")
    supplier: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    reference_number: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    added_by: Mapped[str] = mapped_column(String(255), nullable=False)
    tag_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tags.id", ondelete="SET NULL"), nullable=True, index=True
    )
    tag_item_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tag_sku_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Concurrent claims of the same instance fail the version check instead of double-allocating.
    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}

    @property
    def state(self) -> InstanceState:
        return InstanceState.AVAILABLE if self.tag_id is None else InstanceState.HELD

    @property
    def is_available(self) -> bool:
        return self.state is InstanceState.AVAILABLE

    @property
    def fifo_key(self) -> tuple:
        """Oldest first; ties broken by id so ordering is stable."""
        acquired = self.acquisition_date
        if acquired.tzinfo is not None:
            acquired = acquired.astimezone(timezone.utc).replace(tzinfo=None)
        return (acquired, str(self.id))

    def hold(self, line: "TagSkuItem") -> None:
        """AVAILABLE -> HELD(line.tag_id)."""
        if not self.is_available:
            raise InvalidInstanceSelection(
                f"Instance {self.id} is already held by tag {self.tag_id}",
                {"instance_id": str(self.id), "tag_id": str(self.tag_id)},
            )
        if line.sku_id != self.sku_id:
            raise InvalidInstanceSelection(
                f"Instance {self.id} does not belong to SKU {line.sku_id}",
                {"instance_id": str(self.id), "sku_id": str(line.sku_id)},
            )
        line.instances.append(self)
        self.tag_id = line.tag_id

    def release(self, line: "TagSkuItem") -> None:
        """HELD(line.tag_id) -> AVAILABLE."""
        if self.tag_id != line.tag_id or self not in line.instances:
            raise IntegrityViolation(
                f"Instance {self.id} is not held by tag line {line.id}",
                {"instance_id": str(self.id), "tag_item_id": str(line.id)},
            )
        line.instances.remove(self)
        self.tag_id = None
