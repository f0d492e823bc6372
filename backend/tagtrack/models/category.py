"""TagTrack IMS — Category model."""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tagtrack.db.base import Base


class CategoryType(str, Enum):
    PRODUCT = "product"
    TOOL = "tool"


class CategoryStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Category(Base):
    """Classifies SKUs as products or tools; lists attribute names SKUs in it must carry."""

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=CategoryType.PRODUCT.value)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    attributes: Mapped[list] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)
    sort_order: Mapped[int] = mapped_column(default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CategoryStatus.ACTIVE.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    skus: Mapped[list["SKU"]] = relationship("SKU", back_populates="category")

    @property
    def is_tool(self) -> bool:
        return self.type == CategoryType.TOOL.value
