"""Holding and firm ORM models."""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from staffing_api.models.orm.base import Base, TimestampMixin, UUIDMixin


class HoldingORM(Base, UUIDMixin, TimestampMixin):
    """Group of sister firms allowed to exchange employees."""

    __tablename__ = "holdings"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class FirmORM(Base, UUIDMixin, TimestampMixin):
    """Tenant organization."""

    __tablename__ = "firms"

    holding_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("holdings.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    __table_args__ = (Index("idx_firms_holding", "holding_id"),)
