"""Client ORM model."""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from staffing_api.models.orm.base import Base, TimestampMixin, UUIDMixin


class ClientORM(Base, UUIDMixin, TimestampMixin):
    """Customer of a firm to which employees are assigned."""

    __tablename__ = "clients"

    firm_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("firms.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (Index("idx_clients_firm", "firm_id"),)
