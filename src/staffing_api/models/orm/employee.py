"""Employee ORM model."""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from staffing_api.models.orm.base import Base, TimestampMixin, UUIDMixin


class EmployeeORM(Base, UUIDMixin, TimestampMixin):
    """Employee database model.

    ``firm_id`` only changes when a transfer is completed.
    """

    __tablename__ = "employees"

    firm_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("firms.id", ondelete="RESTRICT"), nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    matricule: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assigned_client_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        Index("idx_employees_firm", "firm_id"),
        Index("idx_employees_assigned_client", "assigned_client_id"),
    )
