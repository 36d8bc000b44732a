"""Employee transfer ORM model."""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from staffing_api.models.orm.base import Base, TimestampMixin, UUIDMixin


class EmployeeTransferORM(Base, UUIDMixin, TimestampMixin):
    """Request to move an employee between two sister firms."""

    __tablename__ = "employee_transfers"

    employee_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    from_firm_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("firms.id", ondelete="CASCADE"), nullable=False
    )
    to_firm_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("firms.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    requested_by: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    approved_by: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_transfers_employee", "employee_id"),
        Index("idx_transfers_from_firm", "from_firm_id"),
        Index("idx_transfers_to_firm", "to_firm_id"),
        Index("idx_transfers_status", "status"),
        # At most one PENDING transfer per employee
        Index(
            "uq_transfers_one_pending_per_employee",
            "employee_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )
