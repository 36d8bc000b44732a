"""Contract ORM model."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from staffing_api.models.orm.base import Base, TimestampMixin, UUIDMixin


class ContractORM(Base, UUIDMixin, TimestampMixin):
    """Labor contract between a firm and an employee."""

    __tablename__ = "contracts"

    firm_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("firms.id", ondelete="CASCADE"), nullable=False
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    client_firm_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("firms.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    renewed_from_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("contracts.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Terms
    position: Mapped[str | None] = mapped_column(String(255), nullable=True)
    salary: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    working_hours: Mapped[str | None] = mapped_column(String(100), nullable=True)
    trial_period_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    alert_threshold: Mapped[int] = mapped_column(Integer, default=30, nullable=False)

    # Termination tracking
    termination_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    termination_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_contracts_firm", "firm_id"),
        Index("idx_contracts_employee", "employee_id"),
        Index("idx_contracts_status", "status"),
        Index("idx_contracts_renewed_from", "renewed_from_id"),
        # At most one ACTIVE contract per employee, also under concurrent writers
        Index(
            "uq_contracts_one_active_per_employee",
            "employee_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )
