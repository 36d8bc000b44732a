"""Shared fixtures: in-memory database, seeded firms and an ASGI client."""

import os

# Settings are read at import time by staffing_api.database
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-0123456789-abcdefghijklmnopqrstuvwxyz"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "development"

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from staffing_api.database import get_db
from staffing_api.main import create_app
from staffing_api.models.orm import (
    AuditLogORM,
    Base,
    ClientORM,
    ContractORM,
    EmployeeORM,
    EmployeeTransferORM,
    FirmORM,
    HoldingORM,
    UserFirmORM,
    UserORM,
)
from staffing_api.security.auth import create_access_token
from staffing_api.services.contract_service import ContractService
from staffing_api.services.transfer_service import TransferService

# Fixed clock used by service tests
TODAY = date(2024, 6, 1)


@dataclass
class World:
    """Seeded tenants, users and employees."""

    holding: HoldingORM
    firm_a: FirmORM
    firm_b: FirmORM
    firm_other: FirmORM
    owner: UserORM
    manager: UserORM
    staff: UserORM
    outsider: UserORM
    employee: EmployeeORM
    employee_b: EmployeeORM
    client_a: ClientORM
    client_b: ClientORM


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def world(session_maker) -> World:
    """Two sister firms (A, B), a firm in another holding, and their members.

    Roles: owner is OWNER of A and ADMIN of B, manager is MANAGER of A and B,
    staff is STAFF of A, outsider has no membership.
    """
    async with session_maker() as session:
        holding = HoldingORM(name="Group")
        other_holding = HoldingORM(name="Other group")
        session.add_all([holding, other_holding])
        await session.flush()

        firm_a = FirmORM(name="Firm A", slug="firm-a", holding_id=holding.id)
        firm_b = FirmORM(name="Firm B", slug="firm-b", holding_id=holding.id)
        firm_other = FirmORM(name="Firm C", slug="firm-c", holding_id=other_holding.id)
        owner = UserORM(email="owner@example.com", name="Owner")
        manager = UserORM(email="manager@example.com", name="Manager")
        staff = UserORM(email="staff@example.com", name="Staff")
        outsider = UserORM(email="outsider@example.com", name="Outsider")
        session.add_all([firm_a, firm_b, firm_other, owner, manager, staff, outsider])
        await session.flush()

        session.add_all(
            [
                UserFirmORM(user_id=owner.id, firm_id=firm_a.id, role="OWNER"),
                UserFirmORM(user_id=owner.id, firm_id=firm_b.id, role="ADMIN"),
                UserFirmORM(user_id=owner.id, firm_id=firm_other.id, role="OWNER"),
                UserFirmORM(user_id=manager.id, firm_id=firm_a.id, role="MANAGER"),
                UserFirmORM(user_id=manager.id, firm_id=firm_b.id, role="MANAGER"),
                UserFirmORM(user_id=staff.id, firm_id=firm_a.id, role="STAFF"),
            ]
        )
        client_a = ClientORM(firm_id=firm_a.id, name="Client of A")
        client_b = ClientORM(firm_id=firm_b.id, name="Client of B")
        session.add_all([client_a, client_b])
        await session.flush()

        employee = EmployeeORM(firm_id=firm_a.id, first_name="Awa", last_name="Diallo")
        employee_b = EmployeeORM(firm_id=firm_b.id, first_name="Jean", last_name="Kouassi")
        session.add_all([employee, employee_b])
        await session.commit()

    return World(
        holding=holding,
        firm_a=firm_a,
        firm_b=firm_b,
        firm_other=firm_other,
        owner=owner,
        manager=manager,
        staff=staff,
        outsider=outsider,
        employee=employee,
        employee_b=employee_b,
        client_a=client_a,
        client_b=client_b,
    )


@pytest.fixture
def make_contract(session_maker, world):
    """Insert a contract directly, bypassing the service rules."""

    async def _make(**overrides: Any) -> ContractORM:
        values: dict[str, Any] = {
            "firm_id": world.firm_a.id,
            "employee_id": world.employee.id,
            "type": "CDD",
            "status": "ACTIVE",
            "is_active": True,
            "start_date": date(2024, 1, 1),
            "end_date": date(2024, 10, 1),
            "position": "Welder",
            "salary": Decimal("2500.00"),
            "alert_threshold": 30,
        }
        values.update(overrides)
        values["is_active"] = values["status"] == "ACTIVE"
        async with session_maker() as session:
            contract = ContractORM(**values)
            session.add(contract)
            await session.commit()
        return contract

    return _make


@pytest.fixture
def make_transfer(session_maker, world):
    """Insert a transfer directly in the given status."""

    async def _make(**overrides: Any) -> EmployeeTransferORM:
        values: dict[str, Any] = {
            "employee_id": world.employee.id,
            "from_firm_id": world.firm_a.id,
            "to_firm_id": world.firm_b.id,
            "transfer_date": date(2024, 5, 1),
            "effective_date": date(2024, 5, 15),
            "reason": "Closer to home",
            "status": "PENDING",
            "requested_by": world.manager.id,
        }
        values.update(overrides)
        async with session_maker() as session:
            transfer = EmployeeTransferORM(**values)
            session.add(transfer)
            await session.commit()
        return transfer

    return _make


@pytest.fixture
def contract_service(session) -> ContractService:
    return ContractService(session, today=lambda: TODAY)


@pytest.fixture
def transfer_service(session) -> TransferService:
    return TransferService(session, today=lambda: TODAY)


@pytest.fixture
def fetch(session_maker):
    """Read a row in a separate session, seeing only committed data."""

    async def _fetch(model, id):
        async with session_maker() as session:
            return await session.get(model, id)

    return _fetch


@pytest.fixture
def audit_entries(session_maker):
    """Committed audit entries, oldest first."""

    async def _entries(**filters: Any) -> list[AuditLogORM]:
        async with session_maker() as session:
            query = select(AuditLogORM).order_by(AuditLogORM.created_at)
            for key, value in filters.items():
                query = query.where(getattr(AuditLogORM, key) == value)
            result = await session.execute(query)
            return list(result.scalars().all())

    return _entries


@pytest.fixture
async def client(session_maker):
    """HTTP client bound to the app with the test database."""
    app = create_app()

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def auth_headers(user: UserORM) -> dict[str, str]:
    """Bearer header for a seeded user."""
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}
