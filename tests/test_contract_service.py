"""Tests for the contract lifecycle service."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from conftest import TODAY
from staffing_api.exceptions import (
    AccessDeniedError,
    ActiveContractExistsError,
    ClientNotFoundError,
    ConcurrentModificationError,
    ContractNotFoundError,
    EmployeeNotFoundError,
    IllegalTransitionError,
    InsufficientRoleError,
    InvalidDateRangeError,
    MissingContractDatesError,
    MissingReasonError,
    RenewalNotAllowedError,
)
from staffing_api.models.domain.contract import ContractStatus, ContractType
from staffing_api.models.dto.contract import ContractCreate, ContractRenew, ContractUpdate
from staffing_api.models.orm import ContractORM
from staffing_api.services.contract_service import ContractService


def cdd_request(world, **overrides) -> ContractCreate:
    values = {
        "employee_id": world.employee.id,
        "type": ContractType.CDD,
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 10, 1),
        "position": "Welder",
        "salary": Decimal("2500.00"),
    }
    values.update(overrides)
    return ContractCreate(**values)


async def count_contracts(session_maker, **filters) -> int:
    async with session_maker() as session:
        query = select(func.count()).select_from(ContractORM)
        for key, value in filters.items():
            query = query.where(getattr(ContractORM, key) == value)
        return (await session.execute(query)).scalar_one()


class TestCreateContract:
    async def test_creates_active_contract_and_audits(self, contract_service, world, audit_entries):
        response = await contract_service.create_contract(world.manager.id, world.firm_a.id, cdd_request(world))

        assert response.status == ContractStatus.ACTIVE
        assert response.is_active
        assert response.salary == Decimal("2500.00")
        assert response.alert_threshold == 30
        assert response.days_until_expiry == (date(2024, 10, 1) - TODAY).days
        assert not response.is_expired

        entries = await audit_entries(entity_id=response.id)
        assert [e.action for e in entries] == ["CREATE"]
        assert entries[0].entity == "CONTRACT"
        assert entries[0].actor_id == world.manager.id
        assert entries[0].extra_data["employeeId"] == str(world.employee.id)

    async def test_second_active_contract_is_refused(self, contract_service, world, session_maker):
        await contract_service.create_contract(world.manager.id, world.firm_a.id, cdd_request(world))

        with pytest.raises(ActiveContractExistsError):
            await contract_service.create_contract(
                world.manager.id,
                world.firm_a.id,
                cdd_request(world, start_date=date(2024, 11, 1), end_date=date(2025, 2, 1)),
            )

        assert await count_contracts(session_maker, employee_id=world.employee.id) == 1

    async def test_new_contract_allowed_after_termination(self, contract_service, world, make_contract):
        await make_contract(status="TERMINATED")

        response = await contract_service.create_contract(world.manager.id, world.firm_a.id, cdd_request(world))

        assert response.status == ContractStatus.ACTIVE

    async def test_unique_index_catches_a_lost_race(self, contract_service, world, monkeypatch):
        """Two writers that both passed the read check: the index refuses the second."""
        await contract_service.create_contract(world.manager.id, world.firm_a.id, cdd_request(world))
        monkeypatch.setattr(ContractService, "_ensure_no_active_contract", AsyncMock(return_value=None))

        with pytest.raises(ConcurrentModificationError):
            await contract_service.create_contract(world.manager.id, world.firm_a.id, cdd_request(world))

    async def test_fixed_term_requires_end_date(self, contract_service, world):
        with pytest.raises(MissingContractDatesError):
            await contract_service.create_contract(
                world.manager.id, world.firm_a.id, cdd_request(world, end_date=None)
            )

    async def test_indefinite_contract_without_end_date(self, contract_service, world):
        response = await contract_service.create_contract(
            world.manager.id,
            world.firm_a.id,
            cdd_request(world, type=ContractType.CDI, end_date=None),
        )

        assert response.end_date is None
        assert response.days_until_expiry is None

    async def test_end_before_start_is_refused(self, contract_service, world):
        with pytest.raises(InvalidDateRangeError):
            await contract_service.create_contract(
                world.manager.id, world.firm_a.id, cdd_request(world, end_date=date(2023, 12, 1))
            )

    async def test_employee_of_another_firm_is_not_found(self, contract_service, world):
        with pytest.raises(EmployeeNotFoundError):
            await contract_service.create_contract(
                world.manager.id, world.firm_a.id, cdd_request(world, employee_id=world.employee_b.id)
            )

    async def test_client_must_belong_to_the_firm(self, contract_service, world):
        with pytest.raises(ClientNotFoundError):
            await contract_service.create_contract(
                world.manager.id, world.firm_a.id, cdd_request(world, client_id=world.client_b.id)
            )

    async def test_staff_cannot_create(self, contract_service, world):
        with pytest.raises(InsufficientRoleError):
            await contract_service.create_contract(world.staff.id, world.firm_a.id, cdd_request(world))

    async def test_non_member_is_denied(self, contract_service, world):
        with pytest.raises(AccessDeniedError):
            await contract_service.create_contract(world.outsider.id, world.firm_a.id, cdd_request(world))


class TestQueries:
    async def test_list_paginates_and_sorts(self, contract_service, world, make_contract):
        for year in (2020, 2021, 2022):
            await make_contract(status="TERMINATED", start_date=date(year, 1, 1), end_date=date(year, 6, 1))
        await make_contract()

        page = await contract_service.list_contracts(
            world.staff.id, world.firm_a.id, sort_by="startDate", sort_order="asc", page=2, limit=2
        )

        assert page.pagination.total == 4
        assert page.pagination.total_pages == 2
        assert [c.start_date for c in page.contracts] == [date(2022, 1, 1), date(2024, 1, 1)]

    async def test_list_filters_and_ignores_unknown_values(self, contract_service, world, make_contract):
        await make_contract(status="TERMINATED", start_date=date(2021, 1, 1), end_date=date(2021, 6, 1))
        await make_contract()

        active = await contract_service.list_contracts(world.staff.id, world.firm_a.id, status="active")
        unknown = await contract_service.list_contracts(
            world.staff.id, world.firm_a.id, status="'; DROP TABLE contracts; --", sort_by="password"
        )

        assert [c.status for c in active.contracts] == [ContractStatus.ACTIVE]
        assert unknown.pagination.total == 2
        # Fallback sort is startDate descending
        assert unknown.contracts[0].start_date == date(2024, 1, 1)

    async def test_contract_of_another_firm_is_not_found(self, contract_service, world, make_contract):
        contract = await make_contract(firm_id=world.firm_b.id, employee_id=world.employee_b.id)

        with pytest.raises(ContractNotFoundError):
            await contract_service.get_contract(world.manager.id, world.firm_a.id, contract.id)

    async def test_expiring_uses_each_contract_alert_threshold(self, contract_service, world, make_contract):
        soon = await make_contract(end_date=date(2024, 6, 20))
        await make_contract(
            employee_id=world.employee_b.id, firm_id=world.firm_a.id, end_date=date(2024, 9, 1)
        )

        expiring = await contract_service.list_expiring(world.staff.id, world.firm_a.id)

        assert [c.id for c in expiring] == [soon.id]
        assert expiring[0].days_until_expiry == 19

    async def test_past_end_date_reads_as_expired(self, contract_service, world, make_contract):
        contract = await make_contract(start_date=date(2023, 6, 1), end_date=date(2024, 5, 1))

        detail = await contract_service.get_contract(world.staff.id, world.firm_a.id, contract.id)

        assert detail.status == ContractStatus.ACTIVE
        assert detail.is_expired

    async def test_employee_history_newest_first(self, contract_service, world, make_contract):
        await make_contract(status="RENEWED", start_date=date(2023, 1, 1), end_date=date(2023, 12, 1))
        await make_contract(start_date=date(2023, 12, 1), end_date=date(2024, 6, 1))

        history = await contract_service.list_employee_contracts(world.staff.id, world.firm_a.id, world.employee.id)

        assert [c.start_date for c in history] == [date(2023, 12, 1), date(2023, 1, 1)]

    async def test_employee_history_of_unknown_employee(self, contract_service, world):
        with pytest.raises(EmployeeNotFoundError):
            await contract_service.list_employee_contracts(
                world.staff.id, world.firm_a.id, world.employee_b.id
            )

    async def test_eligibility_preview_changes_nothing(self, contract_service, world, make_contract, fetch):
        contract = await make_contract()

        result = await contract_service.get_renewal_eligibility(
            world.staff.id, world.firm_a.id, contract.id, date(2024, 10, 1), date(2025, 4, 1)
        )

        assert result.is_eligible
        assert result.remaining_months == pytest.approx(8.8)
        assert (await fetch(ContractORM, contract.id)).status == "ACTIVE"


class TestUpdateContract:
    async def test_only_supplied_fields_change(self, contract_service, world, make_contract, audit_entries):
        contract = await make_contract(notes="keep me")

        response = await contract_service.update_contract(
            world.manager.id,
            world.firm_a.id,
            contract.id,
            ContractUpdate.model_validate({"position": "Foreman", "salary": "2750.50"}),
        )

        assert response.position == "Foreman"
        assert response.salary == Decimal("2750.50")
        assert response.notes == "keep me"
        assert response.status == ContractStatus.ACTIVE

        [entry] = await audit_entries(entity_id=contract.id, action="UPDATE")
        assert entry.extra_data["before"] == {"position": "Welder", "salary": "2500.00"}
        assert entry.extra_data["after"] == {"position": "Foreman", "salary": "2750.50"}

    async def test_update_cannot_break_date_rules(self, contract_service, world, make_contract):
        contract = await make_contract()

        with pytest.raises(MissingContractDatesError):
            await contract_service.update_contract(
                world.manager.id,
                world.firm_a.id,
                contract.id,
                ContractUpdate.model_validate({"endDate": None}),
            )


class TestRenewContract:
    async def test_renewal_creates_successor(self, contract_service, world, make_contract, fetch, audit_entries):
        contract = await make_contract(client_id=world.client_a.id, working_hours="35h")

        successor = await contract_service.renew_contract(
            world.manager.id,
            world.firm_a.id,
            contract.id,
            ContractRenew(start_date=date(2024, 10, 1), end_date=date(2025, 4, 1), salary=Decimal("2600.00")),
        )

        previous = await fetch(ContractORM, contract.id)
        assert previous.status == "RENEWED"
        assert previous.is_active is False

        assert successor.status == ContractStatus.ACTIVE
        assert successor.renewed_from_id == contract.id
        assert successor.type == ContractType.CDD
        assert successor.client_id == world.client_a.id
        assert successor.position == "Welder"
        assert successor.working_hours == "35h"
        assert successor.salary == Decimal("2600.00")

        [entry] = await audit_entries(action="RENEW")
        assert entry.entity_id == successor.id
        assert entry.extra_data["previousContractId"] == str(contract.id)
        assert entry.extra_data["newContractId"] == str(successor.id)

    async def test_explicit_null_clears_inherited_client(self, contract_service, world, make_contract):
        contract = await make_contract(client_id=world.client_a.id)

        successor = await contract_service.renew_contract(
            world.manager.id,
            world.firm_a.id,
            contract.id,
            ContractRenew.model_validate({"startDate": "2024-10-01", "endDate": "2025-01-01", "clientId": None}),
        )

        assert successor.client_id is None

    async def test_explicit_zero_threshold_is_kept(self, contract_service, world, make_contract):
        contract = await make_contract(alert_threshold=45, position="Welder")

        successor = await contract_service.renew_contract(
            world.manager.id,
            world.firm_a.id,
            contract.id,
            ContractRenew.model_validate(
                {"startDate": "2024-10-01", "endDate": "2025-01-01", "alertThreshold": 0, "position": None}
            ),
        )

        assert successor.alert_threshold == 0
        assert successor.position == "Welder"

    async def test_detail_links_predecessor_and_successor(self, contract_service, world, make_contract):
        contract = await make_contract()
        successor = await contract_service.renew_contract(
            world.manager.id,
            world.firm_a.id,
            contract.id,
            ContractRenew(start_date=date(2024, 10, 1), end_date=date(2025, 1, 1)),
        )

        original = await contract_service.get_contract(world.staff.id, world.firm_a.id, contract.id)
        renewed = await contract_service.get_contract(world.staff.id, world.firm_a.id, successor.id)

        assert [r.id for r in original.renewals] == [successor.id]
        assert renewed.renewed_from.id == contract.id

    async def test_over_cap_renewal_is_refused_with_details(
        self, contract_service, world, make_contract, session_maker
    ):
        await make_contract(status="RENEWED", start_date=date(2022, 1, 1), end_date=date(2022, 12, 27))
        contract = await make_contract(start_date=date(2022, 12, 27), end_date=date(2023, 12, 22))

        with pytest.raises(RenewalNotAllowedError) as exc_info:
            await contract_service.renew_contract(
                world.manager.id,
                world.firm_a.id,
                contract.id,
                ContractRenew(start_date=date(2023, 12, 22), end_date=date(2024, 3, 22)),
            )

        assert exc_info.value.details["remainingMonths"] <= 0
        assert await count_contracts(session_maker, status="ACTIVE") == 1

    async def test_long_contract_is_refused(self, contract_service, world, make_contract):
        contract = await make_contract(start_date=date(2023, 1, 1), end_date=date(2024, 3, 1))

        with pytest.raises(RenewalNotAllowedError) as exc_info:
            await contract_service.renew_contract(
                world.manager.id,
                world.firm_a.id,
                contract.id,
                ContractRenew(start_date=date(2024, 3, 1), end_date=date(2024, 4, 1)),
            )

        assert exc_info.value.details["contractDurationMonths"] == 14

    async def test_renewing_twice_is_refused(self, contract_service, world, make_contract):
        contract = await make_contract()
        renew = ContractRenew(start_date=date(2024, 10, 1), end_date=date(2025, 1, 1))
        await contract_service.renew_contract(world.manager.id, world.firm_a.id, contract.id, renew)

        with pytest.raises(RenewalNotAllowedError):
            await contract_service.renew_contract(world.manager.id, world.firm_a.id, contract.id, renew)


class TestTerminateAndDelete:
    async def test_terminate_records_reason_and_date(self, contract_service, world, make_contract):
        contract = await make_contract()

        response = await contract_service.terminate_contract(
            world.owner.id, world.firm_a.id, contract.id, "  End of mission \x00 "
        )

        assert response.status == ContractStatus.TERMINATED
        assert not response.is_active
        assert response.termination_date == TODAY
        assert response.termination_reason == "End of mission"

    async def test_terminate_requires_reason(self, contract_service, world, make_contract):
        contract = await make_contract()

        with pytest.raises(MissingReasonError):
            await contract_service.terminate_contract(world.owner.id, world.firm_a.id, contract.id, "   ")

    async def test_terminate_twice_is_illegal(self, contract_service, world, make_contract):
        contract = await make_contract()
        await contract_service.terminate_contract(world.owner.id, world.firm_a.id, contract.id, "Misconduct")

        with pytest.raises(IllegalTransitionError):
            await contract_service.terminate_contract(world.owner.id, world.firm_a.id, contract.id, "Again")

    async def test_manager_cannot_terminate(self, contract_service, world, make_contract):
        contract = await make_contract()

        with pytest.raises(InsufficientRoleError) as exc_info:
            await contract_service.terminate_contract(world.manager.id, world.firm_a.id, contract.id, "Budget")

        assert exc_info.value.details["allowed_roles"] == ["OWNER", "ADMIN"]

    async def test_delete_keeps_snapshot_in_audit(self, contract_service, world, make_contract, fetch, audit_entries):
        contract = await make_contract()

        await contract_service.delete_contract(world.owner.id, world.firm_a.id, contract.id)

        assert await fetch(ContractORM, contract.id) is None
        [entry] = await audit_entries(action="DELETE")
        assert entry.entity_id == contract.id
        assert entry.extra_data["contract"]["salary"] == "2500.00"
        assert entry.extra_data["contract"]["status"] == "ACTIVE"
