"""Domain-specific exceptions for the staffing API.

These exceptions provide a clean separation between service-layer errors
and HTTP responses, avoiding string matching in routers. Every class
carries a stable machine-readable ``code`` and the HTTP status it maps to.
"""

from typing import Any


class StaffingAPIError(Exception):
    """Base exception for all staffing API errors."""

    code = "error"
    status_code = 500

    def __init__(self, message: str = "An error occurred", details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# =============================================================================
# Authentication / Authorization Errors (401, 403)
# =============================================================================


class UnauthenticatedError(StaffingAPIError):
    """Raised when no caller identity is available."""

    code = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class ForbiddenError(StaffingAPIError):
    """Base class for authorization failures."""

    code = "forbidden"
    status_code = 403


class AccessDeniedError(ForbiddenError):
    """Raised when the caller has no membership in the firm."""

    def __init__(self, firm_id: str | None = None) -> None:
        details = {"firm_id": str(firm_id)} if firm_id else {}
        super().__init__("Access denied", details)


class InsufficientRoleError(ForbiddenError):
    """Raised when the caller's firm role is below the operation's floor."""

    def __init__(self, role: str, allowed_roles: list[str]) -> None:
        super().__init__(
            "Insufficient role",
            {"role": role, "allowed_roles": allowed_roles},
        )


# =============================================================================
# Resource Not Found Errors (404)
# =============================================================================


class NotFoundError(StaffingAPIError):
    """Base class for resource not found errors.

    Entities outside the caller's firm are reported as not found so that
    existence does not leak across tenants.
    """

    code = "not_found"
    status_code = 404


class ContractNotFoundError(NotFoundError):
    """Raised when a contract cannot be found in the firm."""

    def __init__(self, contract_id: str | None = None) -> None:
        details = {"contract_id": str(contract_id)} if contract_id else {}
        super().__init__("Contract not found", details)


class TransferNotFoundError(NotFoundError):
    """Raised when a transfer cannot be found for the firm."""

    def __init__(self, transfer_id: str | None = None) -> None:
        details = {"transfer_id": str(transfer_id)} if transfer_id else {}
        super().__init__("Transfer not found", details)


class EmployeeNotFoundError(NotFoundError):
    """Raised when an employee cannot be found in the firm."""

    def __init__(self, employee_id: str | None = None) -> None:
        details = {"employee_id": str(employee_id)} if employee_id else {}
        super().__init__("Employee not found", details)


class FirmNotFoundError(NotFoundError):
    """Raised when a firm cannot be found."""

    def __init__(self, firm_id: str | None = None) -> None:
        details = {"firm_id": str(firm_id)} if firm_id else {}
        super().__init__("Firm not found", details)


class ClientNotFoundError(NotFoundError):
    """Raised when a client cannot be found in the firm."""

    def __init__(self, client_id: str | None = None) -> None:
        details = {"client_id": str(client_id)} if client_id else {}
        super().__init__("Client not found", details)


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(StaffingAPIError):
    """Base class for missing or malformed input."""

    code = "validation_error"
    status_code = 400


class MissingContractDatesError(ValidationError):
    """Raised when a fixed-term contract type lacks an end date."""

    def __init__(self, contract_type: str) -> None:
        super().__init__(
            f"End date is required for {contract_type} contracts",
            {"type": contract_type, "missing": ["end_date"]},
        )


class InvalidDateRangeError(ValidationError):
    """Raised when an end date is before its start date."""

    def __init__(self, start: Any, end: Any) -> None:
        super().__init__(
            "End date must not be before start date",
            {"start_date": str(start), "end_date": str(end)},
        )


class MissingReasonError(ValidationError):
    """Raised when a mandatory reason is empty."""

    def __init__(self, what: str = "reason") -> None:
        super().__init__(f"A {what} is required", {"missing": [what]})


class HoldingMismatchError(ValidationError):
    """Raised when a transfer spans firms of different holdings."""

    def __init__(self, from_firm_id: Any, to_firm_id: Any) -> None:
        super().__init__(
            "Transfers can only occur between firms in the same holding",
            {"from_firm_id": str(from_firm_id), "to_firm_id": str(to_firm_id)},
        )


# =============================================================================
# Business Rule Violations (422)
# =============================================================================


class BusinessRuleViolation(StaffingAPIError):
    """Base class for deterministic business-rule rejections."""

    code = "business_rule_violation"
    status_code = 422


class ActiveContractExistsError(BusinessRuleViolation):
    """Raised when an employee already holds an ACTIVE contract."""

    def __init__(self, employee_id: Any, contract_id: Any = None) -> None:
        details = {"employee_id": str(employee_id)}
        if contract_id is not None:
            details["active_contract_id"] = str(contract_id)
        super().__init__("Employee already has an active contract", details)


class PendingTransferExistsError(BusinessRuleViolation):
    """Raised when an employee already has a PENDING transfer."""

    def __init__(self, employee_id: Any, transfer_id: Any = None) -> None:
        details = {"employee_id": str(employee_id)}
        if transfer_id is not None:
            details["pending_transfer_id"] = str(transfer_id)
        super().__init__("Employee already has a pending transfer request", details)


class RenewalNotAllowedError(BusinessRuleViolation):
    """Raised when the renewal eligibility check fails."""

    def __init__(self, reason: str, details: dict[str, Any]) -> None:
        super().__init__(reason, details)


class IllegalTransitionError(BusinessRuleViolation):
    """Raised when a state machine transition is not permitted."""

    def __init__(self, entity: str, current: str, action: str) -> None:
        super().__init__(
            f"Cannot {action} a {entity} in status {current}",
            {"entity": entity, "current_status": current, "action": action},
        )


class EffectiveDateNotReachedError(BusinessRuleViolation):
    """Raised when a transfer is completed before its effective date."""

    def __init__(self, effective_date: Any) -> None:
        super().__init__(
            "Cannot complete transfer before effective date",
            {"effective_date": str(effective_date)},
        )


class EmployeeNotInSourceFirmError(BusinessRuleViolation):
    """Raised when a transfer is completed for an employee who already left its source firm."""

    def __init__(self, employee_id: Any, from_firm_id: Any) -> None:
        super().__init__(
            "Employee no longer belongs to the source firm",
            {"employee_id": str(employee_id), "from_firm_id": str(from_firm_id)},
        )


# =============================================================================
# Conflict Errors (409)
# =============================================================================


class ConflictError(StaffingAPIError):
    """Base class for resource conflict errors."""

    code = "conflict"
    status_code = 409


class ConcurrentModificationError(ConflictError):
    """Raised when a concurrent mutation won the race for a unique slot."""

    def __init__(self, message: str = "Concurrent modification detected") -> None:
        super().__init__(message)


# =============================================================================
# Internal Errors (500)
# =============================================================================


class InternalError(StaffingAPIError):
    """Base class for unexpected persistence failures."""

    code = "internal"
    status_code = 500


class DataIntegrityError(InternalError):
    """Raised when stored data violates an invariant it should never break."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)


class AuditWriteError(InternalError):
    """Raised when the audit record cannot be written."""

    def __init__(self, action: str) -> None:
        super().__init__("Failed to write audit log", {"action": action})
