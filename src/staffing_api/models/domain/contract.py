"""Contract domain model."""

from datetime import date
from enum import StrEnum


class ContractType(StrEnum):
    """Contract type codes."""

    CDI = "CDI"  # indefinite
    CDD = "CDD"  # fixed-term
    INTERIM = "INTERIM"  # temporary staffing
    STAGE = "STAGE"  # internship
    PRESTATION = "PRESTATION"  # service contract


class ContractStatus(StrEnum):
    """Contract status enum."""

    ACTIVE = "ACTIVE"
    RENEWED = "RENEWED"
    TERMINATED = "TERMINATED"
    EXPIRED = "EXPIRED"


# Types bound by the cumulative duration cap; they also require an end date
CAPPED_TYPES = frozenset({ContractType.CDD, ContractType.INTERIM, ContractType.PRESTATION})

# Statuses counted toward the cumulative duration cap
CUMULATIVE_STATUSES = frozenset({ContractStatus.ACTIVE, ContractStatus.RENEWED})

# Statuses from which no further transition is possible
FINAL_STATUSES = frozenset({ContractStatus.TERMINATED, ContractStatus.EXPIRED})


def requires_end_date(contract_type: ContractType | str) -> bool:
    """Check whether a contract type must carry an end date."""
    return ContractType(contract_type) in CAPPED_TYPES


def is_expired(status: str, end_date: date | None, today: date) -> bool:
    """Derived expiry: an ACTIVE contract whose end date has passed."""
    return status == ContractStatus.ACTIVE and end_date is not None and end_date < today
