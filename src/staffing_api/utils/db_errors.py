"""Classification of database integrity errors."""

from sqlalchemy.exc import IntegrityError

# Partial unique indexes guarding the per-employee invariants
GUARD_INDEXES = (
    "uq_contracts_one_active_per_employee",
    "uq_transfers_one_pending_per_employee",
)


def is_unique_violation(error: IntegrityError) -> bool:
    """Check whether an integrity error is a unique constraint violation.

    PostgreSQL reports the index name, SQLite only "UNIQUE constraint failed".
    """
    message = str(error.orig if error.orig is not None else error).lower()
    if any(index in message for index in GUARD_INDEXES):
        return True
    return "unique" in message or "duplicate" in message
