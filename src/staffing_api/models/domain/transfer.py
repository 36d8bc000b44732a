"""Employee transfer domain model."""

from enum import StrEnum


class TransferStatus(StrEnum):
    """Transfer status enum."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class TransferAction(StrEnum):
    """Actions that move a transfer between statuses."""

    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    COMPLETE = "complete"
    UPDATE = "update"


class TransferDirection(StrEnum):
    """Transfer list direction relative to a firm."""

    IN = "in"
    OUT = "out"


# Legal transitions: (current status, action) -> next status
TRANSITIONS: dict[tuple[TransferStatus, TransferAction], TransferStatus] = {
    (TransferStatus.PENDING, TransferAction.APPROVE): TransferStatus.APPROVED,
    (TransferStatus.PENDING, TransferAction.REJECT): TransferStatus.REJECTED,
    (TransferStatus.PENDING, TransferAction.CANCEL): TransferStatus.CANCELLED,
    (TransferStatus.REJECTED, TransferAction.CANCEL): TransferStatus.CANCELLED,
    (TransferStatus.APPROVED, TransferAction.COMPLETE): TransferStatus.COMPLETED,
    (TransferStatus.PENDING, TransferAction.UPDATE): TransferStatus.PENDING,
}


def next_status(current: TransferStatus | str, action: TransferAction) -> TransferStatus | None:
    """Get the status reached by applying ``action``, or None if illegal."""
    return TRANSITIONS.get((TransferStatus(current), action))
