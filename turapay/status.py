"""
Transaction status vocabulary and the legal transitions between states.

pending is the only state an operator or gateway confirmation acts on;
processing is entered once a disbursement has been handed to the gateway.
Every other state is terminal.
"""
from enum import Enum

from turapay.errors import IllegalTransition


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DEPOSITED = "deposited"
    PAID = "paid"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


ALLOWED_TRANSITIONS = {
    TransactionStatus.PENDING: {
        TransactionStatus.PROCESSING,
        TransactionStatus.DEPOSITED,
        TransactionStatus.PAID,
        TransactionStatus.COMPLETED,
        TransactionStatus.REJECTED,
        TransactionStatus.FAILED,
    },
    TransactionStatus.PROCESSING: {
        TransactionStatus.COMPLETED,
        TransactionStatus.FAILED,
    },
}

TERMINAL_STATUSES = frozenset(
    status for status in TransactionStatus if status not in ALLOWED_TRANSITIONS
)

# Statuses counted as money delivered on dashboards
SUCCESS_STATUSES = (
    TransactionStatus.COMPLETED,
    TransactionStatus.PAID,
    TransactionStatus.DEPOSITED,
)


def is_terminal(status) -> bool:
    return TransactionStatus(status) in TERMINAL_STATUSES


def can_transition(current, target) -> bool:
    return TransactionStatus(target) in ALLOWED_TRANSITIONS.get(TransactionStatus(current), set())


def ensure_transition(current, target) -> None:
    """Raise IllegalTransition unless current -> target is whitelisted."""
    try:
        allowed = can_transition(current, target)
    except ValueError:
        raise IllegalTransition(f"Unknown status transition {current} -> {target}")
    if not allowed:
        raise IllegalTransition(
            f"Cannot move transaction from {TransactionStatus(current).value} "
            f"to {TransactionStatus(target).value}"
        )
