"""
Payment and expense status rules.

Only completed, received payments and approved expenses enter a
profitability summary, so every status change on those rows goes through
validate_status_transition.
"""

from typing import Any, Mapping, Optional, Sequence

from crm_backend.utils.constants import (
    EXPENSE_STATUS_TRANSITIONS,
    PAYMENT_STATUS_TRANSITIONS,
    PAYMENT_TYPE_RECEIVED,
)


def validate_status_transition(
    record: str,
    current: Optional[str],
    new: str,
    transitions: Mapping[str, Sequence[str]],
) -> str:
    """
    Check that a row may move from current to new.

    Setting the status a row already has is always allowed.

    Raises:
        ValueError: If new is unknown or not reachable from current.

    Example:
        >>> validate_status_transition("payment", "pending", "completed", PAYMENT_STATUS_TRANSITIONS)
        'completed'
    """
    if new not in transitions:
        raise ValueError(f"Unknown {record} status: {new}")
    if current == new:
        return new
    if new not in transitions.get(current or "", ()):
        raise ValueError(f"{record.capitalize()} status cannot change from {current} to {new}")
    return new


def validate_payment_transition(current: Optional[str], new: str) -> str:
    return validate_status_transition("payment", current, new, PAYMENT_STATUS_TRANSITIONS)


def validate_expense_transition(current: Optional[str], new: str) -> str:
    return validate_status_transition("expense", current, new, EXPENSE_STATUS_TRANSITIONS)


def is_incoming(payment: Mapping[str, Any]) -> bool:
    # Rows written before payment_type existed are incoming
    return (payment.get("payment_type") or PAYMENT_TYPE_RECEIVED) == PAYMENT_TYPE_RECEIVED
