"""
Order Status Model

Canonical status semantics shared by the API and the kitchen services:
forward-only transitions and the derived display values (estimated wait,
progress fraction, tracker steps).

Statuses move pending -> preparing -> ready. Derived values accept raw
strings as well as OrderStatus members; unrecognized values fall back
instead of raising so a bad row can never break a tracking page.
"""

import enum
from typing import Optional, Union

from qrdine.core.exceptions import ConflictError
from qrdine.models import OrderStatus

StatusLike = Union[OrderStatus, str, None]

STATUS_SEQUENCE = (OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY)

ESTIMATED_WAIT_MINUTES = {
    OrderStatus.PENDING: 15,
    OrderStatus.PREPARING: 7,
    OrderStatus.READY: 0,
}
UNKNOWN_STATUS_WAIT_MINUTES = 10

PROGRESS_FRACTION = {
    OrderStatus.PENDING: 1 / 3,
    OrderStatus.PREPARING: 2 / 3,
    OrderStatus.READY: 1.0,
}


class ProgressStep(str, enum.Enum):
    """Steps shown on the customer's order tracker."""
    RECEIVED = "received"
    PREPARING = "preparing"
    READY = "ready"


def parse_status(value: StatusLike) -> Optional[OrderStatus]:
    """Return the OrderStatus for value, or None if it is not one."""
    if isinstance(value, OrderStatus):
        return value
    if value is None:
        return None
    try:
        return OrderStatus(str(value).lower())
    except ValueError:
        return None


def can_transition(current: StatusLike, target: StatusLike) -> bool:
    """
    Whether an order may move from current to target.

    Only strictly forward moves are allowed. Skipping a step
    (pending -> ready) counts as forward.
    """
    current_status = parse_status(current)
    target_status = parse_status(target)
    if current_status is None or target_status is None:
        return False
    return STATUS_SEQUENCE.index(target_status) > STATUS_SEQUENCE.index(current_status)


def ensure_transition(current: StatusLike, target: StatusLike) -> OrderStatus:
    """
    Validate a transition and return the target status.

    Raises:
        ConflictError: target is not strictly after current
    """
    if not can_transition(current, target):
        raise ConflictError(
            f"Cannot change order status from '{_label(current)}' to '{_label(target)}'"
        )
    return parse_status(target)


def estimated_wait_minutes(status: StatusLike) -> int:
    """Remaining wait shown to the customer, in minutes."""
    parsed = parse_status(status)
    if parsed is None:
        return UNKNOWN_STATUS_WAIT_MINUTES
    return ESTIMATED_WAIT_MINUTES[parsed]


def progress_fraction(status: StatusLike) -> float:
    """Fraction of the progress bar to fill, 0.0 for unknown statuses."""
    parsed = parse_status(status)
    if parsed is None:
        return 0.0
    return PROGRESS_FRACTION[parsed]


def is_step_complete(step: ProgressStep, status: StatusLike) -> bool:
    """Whether a tracker step is complete for an order in status."""
    if step == ProgressStep.RECEIVED:
        return True
    parsed = parse_status(status)
    if step == ProgressStep.PREPARING:
        return parsed in (OrderStatus.PREPARING, OrderStatus.READY)
    return parsed == OrderStatus.READY


def describe_progress(status: StatusLike) -> dict:
    """All derived tracking values for one status."""
    return {
        "estimated_wait_minutes": estimated_wait_minutes(status),
        "progress": progress_fraction(status),
        "steps": [
            {"step": step.value, "complete": is_step_complete(step, status)}
            for step in ProgressStep
        ],
    }


def _label(value: StatusLike) -> str:
    if isinstance(value, OrderStatus):
        return value.value
    return str(value)
