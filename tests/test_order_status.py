import pytest

from qrdine.core.exceptions import ConflictError
from qrdine.models import OrderStatus
from qrdine.services.order_status import (
    ProgressStep,
    can_transition,
    describe_progress,
    ensure_transition,
    estimated_wait_minutes,
    is_step_complete,
    progress_fraction,
)


@pytest.mark.parametrize("current, target", [
    (OrderStatus.PENDING, OrderStatus.PREPARING),
    (OrderStatus.PREPARING, OrderStatus.READY),
    (OrderStatus.PENDING, OrderStatus.READY),
    ("pending", "preparing"),
])
def test_forward_transitions_allowed(current, target):
    assert can_transition(current, target)
    assert ensure_transition(current, target) == OrderStatus(target)


@pytest.mark.parametrize("current, target", [
    (OrderStatus.READY, OrderStatus.PREPARING),
    (OrderStatus.PREPARING, OrderStatus.PENDING),
    (OrderStatus.READY, OrderStatus.PENDING),
    (OrderStatus.PREPARING, OrderStatus.PREPARING),
    (OrderStatus.PENDING, "delivered"),
])
def test_backward_same_and_unknown_transitions_rejected(current, target):
    assert not can_transition(current, target)
    with pytest.raises(ConflictError):
        ensure_transition(current, target)


def test_estimated_wait_per_status():
    assert estimated_wait_minutes(OrderStatus.PENDING) == 15
    assert estimated_wait_minutes(OrderStatus.PREPARING) == 7
    assert estimated_wait_minutes(OrderStatus.READY) == 0


@pytest.mark.parametrize("value", ["cancelled", "", None, 42])
def test_unknown_status_falls_back(value):
    assert estimated_wait_minutes(value) == 10
    assert progress_fraction(value) == 0.0


def test_progress_fraction():
    assert progress_fraction(OrderStatus.PENDING) == pytest.approx(1 / 3)
    assert progress_fraction("preparing") == pytest.approx(2 / 3)
    assert progress_fraction(OrderStatus.READY) == 1.0


def test_step_completion():
    assert is_step_complete(ProgressStep.RECEIVED, OrderStatus.PENDING)
    assert not is_step_complete(ProgressStep.PREPARING, OrderStatus.PENDING)
    assert is_step_complete(ProgressStep.PREPARING, OrderStatus.PREPARING)
    assert is_step_complete(ProgressStep.PREPARING, OrderStatus.READY)
    assert not is_step_complete(ProgressStep.READY, OrderStatus.PREPARING)
    assert is_step_complete(ProgressStep.READY, OrderStatus.READY)


def test_skipping_to_ready_gives_ready_progress():
    target = ensure_transition(OrderStatus.PENDING, OrderStatus.READY)
    progress = describe_progress(target)

    assert progress["progress"] == 1.0
    assert progress["estimated_wait_minutes"] == 0
    assert all(step["complete"] for step in progress["steps"])
