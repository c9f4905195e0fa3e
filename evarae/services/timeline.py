"""Order delivery/return timeline projection.

Merges an order's fulfilment status with its return requests into the stage
list the order page draws: which stages exist, which one is current, and
which are done. Everything here is a pure function of its arguments; the
projection is recomputed on every read and never stored.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence, Tuple

from evarae.schemas.order import OrderStatus, PROGRESS_SEQUENCE
from evarae.services.returns import (
    RETURN_STAGE_KEY,
    ReturnSnapshot,
    resolve_active_return,
    returns_for_order,
)


@dataclass(frozen=True)
class TimelineStage:
    key: str
    label: str


STAGE_LABELS = {
    OrderStatus.PENDING: "Order Placed",
    OrderStatus.CONFIRMED: "Confirmed",
    OrderStatus.PROCESSING: "Processing",
    OrderStatus.SHIPPED: "Shipped",
    OrderStatus.DELIVERED: "Delivered",
}

BASE_STAGES: Tuple[TimelineStage, ...] = tuple(
    TimelineStage(status.value, STAGE_LABELS[status]) for status in PROGRESS_SEQUENCE
)
RETURN_STAGE = TimelineStage(RETURN_STAGE_KEY, "Return")


@dataclass(frozen=True)
class StageState:
    key: str
    label: str
    is_completed: bool
    is_current: bool


@dataclass(frozen=True)
class TimelineProjection:
    status: str
    current_index: int
    return_completed: bool
    stages: Tuple[StageState, ...]
    # connectors[i] sits between stages[i] and stages[i + 1]
    connectors: Tuple[bool, ...]

    @property
    def has_return_stage(self) -> bool:
        return bool(self.stages) and self.stages[-1].key == RETURN_STAGE_KEY


def status_key(status: Any) -> str:
    if isinstance(status, Enum):
        return str(status.value)
    return str(status or "").lower()


def index_of(status: Any, stages: Sequence[TimelineStage] = BASE_STAGES) -> int:
    """Position of ``status`` in ``stages``; unknown statuses map to 0."""
    key = status_key(status)
    for index, stage in enumerate(stages):
        if stage.key == key:
            return index
    return 0


def project_timeline(order_status: Any, return_requests: Iterable[ReturnSnapshot]) -> TimelineProjection:
    order_status = status_key(order_status)
    active = resolve_active_return(return_requests)
    is_returned = order_status == OrderStatus.RETURNED.value

    stages = BASE_STAGES
    if active is not None or is_returned:
        stages = BASE_STAGES + (RETURN_STAGE,)

    if is_returned:
        # The order-level status is authoritative when no request is on record
        status = RETURN_STAGE_KEY
        return_completed = active.is_completed if active is not None else True
    elif order_status == OrderStatus.DELIVERED.value and active is not None:
        status = RETURN_STAGE_KEY
        return_completed = active.is_completed
    else:
        status = order_status
        return_completed = False

    current_index = index_of(status, stages)

    states = []
    for index, stage in enumerate(stages):
        if return_completed:
            completed = index <= current_index
        elif stage.key == RETURN_STAGE_KEY and index == current_index:
            completed = False
        else:
            completed = index <= current_index
        states.append(
            StageState(
                key=stage.key,
                label=stage.label,
                is_completed=completed,
                is_current=index == current_index and not return_completed,
            )
        )

    return TimelineProjection(
        status=status,
        current_index=current_index,
        return_completed=return_completed,
        stages=tuple(states),
        connectors=tuple(index < current_index for index in range(len(stages) - 1)),
    )


def project_order_timeline(order, return_requests: Iterable[ReturnSnapshot]) -> TimelineProjection:
    """Project an ``Order`` row, ignoring requests that belong to other orders."""
    return project_timeline(order.order_status, returns_for_order(order.id, return_requests))
