"""Return request aggregation and the return eligibility window.

An order can carry several return requests, one per returned line item, each
with its own lifecycle. The order timeline only has room for one return
stage, so the requests are collapsed to a single representative here.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Union

from evarae.config import get_settings
from evarae.schemas.return_request import ReturnRequestStatus


RETURN_STAGE_KEY = "return"

# Higher wins when several returns are active on one order
RETURN_PRIORITY = {
    ReturnRequestStatus.PENDING: 1,
    ReturnRequestStatus.APPROVED: 2,
    ReturnRequestStatus.PROCESSING: 3,
    ReturnRequestStatus.COMPLETED: 4,
    ReturnRequestStatus.REJECTED: 0,
}

_unranked = set(ReturnRequestStatus) - set(RETURN_PRIORITY)
if _unranked:
    raise RuntimeError(f"Return statuses without a priority: {sorted(s.value for s in _unranked)}")

# Moves an admin may make; completed and rejected are terminal
RETURN_TRANSITIONS = {
    ReturnRequestStatus.PENDING: {ReturnRequestStatus.APPROVED, ReturnRequestStatus.REJECTED},
    ReturnRequestStatus.APPROVED: {ReturnRequestStatus.PROCESSING, ReturnRequestStatus.REJECTED},
    ReturnRequestStatus.PROCESSING: {ReturnRequestStatus.COMPLETED, ReturnRequestStatus.REJECTED},
    ReturnRequestStatus.COMPLETED: set(),
    ReturnRequestStatus.REJECTED: set(),
}


def parse_timestamp(value: Union[datetime, str, None]) -> Optional[datetime]:
    """Return an aware UTC datetime; naive values are taken to be UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_return_status(value: Any) -> Optional[ReturnRequestStatus]:
    if isinstance(value, ReturnRequestStatus):
        return value
    try:
        return ReturnRequestStatus(str(value).lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class ReturnSnapshot:
    """The fields of a return request the timeline reads.

    ``status`` keeps the raw value so unknown statuses pass through unharmed.
    """

    id: Any
    order_id: Any
    status: str
    item_sku: str = ""
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "ReturnSnapshot":
        return cls(
            id=row.id,
            order_id=row.order_id,
            status=row.status,
            item_sku=row.item_sku or "",
            created_at=parse_timestamp(row.created_at),
        )

    @classmethod
    def from_payload(cls, data: dict) -> "ReturnSnapshot":
        item = data.get("orderItem") or {}
        return cls(
            id=data.get("id"),
            order_id=data.get("orderId"),
            status=data.get("status"),
            item_sku=item.get("sku", ""),
            created_at=parse_timestamp(data.get("createdAt")),
        )


@dataclass(frozen=True)
class ActiveReturn:
    request: ReturnSnapshot
    is_completed: bool
    status: str = RETURN_STAGE_KEY


def return_priority(status: Any) -> int:
    coerced = coerce_return_status(status)
    if coerced is None:
        return 0
    return RETURN_PRIORITY[coerced]


def can_transition(current: Any, new: Any) -> bool:
    """Unknown statuses on either side never allow a move."""
    source = coerce_return_status(current)
    target = coerce_return_status(new)
    if source is None or target is None:
        return False
    return target in RETURN_TRANSITIONS[source]


def is_active(request: ReturnSnapshot) -> bool:
    return coerce_return_status(request.status) is not ReturnRequestStatus.REJECTED


def returns_for_order(order_id: Any, requests: Iterable[ReturnSnapshot]) -> List[ReturnSnapshot]:
    return [r for r in requests if r.order_id == order_id]


def resolve_active_return(requests: Iterable[ReturnSnapshot]) -> Optional[ActiveReturn]:
    """Pick the most advanced non-rejected return.

    Ordering is priority descending, then ``created_at`` ascending (requests
    without a timestamp go last), then input order.
    """
    active = [r for r in requests if is_active(r)]
    if not active:
        return None

    def rank(pair):
        position, request = pair
        return (
            -return_priority(request.status),
            request.created_at is None,
            request.created_at or datetime.min.replace(tzinfo=timezone.utc),
            position,
        )

    _, representative = min(enumerate(active), key=rank)
    return ActiveReturn(
        request=representative,
        is_completed=coerce_return_status(representative.status) is ReturnRequestStatus.COMPLETED,
    )


def is_within_return_window(
    paid_at: Union[datetime, str, None],
    now: Optional[datetime] = None,
    window_days: Optional[float] = None,
) -> bool:
    """True while the order is no older than the return window.

    The age is measured in fractional days, so exactly ``window_days`` old is
    still eligible. A payment timestamp in the future is rejected.
    """
    paid = parse_timestamp(paid_at)
    if paid is None:
        return False
    if window_days is None:
        window_days = get_settings().RETURN_WINDOW_DAYS
    current = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    days = (current - paid).total_seconds() / 86400
    return 0 <= days <= window_days
