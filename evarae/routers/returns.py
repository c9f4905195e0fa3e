import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional

from evarae.config import get_settings
from evarae.models.user import User, get_db
from evarae.models.order import Order
from evarae.models.return_request import ReturnRequest
from evarae.schemas.order import OrderStatus, PaymentStatus
from evarae.schemas.return_request import (
    ReturnOrderItem,
    ReturnReason,
    ReturnRequestCreate,
    ReturnRequestOut,
    ReturnRequestStatus,
)
from evarae.services.returns import is_within_return_window
from evarae.utils.security import get_current_user


logger = logging.getLogger(__name__)

router = APIRouter()

MIN_IMAGES = 2
MAX_IMAGES = 5
MAX_NOTE_LENGTH = 1000

# A new request for an item is refused while one of these is open
OPEN_STATUSES = (
    ReturnRequestStatus.PENDING.value,
    ReturnRequestStatus.APPROVED.value,
    ReturnRequestStatus.PROCESSING.value,
)
# Only settled payments can be refunded through a return
PAID_STATUSES = (PaymentStatus.PAID.value, PaymentStatus.COMPLETED.value)


def map_return_to_out(r: ReturnRequest) -> ReturnRequestOut:
    return ReturnRequestOut(
        id=r.id,
        orderId=r.order_id,
        userId=r.user_id,
        orderItem=ReturnOrderItem(
            sku=r.item_sku,
            name=r.item_name,
            price=r.item_price,
            quantity=r.item_quantity,
        ),
        returnReason=r.return_reason,
        note=r.note or "",
        images=list(r.images or []),
        status=r.status,
        adminNotes=r.admin_notes,
        processedAt=r.processed_at.isoformat() if r.processed_at else None,
        createdAt=r.created_at.isoformat() if r.created_at else None,
        updatedAt=r.updated_at.isoformat() if r.updated_at else None,
    )


def _get_user(db: Session, email: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise HTTPException(status_code=401, detail="Invalid user")
    return user


# Get Return Requests (own)
@router.get("/")
def get_my_return_requests(
    orderId: Optional[int] = Query(None),
    sku: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user_email: str = Depends(get_current_user),
):
    user = _get_user(db, current_user_email)
    query = db.query(ReturnRequest).filter(ReturnRequest.user_id == user.id)

    # Single item lookup: newest request for this order line
    if orderId is not None and sku:
        req = (
            query.filter(ReturnRequest.order_id == orderId, ReturnRequest.item_sku == sku)
            .order_by(ReturnRequest.created_at.desc(), ReturnRequest.id.desc())
            .first()
        )
        return {"returnRequest": map_return_to_out(req) if req else None}

    if orderId is not None:
        query = query.filter(ReturnRequest.order_id == orderId)
    reqs = query.order_by(ReturnRequest.created_at.desc(), ReturnRequest.id.desc()).all()
    return {"returnRequests": [map_return_to_out(r) for r in reqs]}


# Get Return Request by ID (own)
@router.get("/{id}")
def get_my_return_request(
    id: int,
    db: Session = Depends(get_db),
    current_user_email: str = Depends(get_current_user),
):
    user = _get_user(db, current_user_email)
    req = db.query(ReturnRequest).filter(ReturnRequest.id == id, ReturnRequest.user_id == user.id).first()
    if not req:
        raise HTTPException(status_code=404, detail="Return request not found")
    return {"returnRequest": map_return_to_out(req)}


# Create Return Request
@router.post("/")
def create_return_request(
    payload: ReturnRequestCreate,
    db: Session = Depends(get_db),
    current_user_email: str = Depends(get_current_user),
):
    user = _get_user(db, current_user_email)

    if len(payload.images) < MIN_IMAGES or len(payload.images) > MAX_IMAGES:
        raise HTTPException(status_code=400, detail="Please provide 2-5 images")
    if not all(img.strip() for img in payload.images):
        raise HTTPException(status_code=400, detail="All images must be valid URLs")
    if payload.returnReason not in {r.value for r in ReturnReason}:
        raise HTTPException(status_code=400, detail="Invalid return reason")

    order = db.query(Order).filter(Order.id == payload.orderId, Order.user_id == user.id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found or access denied")

    if order.order_status != OrderStatus.DELIVERED.value:
        raise HTTPException(status_code=400, detail="Only delivered orders can be returned")
    if order.payment_status not in PAID_STATUSES:
        raise HTTPException(status_code=400, detail="Only paid orders can be returned")
    if not is_within_return_window(order.paid_at):
        raise HTTPException(
            status_code=400,
            detail=f"Return window has expired. Returns are only allowed within {get_settings().RETURN_WINDOW_DAYS:g} days of purchase.",
        )

    sku = payload.orderItem.sku
    if not any(item.sku == sku for item in order.items):
        raise HTTPException(status_code=400, detail="Item is not part of this order")

    existing = (
        db.query(ReturnRequest.id)
        .filter(
            ReturnRequest.order_id == order.id,
            ReturnRequest.item_sku == sku,
            ReturnRequest.status.in_(OPEN_STATUSES),
        )
        .first()
    )
    if existing:
        raise HTTPException(status_code=409, detail="A return request already exists for this item")

    req = ReturnRequest(
        order_id=order.id,
        user_id=user.id,
        item_sku=sku,
        item_name=payload.orderItem.name,
        item_price=payload.orderItem.price,
        item_quantity=payload.orderItem.quantity,
        return_reason=payload.returnReason,
        note=(payload.note or "").strip()[:MAX_NOTE_LENGTH],
        images=[img.strip() for img in payload.images],
        status=ReturnRequestStatus.PENDING.value,
    )
    db.add(req)
    db.commit()
    db.refresh(req)
    logger.info("Return request %s created for order %s sku %s", req.id, order.id, sku)
    return {"success": True, "returnRequest": map_return_to_out(req)}
