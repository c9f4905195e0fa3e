import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime

from evarae.models.user import User, get_db
from evarae.models.order import Order
from evarae.models.return_request import ReturnRequest
from evarae.schemas.order import (
    OrderOut,
    OrderItemOut,
    OrderStatusUpdate,
    OrderPaymentStatusUpdate,
    PaymentStatus,
)
from evarae.schemas.timeline import TimelineOut, TimelineStageOut
from evarae.services.returns import ReturnSnapshot, is_within_return_window
from evarae.services.timeline import project_order_timeline
from evarae.utils.security import get_current_user, require_admin


logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()


def map_order_to_out(order: Order) -> OrderOut:
    items = [
        OrderItemOut(
            id=i.id,
            sku=i.sku,
            name=i.name,
            quantity=i.quantity,
            price=i.price,
        )
        for i in order.items
    ]
    return OrderOut(
        id=order.id,
        orderNumber=order.order_number,
        items=items,
        totalAmount=order.total_amount or 0.0,
        status=order.order_status,
        paymentStatus=order.payment_status,
        paidAt=order.paid_at.isoformat() if order.paid_at else None,
        returnEligible=is_within_return_window(order.paid_at),
        createdAt=order.created_at.isoformat(),
        updatedAt=order.updated_at.isoformat(),
    )


def _get_user(db: Session, email: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise HTTPException(status_code=401, detail="Invalid user")
    return user


def _get_user_order(db: Session, order_id: int, email: str) -> Order:
    user = _get_user(db, email)
    order = db.query(Order).filter(Order.id == order_id, Order.user_id == user.id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


# Get User Orders
@router.get("/", response_model=List[OrderOut])
def get_user_orders(
    db: Session = Depends(get_db),
    current_user_email: str = Depends(get_current_user),
):
    user = _get_user(db, current_user_email)
    orders = db.query(Order).filter(Order.user_id == user.id).order_by(Order.created_at.desc()).all()
    return [map_order_to_out(o) for o in orders]


# Get Order by ID
@router.get("/{id}", response_model=OrderOut)
def get_order_by_id(
    id: int,
    db: Session = Depends(get_db),
    current_user_email: str = Depends(get_current_user),
):
    return map_order_to_out(_get_user_order(db, id, current_user_email))


# Get Order Delivery Timeline
@router.get("/{id}/timeline", response_model=TimelineOut)
def get_order_timeline(
    id: int,
    db: Session = Depends(get_db),
    current_user_email: str = Depends(get_current_user),
):
    order = _get_user_order(db, id, current_user_email)
    rows = (
        db.query(ReturnRequest)
        .filter(ReturnRequest.order_id == order.id)
        .order_by(ReturnRequest.created_at.asc(), ReturnRequest.id.asc())
        .all()
    )
    projection = project_order_timeline(order, [ReturnSnapshot.from_row(r) for r in rows])
    return TimelineOut(
        orderId=order.id,
        status=projection.status,
        currentIndex=projection.current_index,
        returnCompleted=projection.return_completed,
        stages=[
            TimelineStageOut(key=s.key, label=s.label, isCompleted=s.is_completed, isCurrent=s.is_current)
            for s in projection.stages
        ],
        connectors=list(projection.connectors),
    )


# Admin: List Orders
@admin_router.get("/", response_model=List[OrderOut])
def get_admin_orders(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    db: Session = Depends(get_db),
    current_user_email: str = Depends(require_admin),
):
    query = db.query(Order).order_by(Order.created_at.desc())
    orders = query.offset(page * size).limit(size).all()
    return [map_order_to_out(o) for o in orders]


# Admin: Update Order Status
@admin_router.put("/{id}/status", response_model=OrderOut)
def admin_update_order_status(
    id: int,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    current_user_email: str = Depends(require_admin),
):
    order = db.query(Order).filter(Order.id == id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    previous = order.order_status
    order.order_status = payload.status.value
    order.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(order)
    logger.info("Order %s status %s -> %s by %s", order.id, previous, order.order_status, current_user_email)
    return map_order_to_out(order)


# Admin: Update Payment Status
@admin_router.put("/{id}/payment-status", response_model=OrderOut)
def admin_update_payment_status(
    id: int,
    payload: OrderPaymentStatusUpdate,
    db: Session = Depends(get_db),
    current_user_email: str = Depends(require_admin),
):
    order = db.query(Order).filter(Order.id == id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    order.payment_status = payload.paymentStatus.value
    # First transition to paid starts the return window
    if payload.paymentStatus is PaymentStatus.PAID and order.paid_at is None:
        order.paid_at = datetime.utcnow()
    order.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(order)
    logger.info("Order %s payment status -> %s by %s", order.id, order.payment_status, current_user_email)
    return map_order_to_out(order)
