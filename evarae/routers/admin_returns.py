import logging
import math
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime

from evarae.models.user import get_db
from evarae.models.order import Order
from evarae.models.return_request import ReturnRequest
from evarae.routers.returns import map_return_to_out
from evarae.schemas.order import OrderStatus
from evarae.schemas.return_request import (
    Pagination,
    ReturnRequestPage,
    ReturnRequestStatus,
    ReturnStatusUpdate,
)
from evarae.services.returns import can_transition
from evarae.utils.security import require_admin


logger = logging.getLogger(__name__)

router = APIRouter()

VALID_STATUSES = {s.value for s in ReturnRequestStatus}
# Statuses that record when and by whom the request was decided
PROCESSED_STATUSES = {
    ReturnRequestStatus.APPROVED.value,
    ReturnRequestStatus.REJECTED.value,
    ReturnRequestStatus.COMPLETED.value,
}


# Get Return Requests (Admin)
@router.get("/", response_model=ReturnRequestPage)
def get_return_requests(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user_email: str = Depends(require_admin),
):
    query = db.query(ReturnRequest)
    # Unknown status filters are ignored rather than rejected
    if status in VALID_STATUSES:
        query = query.filter(ReturnRequest.status == status)
    total = query.count()
    reqs = (
        query.order_by(ReturnRequest.created_at.desc(), ReturnRequest.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return ReturnRequestPage(
        returnRequests=[map_return_to_out(r) for r in reqs],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


# Get Return Request (Admin)
@router.get("/{id}")
def get_return_request(id: int, db: Session = Depends(get_db), current_user_email: str = Depends(require_admin)):
    req = db.query(ReturnRequest).filter(ReturnRequest.id == id).first()
    if not req:
        raise HTTPException(status_code=404, detail="Return request not found")
    return {"returnRequest": map_return_to_out(req)}


# Update Return Status (Admin)
@router.patch("/")
def update_return_status(
    payload: ReturnStatusUpdate,
    db: Session = Depends(get_db),
    current_user_email: str = Depends(require_admin),
):
    if payload.status not in VALID_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    req = db.query(ReturnRequest).filter(ReturnRequest.id == payload.returnRequestId).first()
    if not req:
        raise HTTPException(status_code=404, detail="Return request not found")
    if not can_transition(req.status, payload.status):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot change return request status from {req.status} to {payload.status}",
        )

    previous = req.status
    req.status = payload.status
    if payload.adminNotes is not None:
        req.admin_notes = payload.adminNotes or None
    if payload.status in PROCESSED_STATUSES:
        req.processed_at = datetime.utcnow()

    # Approval moves the whole order into the returned state
    if payload.status == ReturnRequestStatus.APPROVED.value:
        order = db.query(Order).filter(Order.id == req.order_id).first()
        if order:
            order.order_status = OrderStatus.RETURNED.value
            order.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(req)
    logger.info(
        "Return request %s status %s -> %s by %s", req.id, previous, req.status, current_user_email
    )
    return {
        "success": True,
        "returnRequest": {
            "id": req.id,
            "status": req.status,
            "processedAt": req.processed_at.isoformat() if req.processed_at else None,
        },
    }
