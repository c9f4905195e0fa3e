from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional


class ReturnRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"


class ReturnReason(str, Enum):
    DEFECTIVE = "defective"
    WRONG_ITEM = "wrong_item"
    QUALITY_ISSUE = "quality_issue"
    NOT_AS_DESCRIBED = "not_as_described"
    DAMAGED = "damaged"
    OTHER = "other"


class ReturnOrderItem(BaseModel):
    sku: str
    name: str
    price: float = Field(ge=0)
    quantity: int = Field(default=1, gt=0)


class ReturnRequestCreate(BaseModel):
    orderId: int
    orderItem: ReturnOrderItem
    # Reason and images are checked by the router so clients get a 400 with a readable message
    returnReason: str
    note: Optional[str] = ""
    images: List[str]


class ReturnRequestOut(BaseModel):
    id: int
    orderId: int
    userId: int
    orderItem: ReturnOrderItem
    returnReason: str
    note: str = ""
    images: List[str]
    status: str
    adminNotes: Optional[str] = None
    processedAt: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class ReturnStatusUpdate(BaseModel):
    returnRequestId: int
    status: str
    adminNotes: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ReturnRequestPage(BaseModel):
    returnRequests: List[ReturnRequestOut]
    pagination: Pagination
