from enum import Enum
from pydantic import BaseModel
from typing import List, Optional


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


# Linear fulfilment progress; cancelled and returned sit outside it
PROGRESS_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    COMPLETED = "completed"


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderPaymentStatusUpdate(BaseModel):
    paymentStatus: PaymentStatus


class OrderItemOut(BaseModel):
    id: int
    sku: str
    name: str
    quantity: int
    price: float


class OrderOut(BaseModel):
    id: int
    orderNumber: Optional[str] = None
    items: List[OrderItemOut]
    totalAmount: float
    # Plain strings so legacy values in the table still serialise
    status: str
    paymentStatus: str
    paidAt: Optional[str] = None
    returnEligible: bool
    createdAt: str
    updatedAt: str
