from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from datetime import datetime
from evarae.models.user import Base


class ReturnRequest(Base):
    __tablename__ = "return_requests"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Snapshot of the returned line item at request time
    item_sku = Column(String(100), nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    item_price = Column(Float, nullable=False)
    item_quantity = Column(Integer, nullable=False, default=1)

    return_reason = Column(String(30), nullable=False)
    note = Column(String(1000), default="")
    images = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)  # 2-5 image URLs
    # pending, approved, processing, completed, rejected
    status = Column(String(20), default="pending", index=True)
    admin_notes = Column(String(1000), nullable=True)
    processed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = relationship("Order", back_populates="return_requests")
