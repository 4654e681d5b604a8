"""
Payment, payment event and download models
"""
import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, Index, Text
from sqlalchemy.orm import relationship

from ..base import Base


class PaymentStatus(str, enum.Enum):
    """Payment status enum. pending -> succeeded | failed, nothing else."""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Payment(Base):
    """Local record of one payment intent (individual item or package)"""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True, index=True)
    content_item_id = Column(Integer, ForeignKey("content_items.id"), nullable=True, index=True)
    package_type = Column(String, nullable=True)
    external_payment_intent_id = Column(String, nullable=False, unique=True, index=True)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="usd")
    status = Column(String, nullable=False, default=PaymentStatus.PENDING.value, index=True)
    failure_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User")
    content_item = relationship("ContentItem")

    __table_args__ = (
        Index("idx_payments_user_item_status", "user_id", "content_item_id", "status"),
    )


class PaymentEvent(Base):
    """Processed webhook deliveries, for replay detection and audit"""
    __tablename__ = "payment_events"

    id = Column(Integer, primary_key=True, index=True)
    provider_event_id = Column(String, nullable=False, index=True)
    event_type = Column(String, nullable=False, index=True)
    payment_intent_id = Column(String, nullable=True, index=True)
    outcome = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("provider_event_id", name="uq_payment_events_provider_event_id"),
    )


class Download(Base):
    """Append-only download audit log"""
    __tablename__ = "downloads"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content_item_id = Column(Integer, ForeignKey("content_items.id"), nullable=False, index=True)
    downloaded_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    content_item = relationship("ContentItem")
