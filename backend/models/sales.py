import enum
import uuid
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import now_local

class PaymentMethod(enum.Enum):
    CASH = "cash"
    CREDIT = "credit"
    DEBIT = "debit"
    PIX = "pix"

class Sale(Base):
    __tablename__ = "sales"
    __table_args__ = (UniqueConstraint('tenant_id', 'idempotency_key', name='_tenant_sale_idempotency_key_uc'),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=True, index=True)  # None for walk-in sales
    created_by = Column(String, nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_local, nullable=False)
    idempotency_key = Column(String(255), nullable=True)

    # Relationships
    student = relationship("Student")
    items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan", order_by="SaleItem.position")
