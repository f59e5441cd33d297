import uuid
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import now_local

class ProductStockAudit(Base):
    __tablename__ = "product_stock_audit"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id = Column(String(36), index=True, nullable=False)
    change_type = Column(String, nullable=False)  # "sale", "manual"
    change_amount = Column(Integer, nullable=False)  # positive or negative
    old_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    changed_by = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=now_local)
    note = Column(String, nullable=True)

    product = relationship("Product", back_populates="audits")
