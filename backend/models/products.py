import enum
import uuid
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, ForeignKey, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin

class ProductStatus(enum.Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"

class Product(Base, TimestampMixin):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint('stock_quantity >= 0', name='_products_stock_non_negative'),
        CheckConstraint('price >= 0', name='_products_price_non_negative'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    stock_quantity = Column(Integer, default=0, nullable=False)
    # Derived from stock_quantity; never set directly by clients
    status = Column(Enum(ProductStatus), default=ProductStatus.OUT_OF_STOCK, nullable=False)
    # False marks a discontinued product that can no longer be sold
    is_active = Column(Boolean, default=True, nullable=False)

    audits = relationship("ProductStockAudit", back_populates="product", cascade="all, delete-orphan")
