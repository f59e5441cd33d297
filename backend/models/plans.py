import uuid
from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey
from database import Base
from models.audit_mixin import TimestampMixin

class Plan(Base, TimestampMixin):
    __tablename__ = "plans"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    duration_months = Column(Integer, default=1, nullable=False)
