import uuid
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin

class Tenant(Base, TimestampMixin):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    # Display attributes; the only columns that change once other rows reference the tenant
    primary_color = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)

    profiles = relationship("Profile", back_populates="tenant")
