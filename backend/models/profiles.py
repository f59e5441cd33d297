import enum
from sqlalchemy import Column, String, ForeignKey, Enum
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin

class AppRole(enum.Enum):
    ADMIN = "admin"
    STAFF = "staff"

class Profile(Base, TimestampMixin):
    """Links an authenticated user (token subject) to exactly one tenant."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)  # same as the auth provider's user id
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    role = Column(Enum(AppRole), default=AppRole.STAFF, nullable=False)

    tenant = relationship("Tenant", back_populates="profiles")

    def __repr__(self):
        return f"<Profile(id={self.id}, email={self.email}, tenant_id={self.tenant_id}, role={self.role})>"
