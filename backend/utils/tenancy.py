from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from database import get_db
from models.profiles import Profile, AppRole
from utils.auth_utils import get_current_user


def get_current_profile(
    user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user["sub"]).first()
    if profile is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No profile is linked to this user")
    return profile


def get_tenant_id(
    profile: Profile = Depends(get_current_profile),
    x_tenant_id: Optional[str] = Header(None),
) -> str:
    """
    Resolve the caller's tenant from their profile.

    X-Tenant-ID is optional; when sent it must name the caller's own tenant.
    """
    if x_tenant_id and x_tenant_id != profile.tenant_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to this tenant is not allowed")
    return profile.tenant_id


def require_admin(profile: Profile = Depends(get_current_profile)) -> Profile:
    if profile.role != AppRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return profile
