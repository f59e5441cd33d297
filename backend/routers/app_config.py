from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import logging

from database import get_db
from crud import app_config as crud_app_config
from crud import products as crud_products
from models.profiles import Profile
from schemas.app_config import AppConfigOut, AppConfigUpdate
from utils.tenancy import get_tenant_id, require_admin

router = APIRouter(prefix="/app-config", tags=["App Config"])
logger = logging.getLogger("app_config")

@router.get("/", response_model=List[AppConfigOut])
def read_configs(db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return crud_app_config.get_config(db, tenant_id)

@router.put("/{name}", response_model=AppConfigOut)
def upsert_config(
    name: str,
    config: AppConfigUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    admin: Profile = Depends(require_admin),
):
    """Create or update a tenant setting. Admins only."""
    if not crud_app_config.is_valid_config_value(name, config.value):
        raise HTTPException(status_code=400, detail=f"Invalid value '{config.value}' for {name}")

    db_config = crud_app_config.upsert_config(db, name=name, config=config, tenant_id=tenant_id, user_id=admin.id)
    if name == crud_app_config.LOW_STOCK_THRESHOLD_KEY:
        changed = crud_products.refresh_product_statuses(db, tenant_id, int(db_config.value))
        logger.info(f"Low stock threshold for tenant {tenant_id} set to {db_config.value}; {changed} product status(es) updated")
    logger.info(f"Config '{name}' set by user {admin.id} for tenant {tenant_id}")
    return db_config
