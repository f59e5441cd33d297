from sqlalchemy.orm import Session
from models.app_config import AppConfig
from schemas.app_config import AppConfigUpdate
from config import LOW_STOCK_THRESHOLD
import logging

# Audit imports
from crud.audit_log import create_audit_log
from schemas.audit_log import AuditLogCreate
from utils import sqlalchemy_to_dict

logger = logging.getLogger("app_config")

LOW_STOCK_THRESHOLD_KEY = "LOW_STOCK_THRESHOLD"

# Validators for the config names the backend reads; unknown names are stored as-is
KNOWN_CONFIGS = {
    LOW_STOCK_THRESHOLD_KEY: lambda value: int(value) >= 0,
}


def is_valid_config_value(name: str, value: str) -> bool:
    validator = KNOWN_CONFIGS.get(name)
    if validator is None:
        return True
    try:
        return validator(value)
    except ValueError:
        return False


# Get config by name (or all configs)
def get_config(db: Session, tenant_id: str, name: str = None):
    if name:
        return db.query(AppConfig).filter(AppConfig.name == name, AppConfig.tenant_id == tenant_id).first()
    return db.query(AppConfig).filter(AppConfig.tenant_id == tenant_id).order_by(AppConfig.name).all()


# Create or update config by name
def upsert_config(db: Session, name: str, config: AppConfigUpdate, tenant_id: str, user_id: str):
    db_config = get_config(db, tenant_id, name=name)
    if db_config:
        old_values = sqlalchemy_to_dict(db_config)
        db_config.value = config.value
        db_config.updated_by = user_id
        action = 'UPDATE'
    else:
        db_config = AppConfig(name=name, value=config.value, tenant_id=tenant_id, created_by=user_id)
        db.add(db_config)
        old_values = {}
        action = 'CREATE'
    db.flush()

    log_entry = AuditLogCreate(
        tenant_id=tenant_id,
        table_name='app_config',
        record_id=str(db_config.id),
        changed_by=user_id,
        action=action,
        old_values=old_values,
        new_values=sqlalchemy_to_dict(db_config)
    )
    create_audit_log(db, log_entry)
    db.commit()
    db.refresh(db_config)
    return db_config


def get_low_stock_threshold(db: Session, tenant_id: str) -> int:
    """Tenant override of the low-stock floor, falling back to the global setting."""
    db_config = get_config(db, tenant_id, name=LOW_STOCK_THRESHOLD_KEY)
    if db_config is None:
        return LOW_STOCK_THRESHOLD
    try:
        return int(db_config.value)
    except ValueError:
        logger.warning(f"Ignoring invalid {LOW_STOCK_THRESHOLD_KEY} '{db_config.value}' for tenant {tenant_id}")
        return LOW_STOCK_THRESHOLD
