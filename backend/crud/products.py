from typing import Optional
from sqlalchemy.orm import Session
from models.products import Product, ProductStatus
from models.product_stock_audit import ProductStockAudit
from models.sale_items import SaleItem
from schemas.products import ProductCreate, ProductUpdate
from crud.app_config import get_low_stock_threshold
from crud.audit_log import create_audit_log
from schemas.audit_log import AuditLogCreate
from utils import sqlalchemy_to_dict, derive_product_status
from utils.auth_utils import get_user_identifier

NULLABLE_FIELDS = {"description"}

def get_product(db: Session, product_id: str, tenant_id: str):
    return db.query(Product).filter(Product.id == product_id, Product.tenant_id == tenant_id).first()

def get_product_by_name(db: Session, name: str, tenant_id: str):
    return db.query(Product).filter(Product.name == name, Product.tenant_id == tenant_id).first()

def get_products(db: Session, tenant_id: str, status: Optional[ProductStatus] = None, skip: int = 0, limit: int = 100):
    query = db.query(Product).filter(Product.tenant_id == tenant_id)
    if status:
        query = query.filter(Product.status == status)
    return query.order_by(Product.name).offset(skip).limit(limit).all()

def create_product(db: Session, product: ProductCreate, tenant_id: str, user: dict):
    user_identifier = get_user_identifier(user)
    threshold = get_low_stock_threshold(db, tenant_id)
    db_product = Product(
        **product.model_dump(),
        status=derive_product_status(product.stock_quantity, threshold),
        tenant_id=tenant_id,
        created_by=user_identifier,
        updated_by=user_identifier,
    )
    db.add(db_product)
    db.flush()
    if product.stock_quantity:
        db.add(ProductStockAudit(
            product_id=db_product.id,
            tenant_id=tenant_id,
            change_type="manual",
            change_amount=product.stock_quantity,
            old_quantity=0,
            new_quantity=product.stock_quantity,
            changed_by=user_identifier,
            note="Initial stock",
        ))
    db.commit()
    db.refresh(db_product)
    return db_product

def update_product(db: Session, product_id: str, product: ProductUpdate, tenant_id: str, user: dict):
    db_product = db.query(Product).filter(Product.id == product_id, Product.tenant_id == tenant_id).with_for_update().first()
    if db_product is None:
        return None

    user_identifier = get_user_identifier(user)
    old_values = sqlalchemy_to_dict(db_product)
    old_stock = db_product.stock_quantity
    update_data = product.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        # Only description may be cleared; null for any other field leaves it unchanged
        if value is None and key not in NULLABLE_FIELDS:
            continue
        setattr(db_product, key, value)

    if db_product.stock_quantity != old_stock:
        db.add(ProductStockAudit(
            product_id=db_product.id,
            tenant_id=tenant_id,
            change_type="manual",
            change_amount=db_product.stock_quantity - old_stock,
            old_quantity=old_stock,
            new_quantity=db_product.stock_quantity,
            changed_by=user_identifier,
            note="Stock adjusted",
        ))
    db_product.status = derive_product_status(db_product.stock_quantity, get_low_stock_threshold(db, tenant_id))
    db_product.updated_by = user_identifier
    db.flush()

    log_entry = AuditLogCreate(
        tenant_id=tenant_id,
        table_name='products',
        record_id=str(product_id),
        changed_by=user_identifier,
        action='UPDATE',
        old_values=old_values,
        new_values=sqlalchemy_to_dict(db_product)
    )
    create_audit_log(db=db, log_entry=log_entry)
    db.commit()
    db.refresh(db_product)
    return db_product

def is_product_sold(db: Session, product_id: str) -> bool:
    return db.query(SaleItem.id).filter(SaleItem.product_id == product_id).first() is not None

def delete_product(db: Session, product_id: str, tenant_id: str, user: dict) -> bool:
    db_product = get_product(db, product_id, tenant_id)
    if db_product is None:
        return False

    log_entry = AuditLogCreate(
        tenant_id=tenant_id,
        table_name='products',
        record_id=str(product_id),
        changed_by=get_user_identifier(user),
        action='DELETE',
        old_values=sqlalchemy_to_dict(db_product),
        new_values=None
    )
    create_audit_log(db=db, log_entry=log_entry)
    db.delete(db_product)
    db.commit()
    return True

def refresh_product_statuses(db: Session, tenant_id: str, low_stock_threshold: int) -> int:
    """Re-derive every product status after the tenant's low-stock floor changed. Returns rows changed."""
    changed = 0
    for db_product in db.query(Product).filter(Product.tenant_id == tenant_id).with_for_update().all():
        status = derive_product_status(db_product.stock_quantity, low_stock_threshold)
        if db_product.status != status:
            db_product.status = status
            changed += 1
    db.commit()
    return changed

def get_stock_audits(db: Session, product_id: str, tenant_id: str):
    return db.query(ProductStockAudit).filter(
        ProductStockAudit.product_id == product_id,
        ProductStockAudit.tenant_id == tenant_id,
    ).order_by(ProductStockAudit.timestamp).all()
