from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from models.products import ProductStatus
from schemas.products import Product, ProductCreate, ProductUpdate
from schemas.product_stock_audit import ProductStockAudit
from utils.auth_utils import get_current_user, get_user_identifier
from crud import products as crud_products
from utils.tenancy import get_tenant_id

router = APIRouter(prefix="/products", tags=["Products"])
logger = logging.getLogger("products")

@router.post("/", response_model=Product, status_code=status.HTTP_201_CREATED)
def create_product(
    product: ProductCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id)
):
    """Create a new product. Its status is derived from the initial stock."""
    if crud_products.get_product_by_name(db, name=product.name, tenant_id=tenant_id):
        raise HTTPException(status_code=400, detail="Product with this name already exists")

    new_product = crud_products.create_product(db=db, product=product, tenant_id=tenant_id, user=user)
    logger.info(f"Product '{new_product.name}' created by user {get_user_identifier(user)} for tenant {tenant_id}")
    return new_product

@router.get("/", response_model=List[Product])
def read_products(
    skip: int = 0,
    limit: int = 100,
    status: Optional[ProductStatus] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    """Retrieve products ordered by name, optionally filtered by stock status."""
    return crud_products.get_products(db, tenant_id=tenant_id, status=status, skip=skip, limit=limit)

@router.get("/{product_id}", response_model=Product)
def read_product(product_id: str, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    """Retrieve a single product by ID."""
    db_product = crud_products.get_product(db=db, product_id=product_id, tenant_id=tenant_id)
    if db_product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return db_product

@router.patch("/{product_id}", response_model=Product)
def update_product(
    product_id: str,
    product: ProductUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id)
):
    """Update an existing product."""
    if product.name is not None:
        existing = crud_products.get_product_by_name(db, name=product.name, tenant_id=tenant_id)
        if existing and existing.id != product_id:
            raise HTTPException(status_code=400, detail="Product with this name already exists")

    updated_product = crud_products.update_product(db=db, product_id=product_id, product=product, tenant_id=tenant_id, user=user)
    if updated_product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    logger.info(f"Product '{updated_product.name}' (ID: {product_id}) updated by user {get_user_identifier(user)} for tenant {tenant_id}")
    return updated_product

@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: str,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id)
):
    """Delete a product. Products that appear on a sale cannot be deleted; mark them inactive instead."""
    db_product = crud_products.get_product(db=db, product_id=product_id, tenant_id=tenant_id)
    if db_product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    if crud_products.is_product_sold(db, product_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Product has been sold and cannot be deleted. Set is_active to false instead."
        )

    crud_products.delete_product(db=db, product_id=product_id, tenant_id=tenant_id, user=user)
    logger.info(f"Product (ID: {product_id}) deleted by user {get_user_identifier(user)} for tenant {tenant_id}")

@router.get("/{product_id}/audits", response_model=List[ProductStockAudit])
def read_product_audits(product_id: str, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    """Stock movements of a product (sales and manual adjustments)."""
    if crud_products.get_product(db=db, product_id=product_id, tenant_id=tenant_id) is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return crud_products.get_stock_audits(db, product_id=product_id, tenant_id=tenant_id)
