from fastapi import APIRouter, Depends, HTTPException, Header, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging

from database import get_db
from models.sales import PaymentMethod
from schemas.sales import Sale as SaleSchema, SaleCreate, SaleCommitResult
from crud import sales as crud_sales
from utils.auth_utils import get_current_user, get_user_identifier
from utils.tenancy import get_tenant_id

router = APIRouter(prefix="/sales", tags=["Sales"])
logger = logging.getLogger("sales")

@router.post("/", response_model=SaleCommitResult, status_code=status.HTTP_201_CREATED)
def create_sale(
    sale: SaleCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
    idempotency_key: Optional[str] = Header(None),
):
    """
    Record a sale from a cart.

    The sale, its items and the stock decrements are written in one transaction.
    Engine errors are turned into responses by the handlers registered in main.py.
    """
    return crud_sales.commit_sale_with_retry(
        db,
        tenant_id=tenant_id,
        payment_method=sale.payment_method,
        lines=sale.items,
        created_by=get_user_identifier(user),
        student_id=sale.student_id,
        idempotency_key=idempotency_key,
    )

@router.get("/", response_model=List[SaleSchema])
def read_sales(
    skip: int = 0,
    limit: int = 100,
    student_id: Optional[str] = None,
    payment_method: Optional[PaymentMethod] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    """Retrieve a list of sales with various filters, newest first."""
    return crud_sales.get_sales(
        db,
        tenant_id=tenant_id,
        student_id=student_id,
        payment_method=payment_method,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )

@router.get("/{sale_id}", response_model=SaleSchema)
def read_sale(sale_id: str, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    """Retrieve a single sale by ID."""
    db_sale = crud_sales.get_sale(db, sale_id=sale_id, tenant_id=tenant_id)
    if db_sale is None:
        raise HTTPException(status_code=404, detail="Sale not found")
    return db_sale
