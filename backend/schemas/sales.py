from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from models.sales import PaymentMethod
from schemas.products import ProductStock


class CartLine(BaseModel):
    product_id: str
    # Range checks happen in the commit engine so every cart error has the same shape
    quantity: int

class SaleCreate(BaseModel):
    student_id: Optional[str] = None  # None for walk-in sales
    payment_method: str
    items: List[CartLine]

class SaleItem(BaseModel):
    id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True

class Sale(BaseModel):
    id: str
    tenant_id: str
    student_id: Optional[str] = None
    created_by: str
    payment_method: PaymentMethod
    total_amount: Decimal
    created_at: datetime
    idempotency_key: Optional[str] = None
    items: List[SaleItem] = []

    class Config:
        from_attributes = True

class SaleCommitResult(BaseModel):
    sale: Sale
    # Final stock and status of every product the sale touched, for display refresh
    products: List[ProductStock]
    # True when an earlier sale with the same idempotency key was returned instead
    replayed: bool = False
