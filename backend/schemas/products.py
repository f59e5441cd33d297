from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime
from models.products import ProductStatus

class ProductBase(BaseModel):
    name: str
    description: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)
    is_active: bool = True

class ProductCreate(ProductBase):
    pass

class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    # status is derived from stock_quantity, never set directly
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

class Product(ProductBase):
    id: str
    tenant_id: str
    status: ProductStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProductStock(BaseModel):
    id: str
    name: str
    stock_quantity: int
    status: ProductStatus

    class Config:
        from_attributes = True
