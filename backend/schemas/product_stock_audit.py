from pydantic import BaseModel
from datetime import datetime
from typing import Optional

class ProductStockAudit(BaseModel):
    id: str
    product_id: str
    change_type: str
    change_amount: int
    old_quantity: int
    new_quantity: int
    changed_by: Optional[str] = None
    note: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True
