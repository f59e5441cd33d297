from pydantic import BaseModel
from typing import Optional

class AppConfigBase(BaseModel):
    name: str
    value: str

class AppConfigUpdate(BaseModel):
    value: str

class AppConfigOut(AppConfigBase):
    id: str
    tenant_id: Optional[str] = None

    class Config:
        from_attributes = True
