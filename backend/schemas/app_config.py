from pydantic import BaseModel
from typing import Optional

class ShopSettingBase(BaseModel):
    name: str
    value: str

class ShopSettingCreate(ShopSettingBase):
    pass

class ShopSettingUpdate(BaseModel):
    value: Optional[str] = None

class ShopSettingOut(ShopSettingBase):
    id: int
    tenant_id: Optional[str] = None
    shop_id: Optional[str] = None

    class Config:
        from_attributes = True
