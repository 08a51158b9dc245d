from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from schemas.app_config import ShopSettingCreate, ShopSettingUpdate, ShopSettingOut
from crud import app_config as crud_app_config
from utils.tenancy import get_tenant_id, get_actor_id

router = APIRouter(prefix="/shops/{shop_id}/settings", tags=["Settings"])
logger = logging.getLogger(__name__)


@router.put("/", response_model=ShopSettingOut)
def put_setting(shop_id: str, setting: ShopSettingCreate, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id), actor: str = Depends(get_actor_id)):
    return crud_app_config.upsert_setting(db, setting, tenant_id, shop_id, user_id=actor)


@router.get("/", response_model=List[ShopSettingOut])
def get_settings(shop_id: str, name: Optional[str] = None, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    settings = crud_app_config.get_setting(db, tenant_id, shop_id, name=name)
    # Always return a list, even if empty
    return [settings] if name and settings else settings or []


@router.patch("/{name}", response_model=ShopSettingOut)
def update_setting(shop_id: str, name: str, setting: ShopSettingUpdate, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id), actor: str = Depends(get_actor_id)):
    updated = crud_app_config.update_setting_by_name(db, name, setting, tenant_id, shop_id, user_id=actor)
    if not updated:
        raise HTTPException(status_code=404, detail="Setting not found")
    return updated
