import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.orm import Session
from models.app_config import ShopSetting
from schemas.app_config import ShopSettingCreate, ShopSettingUpdate
from crud.audit_log import record_event
from utils import sqlalchemy_to_dict
from models.audit_mixin import now_ist

logger = logging.getLogger(__name__)

PAYMENT_APPROVAL_THRESHOLD = "payment_approval_threshold"
PAYMENT_NUMBER_PREFIX = "payment_number_prefix"
REFUND_NUMBER_PREFIX = "refund_number_prefix"

DEFAULT_SETTINGS = {
    PAYMENT_NUMBER_PREFIX: "PAY",
    REFUND_NUMBER_PREFIX: "REF",
}


def get_setting(db: Session, tenant_id: str, shop_id: str, name: str = None):
    query = db.query(ShopSetting).filter(ShopSetting.tenant_id == tenant_id, ShopSetting.shop_id == shop_id)
    if name:
        return query.filter(ShopSetting.name == name).first()
    return query.all()


def get_setting_value(db: Session, tenant_id: str, shop_id: str, name: str) -> Optional[str]:
    setting = get_setting(db, tenant_id, shop_id, name)
    if setting is not None:
        return setting.value
    return DEFAULT_SETTINGS.get(name)


def upsert_setting(db: Session, setting: ShopSettingCreate, tenant_id: str, shop_id: str, user_id: str):
    db_setting = get_setting(db, tenant_id, shop_id, setting.name)
    if db_setting:
        old_values = sqlalchemy_to_dict(db_setting)
        db_setting.value = setting.value
        db_setting.updated_at = now_ist()
        db_setting.updated_by = user_id
        action = 'update'
    else:
        db_setting = ShopSetting(name=setting.name, value=setting.value, tenant_id=tenant_id, shop_id=shop_id, created_by=user_id)
        db.add(db_setting)
        old_values = {}
        action = 'create'
    db.commit()
    db.refresh(db_setting)

    logger.info(f"Setting '{setting.name}' {action}d for shop {shop_id} by user {user_id} for tenant {tenant_id}")
    record_event(
        db, user_id, tenant_id, shop_id, action,
        f"Shop setting {setting.name} set to {setting.value}",
        {"old_values": old_values, "new_values": sqlalchemy_to_dict(db_setting)},
        module="settings",
    )
    return db_setting


def update_setting_by_name(db: Session, name: str, setting: ShopSettingUpdate, tenant_id: str, shop_id: str, user_id: str):
    db_setting = get_setting(db, tenant_id, shop_id, name)
    if not db_setting:
        return None
    if setting.value is None:
        return db_setting
    return upsert_setting(db, ShopSettingCreate(name=name, value=setting.value), tenant_id, shop_id, user_id)


def get_approval_threshold(db: Session, tenant_id: str, shop_id: str) -> Optional[Decimal]:
    """Amount at or above which a payment needs approval; ``None`` when not configured."""
    raw = get_setting_value(db, tenant_id, shop_id, PAYMENT_APPROVAL_THRESHOLD)
    if raw in (None, ""):
        return None
    try:
        return Decimal(raw)
    except InvalidOperation:
        logger.warning(f"Ignoring non-numeric {PAYMENT_APPROVAL_THRESHOLD}={raw!r} for shop {shop_id}, tenant {tenant_id}")
        return None


def get_payment_number_prefix(db: Session, tenant_id: str, shop_id: str) -> str:
    return get_setting_value(db, tenant_id, shop_id, PAYMENT_NUMBER_PREFIX)


def get_refund_number_prefix(db: Session, tenant_id: str, shop_id: str) -> str:
    return get_setting_value(db, tenant_id, shop_id, REFUND_NUMBER_PREFIX)
