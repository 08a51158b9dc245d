from pydantic import BaseModel
from typing import Optional, Dict, Any
from models.enums import AuditSeverity

class AuditEventCreate(BaseModel):
    actor: str
    tenant_id: Optional[str] = None
    shop_id: Optional[str] = None
    module: str = "payment"
    action: str
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    severity: AuditSeverity = AuditSeverity.INFO
