from fastapi import Header, HTTPException

def get_tenant_id(x_tenant_id: str = Header(...)) -> str:
    if not x_tenant_id:
        raise HTTPException(status_code=400, detail="X-Tenant-ID header is missing")
    return x_tenant_id


def get_actor_id(x_user_id: str = Header(...)) -> str:
    """Identifier of the authenticated user, set by the auth gateway in front of the API."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-ID header is missing")
    return x_user_id
