from typing import Optional

from fastapi import Header, HTTPException

def get_organization_id(x_organization_id: str = Header(...)) -> str:
    if not x_organization_id.strip():
        raise HTTPException(status_code=400, detail="X-Organization-ID header is missing")
    return x_organization_id.strip()


def get_acting_user(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None
