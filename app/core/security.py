from typing import Optional

from fastapi import Header, HTTPException, status


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Resolve the caller from the X-User-Id header. Sign-in and token checks
    happen at the gateway in front of this service.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User identity required")
    return user_id
