"""
Request identity.

Login and token handling live in front of this service; the gateway
injects the authenticated user's id as the X-User-Id header.
"""

from typing import Optional
from fastapi import Header, HTTPException, status


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    FastAPI dependency - Get the caller's user id.

    Usage:
        @router.get("/mine")
        async def route(user_id: str = Depends(get_current_user_id)):
            ...
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized. User ID not found."
        )
    return x_user_id.strip()
