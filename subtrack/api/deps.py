"""
FastAPI dependencies (DB session, current user)
"""
from fastapi import Request, HTTPException, status

from subtrack.infrastructure.db.session import get_db as _get_db


# Re-export get_db for routers
get_db = _get_db


def get_current_user_id(request: Request) -> int:
    """
    Current user id from the session cookie (for API endpoints)

    Raises:
        HTTPException(401): if nobody is logged in

    Usage:
        @router.get("/profile")
        def get_profile(user_id: int = Depends(get_current_user_id)):
            ...
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return int(user_id)
