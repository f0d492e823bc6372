"""TagTrack IMS — FastAPI dependencies (DB session, acting user)."""
from typing import Annotated

from fastapi import Header, HTTPException, status

from tagtrack.db.session import get_db  # noqa: F401  re-exported for endpoints


async def require_actor(x_user: Annotated[str | None, Header()] = None) -> str:
    """Acting user from the X-User header; stamped on every record an operation writes."""
    if not x_user or not x_user.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User header required",
        )
    return x_user.strip()

