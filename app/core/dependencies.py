from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from app.core.principal import ANONYMOUS, Principal, Viewer
from app.core.security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_viewer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Viewer:
    """Resolve the caller to a Principal, or ANONYMOUS when no token is sent.

    A token that is present but invalid is rejected rather than downgraded
    to anonymous access.
    """
    if credentials is None:
        return ANONYMOUS

    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise _credentials_exception()

    return Principal(id=str(payload["sub"]))


async def get_principal(viewer: Viewer = Depends(get_viewer)) -> Principal:
    """Require an authenticated caller."""
    if not isinstance(viewer, Principal):
        raise _credentials_exception()
    return viewer
