from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, OAuth2PasswordBearer

from .api_key import verify_api_key
from .caller import ROLES, Caller
from .jwt_handler import verify_access_token

bearer_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)
internal_key_header = APIKeyHeader(name="X-Internal-API-Key", auto_error=False)


def caller_from_token(token: Optional[str]) -> Optional[Caller]:
    """Resolve a bearer token to a Caller; None for anything malformed."""
    claims = verify_access_token(token) if token else None
    if not claims or claims.get("role") not in ROLES:
        return None
    try:
        return Caller(id=int(claims["sub"]), role=claims["role"])
    except (KeyError, TypeError, ValueError):
        return None


async def get_current_user(request: Request, token: Optional[str] = Depends(bearer_scheme)) -> Caller:
    caller = caller_from_token(token)
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    # Read back by the rate limiter key function
    request.state.user_id = caller.id
    return caller


async def verify_internal_api_key(api_key: Optional[str] = Depends(internal_key_header)) -> bool:
    if not verify_api_key(api_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing X-Internal-API-Key header",
        )
    return True
