from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from shared.config.settings import RATE_LIMIT_ENABLED
from .dependencies import caller_from_token


def user_id_or_ip(request: Request) -> str:
    """
    SlowAPI key: the authenticated account when there is one, the client IP
    otherwise. Checkout retries from one buyer share a bucket across IPs.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            caller = caller_from_token(auth_header[len("Bearer "):])
            user_id = caller.id if caller else None

    if user_id is not None:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=user_id_or_ip, enabled=RATE_LIMIT_ENABLED)
