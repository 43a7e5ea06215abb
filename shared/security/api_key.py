"""
Shared secret for service-to-service stock movements (``/products/internal``).

Starting without INTERNAL_API_KEY is allowed for local work; the fallback key
is logged at import so a misconfigured deployment shows up immediately.
"""
import os
import secrets
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)

DEV_FALLBACK_KEY = "insecure-default-change-me"

INTERNAL_API_KEY: str = os.getenv("INTERNAL_API_KEY", "") or DEV_FALLBACK_KEY

if INTERNAL_API_KEY == DEV_FALLBACK_KEY:
    logger.warning("internal_api_key_missing", using="insecure development default")


def verify_api_key(provided_key: Optional[str]) -> bool:
    if not provided_key:
        return False
    return secrets.compare_digest(provided_key.encode(), INTERNAL_API_KEY.encode())
