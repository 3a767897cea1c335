from __future__ import annotations

import logging
from typing import Any, Optional

from jose import jwt
from jose.exceptions import JWTError

from affilify.config import settings


logger = logging.getLogger("auth.tokens")


def decode_access_token(token: str) -> Optional[dict[str, Any]]:
    """Verify signature and expiry; return the claims or None. Unverified decoding is never used."""
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        logger.warning("Token verification failed", extra={"reason": str(exc)})
        return None
    if not isinstance(claims, dict):
        return None
    return claims


def account_id_from_token(token: str) -> Optional[str]:
    claims = decode_access_token(token)
    if not claims:
        return None
    account_id = claims.get("userId") or claims.get("sub")
    if not isinstance(account_id, str) or not account_id:
        logger.warning("Token is missing an account claim", extra={"claims_keys": list(claims.keys())})
        return None
    return account_id
