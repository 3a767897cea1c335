import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from affilify.auth.tokens import account_id_from_token
from affilify.config import settings
from affilify.db.deps import get_session
from affilify.db.models import Account
from affilify.db.repositories.accounts import AccountsRepository


bearer_scheme = HTTPBearer(auto_error=False)
logger = logging.getLogger("auth.deps")


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    for cookie_name in settings.AUTH_COOKIE_NAMES:
        value = request.cookies.get(cookie_name)
        if value:
            return value
    return None


def resolve_account(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[Account]:
    """
    Resolve the calling account, or None.

    Absence is not raised here: callers decide whether an anonymous caller is an error so the
    generation pipeline keeps its authorization step alongside its other failure exits.
    """
    token = _extract_token(request, credentials)
    if not token:
        return None
    account_id = account_id_from_token(token)
    if not account_id:
        return None
    account = AccountsRepository(session).get(account_id)
    if account is None:
        logger.info("Token references unknown account", extra={"account_id": account_id})
        return None
    logger.debug("Resolved account from token", extra={"account_id": account.id, "plan": account.plan})
    return account
