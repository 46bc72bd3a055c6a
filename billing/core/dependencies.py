from typing import Annotated

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from billing.core.config import settings
from billing.core.database import get_db
from billing.core.exceptions import ForbiddenError, UnauthenticatedError
from billing.core.security import jwt_manager
from billing.models.account import Account

security = HTTPBearer(auto_error=False)


async def get_current_account(
    credentials: HTTPAuthorizationCredentials = Security(security),
    db: Session = Depends(get_db),
) -> Account:
    """
    Dependency that requires a valid Bearer token and returns the caller's account.
    Raises 401 if the token is missing, invalid, or the account no longer exists.
    """
    if not credentials:
        raise UnauthenticatedError("Required authorization token")

    payload = jwt_manager.verify_token(credentials.credentials)

    account = db.query(Account).filter(Account.id == payload["account_id"]).first()
    if not account:
        raise UnauthenticatedError("Account not found")

    # Reads done; let payment operations open their own locking transaction
    db.commit()
    return account


async def get_current_admin(
    account: Annotated[Account, Depends(get_current_account)],
) -> Account:
    if not account.has_role(settings.admin_role):
        raise ForbiddenError("Admin access required")
    return account
