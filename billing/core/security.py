# core/security.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from billing.core.config import settings
from billing.core.exceptions import UnauthenticatedError
from billing.models.account import Account

logger = logging.getLogger(__name__)


class JWTManager:
    """Access-token issuing and verification for the HTTP layer"""

    def __init__(self):
        self.secret_key = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.token_expire = timedelta(hours=settings.jwt_expiration_hours)
        self.issuer = settings.jwt_issuer

    def create_access_token(
        self, account: Account, custom_expiration: Optional[timedelta] = None
    ) -> str:
        """
        Create JWT access token for an account

        Args:
            account: Account model instance
            custom_expiration: Override default expiration

        Returns:
            JWT access token string
        """
        issued_at = datetime.now(timezone.utc)
        expire = issued_at + (custom_expiration or self.token_expire)

        payload = {
            "sub": str(account.id),
            "account_id": account.id,
            "username": account.email,
            "roles": account.roles,
            "exp": int(expire.timestamp()),
            "iat": int(issued_at.timestamp()),
            "iss": self.issuer,
            "type": "access",
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.info(f"Access token created for account: {account.id}")
        return token

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode JWT token.

        Raises:
            UnauthenticatedError: token is malformed, expired, or not an access token
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"verify_exp": True},
            )
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            raise UnauthenticatedError("Invalid JWT Token")

        if payload.get("type") != "access" or "account_id" not in payload:
            raise UnauthenticatedError("Invalid JWT Token")

        return payload


jwt_manager = JWTManager()
