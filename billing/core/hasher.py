import logging
import re
from typing import Optional

import bcrypt

from billing.core.config import settings

logger = logging.getLogger(__name__)

# $2b$12$... -> 12
_BCRYPT_COST = re.compile(r"^\$2[abxy]?\$(\d{2})\$")


class PasswordHelper:
    """bcrypt hashing for account passwords. The cost factor comes from settings."""

    @staticmethod
    def hash_password(password: str, rounds: Optional[int] = None) -> str:
        salt = bcrypt.gensalt(rounds=rounds or settings.password_hash_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def check_password(password: str, hashed_password: str) -> bool:
        """False for a wrong password and for a stored value that is not a bcrypt hash."""
        try:
            return bcrypt.checkpw(
                password.encode("utf-8"), hashed_password.encode("utf-8")
            )
        except ValueError:
            logger.error("Stored password hash is not a valid bcrypt hash")
            return False

    @staticmethod
    def needs_rehash(hashed_password: str) -> bool:
        """True when the hash was made with a cost other than the configured one."""
        match = _BCRYPT_COST.match(hashed_password or "")
        return match is None or int(match.group(1)) != settings.password_hash_rounds
