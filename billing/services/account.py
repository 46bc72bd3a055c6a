# billing/services/account.py

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from billing.core.decorator import db_exception
from billing.core.exceptions import (
    ConflictError,
    NotFoundError,
    UnauthenticatedError,
)
from billing.core.hasher import PasswordHelper
from billing.models.account import Account

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[Account]:
        return self.db.query(Account).filter(Account.email == email.lower()).first()

    def get_account(self, account_id: int) -> Account:
        """
        Retrieves a single account by its ID.
        """
        account = self.db.query(Account).filter(Account.id == account_id).first()
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def get_by_email(self, email: str) -> Account:
        account = self.find_by_email(email)
        if not account:
            raise NotFoundError(f"Account '{email}' not found")
        return account

    @db_exception("User with presented email already exist")
    def register(
        self, email: str, password: str, roles: Optional[Iterable[str]] = None
    ) -> Account:
        """
        Create an account with a zero balance.
        Raises ConflictError when the email is taken.
        """
        email = email.lower()
        if self.find_by_email(email):
            raise ConflictError("User with presented email already exist")

        account = Account(
            email=email,
            hashed_password=PasswordHelper.hash_password(password),
            balance=0,
        )
        account.roles = list(roles or [])
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)

        logger.info(f"Account registered: {account.email} (ID: {account.id})")
        return account

    def authenticate(self, email: str, password: str) -> Account:
        account = self.find_by_email(email)
        if not account or not PasswordHelper.check_password(
            password, account.hashed_password
        ):
            logger.warning(f"Failed login attempt for {email}")
            raise UnauthenticatedError("Invalid credentials.")

        if PasswordHelper.needs_rehash(account.hashed_password):
            account.hashed_password = PasswordHelper.hash_password(password)
            self.db.commit()
            logger.info(f"Password hash upgraded for account {account.id}")
        return account
