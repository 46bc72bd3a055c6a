from datetime import timedelta
from decimal import Decimal

import pytest

from billing.core.config import settings
from billing.core.exceptions import (
    ConflictError,
    NotFoundError,
    UnauthenticatedError,
)
from billing.core.hasher import PasswordHelper
from billing.core.init import init_super_admin
from billing.core.security import jwt_manager
from billing.models.account import Account
from billing.services.account import AccountService


def test_register_starts_with_zero_balance(db):
    account = AccountService(db).register("New@Example.com", "secret1")

    assert account.email == "new@example.com"
    assert account.balance == Decimal("0")
    assert account.roles == ["ROLE_USER"]
    assert account.hashed_password != "secret1"


def test_register_duplicate_email(db, make_account):
    make_account("taken@example.com", db=db)

    with pytest.raises(ConflictError):
        AccountService(db).register("taken@example.com", "secret1")


def test_authenticate(db, make_account):
    make_account("user@example.com", password="secret1", db=db)
    service = AccountService(db)

    assert service.authenticate("user@example.com", "secret1").email == "user@example.com"
    with pytest.raises(UnauthenticatedError):
        service.authenticate("user@example.com", "wrong")
    with pytest.raises(UnauthenticatedError):
        service.authenticate("ghost@example.com", "secret1")


def test_lookups(db, make_account):
    account = make_account("user@example.com", db=db)
    service = AccountService(db)

    assert service.get_account(account.id).email == "user@example.com"
    assert service.get_by_email("USER@example.com").id == account.id
    with pytest.raises(NotFoundError):
        service.get_account(account.id + 100)
    with pytest.raises(NotFoundError):
        service.get_by_email("ghost@example.com")


def test_admin_bootstrap_runs_once(db):
    init_super_admin(db)
    init_super_admin(db)

    admins = db.query(Account).filter(Account.email == settings.admin_default_email).all()
    assert len(admins) == 1
    assert admins[0].has_role(settings.admin_role)
    assert admins[0].has_role("ROLE_USER")


class TestTokens:
    def test_round_trip(self, db, make_account):
        account = make_account("user@example.com", db=db)

        payload = jwt_manager.verify_token(jwt_manager.create_access_token(account))

        assert payload["account_id"] == account.id
        assert payload["username"] == "user@example.com"
        assert payload["roles"] == ["ROLE_USER"]

    def test_expired_token(self, db, make_account):
        account = make_account(db=db)
        token = jwt_manager.create_access_token(
            account, custom_expiration=timedelta(seconds=-10)
        )

        with pytest.raises(UnauthenticatedError):
            jwt_manager.verify_token(token)


class TestPasswordHashing:
    def test_hash_uses_configured_cost(self):
        hashed = PasswordHelper.hash_password("secret1")

        assert hashed.startswith(f"$2b${settings.password_hash_rounds:02d}$")
        assert not PasswordHelper.needs_rehash(hashed)
        assert PasswordHelper.check_password("secret1", hashed)

    def test_malformed_stored_hash_never_matches(self):
        assert not PasswordHelper.check_password("secret1", "not-a-bcrypt-hash")
        assert PasswordHelper.needs_rehash("not-a-bcrypt-hash")

    def test_login_upgrades_outdated_hash(self, db, make_account):
        account = make_account("user@example.com", password="secret1", db=db)
        outdated = PasswordHelper.hash_password(
            "secret1", rounds=settings.password_hash_rounds + 1
        )
        account.hashed_password = outdated
        db.commit()
        assert PasswordHelper.needs_rehash(outdated)

        AccountService(db).authenticate("user@example.com", "secret1")

        db.expire_all()
        stored = db.get(Account, account.id).hashed_password
        assert stored != outdated
        assert not PasswordHelper.needs_rehash(stored)
        assert PasswordHelper.check_password("secret1", stored)
