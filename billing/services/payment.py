# billing/services/payment.py
import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from billing.core.config import settings
from billing.core.exceptions import (
    ConcurrentUpdateError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from billing.models.account import Account
from billing.models.course import Course, CourseType
from billing.models.transaction import Transaction
from billing.schemas.payment import PaymentOutcome
from billing.services.course import CourseService
from billing.services.entitlement import EntitlementService
from billing.services.transaction import TransactionService
from billing.utils.clock import utcnow

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
T = TypeVar("T")


def to_money(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount.quantize(CENT)


class PaymentService:
    """
    Moves money: deposits credit an account, payments debit it for a course.

    Each operation runs as one database transaction holding the account row
    lock from the balance read until the commit, so the entitlement re-check,
    the balance check, the debit and the ledger insert cannot interleave with
    another operation on the same account.
    """

    def __init__(self, db: Session):
        self.db = db
        self.courses = CourseService(db)
        self.ledger = TransactionService(db)
        self.entitlements = EntitlementService(db)

    @property
    def rental_period(self) -> timedelta:
        return timedelta(days=settings.rental_period_days)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def pay(
        self, account_id: int, course_code: str, now: Optional[datetime] = None
    ) -> PaymentOutcome:
        course_id = self.courses.get_by_code(course_code).id
        return self._run_locked(lambda: self._pay_once(account_id, course_id, now))

    def deposit(
        self, account_id: int, amount, now: Optional[datetime] = None
    ) -> Transaction:
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationError("Deposit amount must be positive")
        return self._run_locked(lambda: self._deposit_once(account_id, amount, now))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _run_locked(self, operation: Callable[[], T]) -> T:
        """
        Run one locked read-check-write unit, re-running it from scratch when a
        concurrent writer bumped the account version first.
        """
        attempts = max(1, settings.payment_max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except StaleDataError:
                self.db.rollback()
                logger.warning(
                    f"Concurrent account update detected (attempt {attempt}/{attempts})"
                )
            except Exception:
                self.db.rollback()
                raise

        raise ConcurrentUpdateError(
            "Account is being updated concurrently, try again later"
        )

    def _lock_account(self, account_id: int) -> Account:
        account = (
            self.db.query(Account)
            .filter(Account.id == account_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def _apply_balance(self, account: Account, delta: Decimal) -> None:
        account.balance = (Decimal(account.balance) + delta).quantize(CENT)
        # Always part of the UPDATE, so the version is bumped even for 0.00
        flag_modified(account, "balance")

    def _pay_once(
        self, account_id: int, course_id: int, now: Optional[datetime]
    ) -> PaymentOutcome:
        now = now or utcnow()
        account = self._lock_account(account_id)
        course = self.db.get(Course, course_id, populate_existing=True)
        if course is None:
            raise NotFoundError(f"Course {course_id} not found")

        if course.type == CourseType.FREE:
            existing = self.ledger.payments_for(account.id, course.id).first()
            if existing:
                return self._already_held(account, course, existing)
            amount, expires_at = Decimal("0.00"), None
        else:
            active = self.entitlements.active_payment(
                account.id, course.id, course.type, now=now
            )
            if active:
                return self._already_held(account, course, active)

            amount = to_money(course.price)
            expires_at = now + self.rental_period if course.type == CourseType.RENT else None

            if Decimal(account.balance) < amount:
                logger.info(
                    f"Payment refused for account {account.id}, course {course.code}: "
                    f"balance {account.balance} < {amount}"
                )
                raise InsufficientFundsError(account.balance, amount)

        self._apply_balance(account, -amount)
        transaction = self.ledger.record_payment(
            account, course, amount, created_at=now, expires_at=expires_at
        )
        self.db.commit()

        logger.info(
            f"Account {account.id} paid {amount} for {course.type.value} course "
            f"{course.code} (transaction {transaction.id})"
        )
        return PaymentOutcome(
            course_type=course.type,
            amount=amount,
            expires_at=expires_at,
            charged=True,
            balance=account.balance,
            transaction_id=transaction.id,
        )

    def _already_held(
        self, account: Account, course: Course, payment: Transaction
    ) -> PaymentOutcome:
        # Nothing to write; end the transaction and release the lock
        self.db.commit()
        logger.info(
            f"Account {account.id} already holds course {course.code}, nothing charged"
        )
        return PaymentOutcome(
            course_type=course.type,
            amount=Decimal("0.00"),
            expires_at=payment.expires_at,
            charged=False,
            balance=account.balance,
            transaction_id=payment.id,
        )

    def _deposit_once(
        self, account_id: int, amount: Decimal, now: Optional[datetime]
    ) -> Transaction:
        account = self._lock_account(account_id)
        self._apply_balance(account, amount)
        transaction = self.ledger.record_deposit(
            account, amount, created_at=now or utcnow()
        )
        self.db.commit()

        logger.info(
            f"Account {account.id} deposited {amount}, balance {account.balance}"
        )
        return transaction
