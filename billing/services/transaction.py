# billing/services/transaction.py
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from billing.core.exceptions import NotFoundError
from billing.models.account import Account
from billing.models.course import Course, CourseType
from billing.models.transaction import Transaction, TransactionType
from billing.schemas.transaction import (
    ExpiringRental,
    PeriodTotal,
    TransactionFilter,
    TransactionView,
)
from billing.utils.clock import utcnow

logger = logging.getLogger(__name__)


class TransactionService:
    """
    Ledger access. Writers only add rows to the session; committing is left to
    the caller so a ledger row and its balance change share one commit.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def record_payment(
        self,
        account: Account,
        course: Course,
        amount: Decimal,
        created_at: datetime,
        expires_at: Optional[datetime] = None,
    ) -> Transaction:
        transaction = Transaction(
            account=account,
            course=course,
            type=TransactionType.PAYMENT,
            amount=amount,
            created_at=created_at,
            expires_at=expires_at,
        )
        self.db.add(transaction)
        return transaction

    def record_deposit(
        self, account: Account, amount: Decimal, created_at: datetime
    ) -> Transaction:
        transaction = Transaction(
            account=account,
            course=None,
            type=TransactionType.DEPOSIT,
            amount=amount,
            created_at=created_at,
        )
        self.db.add(transaction)
        return transaction

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def payments_for(self, account_id: int, course_id: int):
        """Query of payment rows for one (account, course) pair."""
        return self.db.query(Transaction).filter(
            Transaction.account_id == account_id,
            Transaction.course_id == course_id,
            Transaction.type == TransactionType.PAYMENT,
        )

    def count(
        self,
        account_id: Optional[int] = None,
        course_id: Optional[int] = None,
        type: Optional[TransactionType] = None,
    ) -> int:
        query = self.db.query(func.count(Transaction.id))
        if account_id is not None:
            query = query.filter(Transaction.account_id == account_id)
        if course_id is not None:
            query = query.filter(Transaction.course_id == course_id)
        if type is not None:
            query = query.filter(Transaction.type == type)
        return query.scalar() or 0

    def list_transactions(
        self,
        account_email: str,
        filters: Optional[TransactionFilter] = None,
        now: Optional[datetime] = None,
    ) -> List[TransactionView]:
        """
        Transactions of one account, oldest first.

        With skip_expired, deposits and purchases are always kept and rentals
        only while their expiry is still ahead of `now`.
        """
        filters = filters or TransactionFilter()
        now = now or utcnow()

        account_id = (
            self.db.query(Account.id)
            .filter(Account.email == account_email.lower())
            .scalar()
        )
        if account_id is None:
            raise NotFoundError(f"Account '{account_email}' not found")

        query = (
            self.db.query(
                Transaction.id,
                Transaction.created_at,
                Transaction.type,
                Course.code.label("course_code"),
                Transaction.amount,
                Transaction.expires_at,
            )
            .outerjoin(Course, Transaction.course_id == Course.id)
            .filter(Transaction.account_id == account_id)
        )

        if filters.type is not None:
            query = query.filter(Transaction.type == filters.type)
        if filters.course_code is not None:
            query = query.filter(Course.code == filters.course_code)
        if filters.skip_expired:
            # Only rent payments carry an expiry
            query = query.filter(
                or_(Transaction.expires_at.is_(None), Transaction.expires_at > now)
            )

        rows = query.order_by(Transaction.created_at.asc(), Transaction.id.asc()).all()
        return [TransactionView.model_validate(row) for row in rows]

    def find_expiring(
        self, window: timedelta = timedelta(days=1), now: Optional[datetime] = None
    ) -> List[ExpiringRental]:
        """Rentals whose expiry falls in [now, now + window], both ends included."""
        now = now or utcnow()
        rows = (
            self.db.query(
                Account.email,
                Course.code,
                Course.name,
                Transaction.expires_at,
            )
            .join(Account, Transaction.account_id == Account.id)
            .join(Course, Transaction.course_id == Course.id)
            .filter(
                Transaction.type == TransactionType.PAYMENT,
                Transaction.expires_at.isnot(None),
                Transaction.expires_at >= now,
                Transaction.expires_at <= now + window,
            )
            .order_by(Account.email.asc(), Transaction.expires_at.asc())
            .all()
        )
        return [
            ExpiringRental(
                email=email, course_code=code, course_name=name, expires_at=expires_at
            )
            for email, code, name, expires_at in rows
        ]

    def period_totals(
        self, date_from: datetime, date_to: datetime
    ) -> List[PeriodTotal]:
        """Payments created in [date_from, date_to], summed per account and course."""
        rows = (
            self.db.query(
                Account.email,
                Course.code,
                Course.name,
                Course.type,
                func.count(Transaction.id),
                func.sum(Transaction.amount),
            )
            .join(Account, Transaction.account_id == Account.id)
            .join(Course, Transaction.course_id == Course.id)
            .filter(
                Transaction.type == TransactionType.PAYMENT,
                Transaction.created_at >= date_from,
                Transaction.created_at <= date_to,
            )
            .group_by(Account.email, Course.id, Course.code, Course.name, Course.type)
            .order_by(Account.email.asc(), Course.code.asc())
            .all()
        )
        return [
            PeriodTotal(
                email=email,
                course_code=code,
                course_name=name,
                course_type=CourseType(course_type).value,
                transactions_count=count,
                total_amount=Decimal(str(total or 0)),
            )
            for email, code, name, course_type, count, total in rows
        ]
