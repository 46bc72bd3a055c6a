# billing/services/entitlement.py
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from billing.models.course import CourseType
from billing.models.transaction import Transaction
from billing.services.course import CourseService
from billing.services.transaction import TransactionService
from billing.utils.clock import utcnow


class EntitlementService:
    """
    Answers "does this account hold this course" from the ledger alone.
    Nothing is cached; every call reads the transactions table.
    """

    def __init__(self, db: Session):
        self.db = db
        self.ledger = TransactionService(db)

    def active_payment(
        self,
        account_id: int,
        course_id: int,
        course_type: CourseType,
        now: Optional[datetime] = None,
    ) -> Optional[Transaction]:
        """
        The payment that currently grants access, if any.

        Purchases never lapse, so the first one is returned. For rentals the
        unexpired payment with the furthest expiry wins.
        """
        query = self.ledger.payments_for(account_id, course_id)

        if course_type == CourseType.RENT:
            now = now or utcnow()
            return (
                query.filter(Transaction.expires_at > now)
                .order_by(Transaction.expires_at.desc())
                .first()
            )

        return query.order_by(Transaction.created_at.asc(), Transaction.id.asc()).first()

    def has_active_entitlement(
        self,
        account_id: int,
        course_id: int,
        course_type: CourseType,
        now: Optional[datetime] = None,
    ) -> bool:
        if course_type == CourseType.FREE:
            return True
        return (
            self.active_payment(account_id, course_id, course_type, now=now)
            is not None
        )

    def has_course_entitlement(
        self, account_id: int, course_code: str, now: Optional[datetime] = None
    ) -> bool:
        """Same check, looked up by course code. Unknown codes raise NotFoundError."""
        course = CourseService(self.db).get_by_code(course_code)
        return self.has_active_entitlement(account_id, course.id, course.type, now=now)
