# billing/models/transaction.py
import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
)
from sqlalchemy.orm import relationship

from billing.core.database import Base
from billing.utils.clock import utcnow


class TransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    PAYMENT = "payment"


class Transaction(Base):
    """
    One balance-affecting event. Rows are only ever inserted:
    the table is both the audit trail and the source of entitlements.
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)

    account_id = Column(
        Integer, ForeignKey("accounts.id"), nullable=False, index=True
    )
    # NULL for deposits
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=True, index=True)

    type = Column(
        Enum(
            TransactionType,
            name="transaction_type",
            values_callable=lambda e: [m.value for m in e],
            native_enum=False,
            length=10,
        ),
        nullable=False,
    )
    amount = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=False), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=False), nullable=True)  # rent only

    account = relationship("Account", back_populates="transactions")
    course = relationship("Course", back_populates="transactions")

    __table_args__ = (
        Index("ix_transactions_account_course", "account_id", "course_id"),
        Index("ix_transactions_expires_at", "expires_at"),
        CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
    )

    def __repr__(self):
        return (
            f"<Transaction(id={self.id}, account_id={self.account_id}, "
            f"course_id={self.course_id}, type={self.type}, amount={self.amount})>"
        )
