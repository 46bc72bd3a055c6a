# billing/models/account.py
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from billing.core.database import Base

DEFAULT_ROLE = "ROLE_USER"


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)

    # Authentication fields
    email = Column(String(180), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    roles_csv = Column("roles", String(255), nullable=False, default="")

    balance = Column(Numeric(12, 2), nullable=False, default=0)

    # Bumped on every balance change; a stale writer fails its UPDATE.
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(
        DateTime(timezone=False), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=False),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    transactions = relationship(
        "Transaction", back_populates="account", order_by="Transaction.id"
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def roles(self) -> list:
        """Stored roles plus the implicit ROLE_USER."""
        roles = [r for r in (self.roles_csv or "").split(",") if r]
        if DEFAULT_ROLE not in roles:
            roles.append(DEFAULT_ROLE)
        return roles

    @roles.setter
    def roles(self, value):
        self.roles_csv = ",".join(dict.fromkeys(value))

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def __repr__(self):
        return f"<Account(id={self.id}, email='{self.email}', balance={self.balance})>"
